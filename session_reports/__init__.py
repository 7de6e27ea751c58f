from __future__ import annotations  # Session report package exports

from .pdf import ReportPDF, render_report_pdf

__all__ = ["ReportPDF", "render_report_pdf"]
