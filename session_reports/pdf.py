from __future__ import annotations  # Styled PDF rendering for mock interview reports

import math
import os
import re
import textwrap
from datetime import datetime
from typing import Any, List, Optional, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from agents.types import Exchange, InterviewReport, Session


DEJAVU_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"  # System font
DEJAVU_SANS_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"  # System font

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
SOFT_ACCENT_BG = (243, 248, 255)  # Highlight background
ROW_FILL = (247, 250, 255)  # Zebra stripe


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:  # Parse ISO timestamp, None when malformed
    if not value:
        return None
    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def _format_datetime(value: Optional[datetime]) -> str:  # Format timestamp for display
    if not value:
        return "-"
    return value.strftime("%d %b %Y, %I:%M %p").lstrip("0").replace(" 0", " ")


def _format_duration(seconds: float) -> str:
    minutes, secs = divmod(int(round(seconds)), 60)
    return f"{minutes}m {secs:02d}s"


def _effective_width(pdf: FPDF) -> float:  # Compute effective page width
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


class ReportPDF(FPDF):  # PDF with custom header/footer styling
    def __init__(self, *args, accent: Tuple[int, int, int] = ACCENT, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.accent = accent
        self.header_title = "Mock Interview Report"
        self.font_regular = "Helvetica"
        self.font_bold = "Helvetica"
        self.supports_unicode = False

    def use_unicode_fonts(self) -> None:  # Switch to DejaVu when installed
        if not (os.path.exists(DEJAVU_SANS) and os.path.exists(DEJAVU_SANS_BOLD)):
            return
        self.add_font("DejaVu", "", DEJAVU_SANS)
        self.add_font("DejaVu", "B", DEJAVU_SANS_BOLD)
        self.font_regular = "DejaVu"
        self.font_bold = "DejaVu"
        self.supports_unicode = True

    @property
    def bullet(self) -> str:
        return "•" if self.supports_unicode else "-"

    def prepare_text(self, text: Any) -> str:  # Sanitize text for non-unicode fonts
        value = "" if text is None else str(text)
        if self.supports_unicode:
            return value
        cleaned = value.replace("•", "-").replace("…", "...").replace("’", "'").replace("—", "-")
        return cleaned.encode("latin-1", "ignore").decode("latin-1")

    def cell(self, *args, **kwargs):  # Wrap base cell with text sanitisation
        args_list = list(args)
        if len(args_list) >= 3:
            args_list[2] = self.prepare_text(args_list[2])
        elif "text" in kwargs:
            kwargs["text"] = self.prepare_text(kwargs["text"])
        return super().cell(*args_list, **kwargs)

    def multi_cell(self, *args, **kwargs):  # Wrap base multi_cell with text sanitisation
        args_list = list(args)
        if len(args_list) >= 3:
            args_list[2] = self.prepare_text(args_list[2])
        elif "text" in kwargs:
            kwargs["text"] = self.prepare_text(kwargs["text"])
        return super().multi_cell(*args_list, **kwargs)

    def header(self) -> None:  # Render header banner
        usable = _effective_width(self)
        if self.page_no() == 1:
            line_height = 8
            self.set_font(self.font_bold, "B", 16)
            lines = self.multi_cell(usable, line_height, self.header_title, dry_run=True, output="LINES")
            banner = 6 + max(1, len(lines)) * line_height + 4
            self.set_fill_color(*self.accent)
            self.rect(0, 0, self.w, banner, style="F")
            self.set_text_color(255, 255, 255)
            self.set_xy(self.l_margin, 6)
            self.multi_cell(usable, line_height, self.header_title)
            self.set_text_color(*TEXT)
            self.ln(4)
        else:
            self.set_text_color(80, 80, 80)
            self.set_xy(self.l_margin, 8)
            self.set_font(self.font_bold, "B", 12)
            self.multi_cell(usable, 6, self.header_title)
            mark = self.get_y()
            self.set_draw_color(*self.accent)
            self.set_line_width(0.4)
            self.line(self.l_margin, mark + 1, self.w - self.r_margin, mark + 1)
            self.set_text_color(*TEXT)
            self.ln(4)

    def footer(self) -> None:  # Render footer with pagination
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font(self.font_regular, "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _section_title(pdf: ReportPDF, title: str) -> None:  # Render styled section title
    if pdf.get_y() + 24 > pdf.page_break_trigger:
        pdf.add_page()
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf.font_bold, "B", 13)
    pdf.cell(0, 9, title, new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _meta_block(pdf: ReportPDF, rows: List[Tuple[str, str]]) -> None:  # Draw two-column label/value grid
    col = _effective_width(pdf) / 2.0
    line = 6
    for idx in range(0, len(rows), 2):
        left = rows[idx]
        right = rows[idx + 1] if idx + 1 < len(rows) else ("", "")
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 10)
        pdf.cell(col, line, left[0], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, right[0], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf.font_bold, "B", 11)
        pdf.cell(col, line, left[1], new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.cell(col, line, right[1], new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _muted_note(pdf: ReportPDF, text: str) -> None:
    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.multi_cell(_effective_width(pdf), 6, text)
    pdf.set_text_color(*TEXT)
    pdf.ln(4)


def _bullets(pdf: ReportPDF, items: Sequence[str], empty: str) -> None:  # Render a bullet list
    if not items:
        _muted_note(pdf, empty)
        return
    pdf.set_text_color(*TEXT)
    pdf.set_font(pdf.font_regular, "", 11)
    for item in items:
        pdf.set_x(pdf.l_margin)
        pdf.multi_cell(_effective_width(pdf), 6, f"{pdf.bullet} {item}")
    pdf.ln(2)


def _paragraph(pdf: ReportPDF, text: str) -> None:
    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*TEXT)
    pdf.set_font(pdf.font_regular, "", 11)
    pdf.multi_cell(_effective_width(pdf), 6, text or "-")
    pdf.ln(2)


def _table_header(pdf: ReportPDF, headers: Sequence[str], widths: Sequence[float]) -> None:
    pdf.set_x(pdf.l_margin)
    pdf.set_fill_color(*ACCENT)
    pdf.set_text_color(255, 255, 255)
    pdf.set_font(pdf.font_bold, "B", 10)
    for title, width in zip(headers, widths):
        pdf.cell(width, 8, title, align="L", fill=True)
    pdf.ln(8)
    pdf.set_text_color(*TEXT)


def _table(pdf: ReportPDF, headers: Sequence[str], fractions: Sequence[float], rows: Sequence[Sequence[str]], empty: str) -> None:  # Draw zebra table
    widths = [_effective_width(pdf) * fraction for fraction in fractions]
    _table_header(pdf, headers, widths)
    if not rows:
        _muted_note(pdf, empty)
        return
    pdf.set_font(pdf.font_regular, "", 10)
    for idx, row in enumerate(rows):
        if pdf.get_y() + 7 > pdf.page_break_trigger:
            pdf.add_page()
            _table_header(pdf, headers, widths)
            pdf.set_font(pdf.font_regular, "", 10)
        fill = idx % 2 == 0
        if fill:
            pdf.set_fill_color(*ROW_FILL)
        pdf.set_x(pdf.l_margin)
        for value, width in zip(row, widths):
            pdf.cell(width, 7, _fit(pdf, value, width), border=0, fill=fill)
        pdf.ln(7)
    pdf.ln(2)


def _fit(pdf: ReportPDF, value: str, width: float) -> str:  # Truncate a cell value to its column
    text = pdf.prepare_text(value)
    if pdf.get_string_width(text) <= width - 2:
        return text
    while text and pdf.get_string_width(text + "...") > width - 2:
        text = text[:-1]
    return text + "..."


def _score_box(pdf: ReportPDF, report: InterviewReport) -> None:  # Highlight overall score
    width = _effective_width(pdf)
    top = pdf.get_y()
    pdf.set_fill_color(*SOFT_ACCENT_BG)
    pdf.rect(pdf.l_margin, top, width, 18, style="F")
    pdf.set_xy(pdf.l_margin + 6, top + 5)
    pdf.set_text_color(*MUTED)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.cell(width * 0.6, 8, "Overall Score")
    pdf.set_xy(pdf.l_margin, top + 4)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf.font_bold, "B", 16)
    pdf.cell(width - 6, 10, f"{report.overallScore}/100", align="R")
    pdf.set_y(top + 22)
    pdf.set_text_color(*TEXT)
    _paragraph(pdf, report.summary)


def _summarize(text: str) -> str:  # Shorten long answers for the transcript
    cleaned = " ".join(text.split()) if text else ""
    if not cleaned:
        return "-"
    segments = [seg.strip() for seg in re.split(r"(?<=[.!?])\s+", cleaned) if seg.strip()]
    snippet = " ".join(segments[:4]) or cleaned
    return textwrap.shorten(snippet, width=480, placeholder="...")


def _calc_text_height(pdf: ReportPDF, width: float, text: str, line_height: float) -> float:  # Estimate multi-cell height
    if not text:
        return line_height
    lines = pdf.multi_cell(width, line_height, text, dry_run=True, output="LINES")
    if isinstance(lines, (list, tuple)):
        return line_height * max(1, len(lines))
    return max(1, math.ceil(len(text) / 90)) * line_height


def _render_exchange(pdf: ReportPDF, index: int, exchange: Exchange) -> None:  # Render one Q&A block
    line = 5.5
    width = _effective_width(pdf) - 4
    question = f"Q{index}: {exchange.question_text.strip()}"
    answer = f"A: {_summarize(exchange.user_answer_text or '')}" if exchange.user_answer_text else "A: (not answered)"
    score = f"Score: {exchange.answer_score}/100" if exchange.answer_score is not None else "Score: -"
    feedback = exchange.feedback.strip()
    block = (
        _calc_text_height(pdf, width, question, line)
        + _calc_text_height(pdf, width, answer, line)
        + line
        + (_calc_text_height(pdf, width, feedback, line) if feedback else 0)
        + 6
    )
    if pdf.get_y() + block > pdf.page_break_trigger:
        pdf.add_page()
    origin_x = pdf.l_margin
    origin_y = pdf.get_y()
    pdf.set_fill_color(248, 249, 255)
    pdf.rect(origin_x, origin_y, _effective_width(pdf), block, style="F")
    pdf.set_xy(origin_x + 2, origin_y + 2)
    pdf.set_text_color(*ACCENT)
    pdf.set_font(pdf.font_bold, "B", 10)
    pdf.multi_cell(width, line, question)
    pdf.set_x(origin_x + 2)
    pdf.set_text_color(60, 60, 60)
    pdf.set_font(pdf.font_regular, "", 10)
    pdf.multi_cell(width, line, answer)
    pdf.set_x(origin_x + 2)
    pdf.set_text_color(*TEXT)
    pdf.set_font(pdf.font_bold, "B", 9)
    pdf.multi_cell(width, line, f"{score}  |  {exchange.question_type.title()}")
    if feedback:
        pdf.set_x(origin_x + 2)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf.font_regular, "", 9)
        pdf.multi_cell(width, line, feedback)
    bottom = max(pdf.get_y(), origin_y + block - 2)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    pdf.line(origin_x, bottom + 1, origin_x + _effective_width(pdf), bottom + 1)
    pdf.set_y(bottom + 4)
    pdf.set_text_color(*TEXT)


def render_report_pdf(  # Build PDF payload for a completed session
    session: Session,
    report: InterviewReport,
    exchanges: Sequence[Exchange] = (),
) -> bytes:
    pdf = ReportPDF()
    pdf.use_unicode_fonts()
    pdf.alias_nb_pages()
    title = session.job_title or "Mock Interview"
    name = session.candidate_name or "Candidate"
    pdf.header_title = f"{title} - {name} - Interview Report"
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Session Overview")
    _meta_block(
        pdf,
        [
            ("Session ID", session.id),
            ("Candidate", name),
            ("Role", session.job_title or "-"),
            ("Company", session.company_name or "-"),
            ("Interviewer", f"{session.interviewer.name}, {session.interviewer.title}"),
            ("Planned Duration", f"{session.duration_minutes} minutes"),
            ("Started", _format_datetime(_parse_datetime(session.created_at))),
            ("Completed", _format_datetime(_parse_datetime(session.completed_at or report.generatedAt))),
        ],
    )

    _section_title(pdf, "Result")
    _score_box(pdf, report)

    stats = report.statistics
    _section_title(pdf, "Session Statistics")
    _meta_block(
        pdf,
        [
            ("Speaking Time", _format_duration(stats.totalDurationSeconds)),
            ("Average Pace", f"{stats.averageWPM} wpm"),
            ("Filler Words", str(stats.totalFillerWords)),
            ("Long Pauses", str(stats.totalLongPauses)),
            ("Questions Answered", f"{stats.questionsAnswered} of {stats.totalQuestions}"),
            ("Questions Skipped", str(stats.questionsSkipped)),
        ],
    )

    _section_title(pdf, "Category Breakdown")
    _table(
        pdf,
        ["Category", "Average Score", "Answered"],
        [0.5, 0.25, 0.25],
        [(item.category.title(), f"{item.averageScore}/100", str(item.answered)) for item in report.categoryBreakdown],
        "No categories scored.",
    )

    dims = report.dimensions
    _section_title(pdf, "Answer Dimensions")
    _table(
        pdf,
        ["STAR Completeness", "Specificity", "Relevance", "Impact"],
        [0.25, 0.25, 0.25, 0.25],
        [(f"{dims.starCompleteness:.1f}/10", f"{dims.specificity:.1f}/10", f"{dims.relevance:.1f}/10", f"{dims.impact:.1f}/10")],
        "No dimensions recorded.",
    )

    _section_title(pdf, "Key Strengths")
    _bullets(pdf, report.keyStrengths, "No strengths recorded.")

    _section_title(pdf, "Areas for Improvement")
    _bullets(pdf, report.areasForImprovement, "No improvement areas recorded.")

    _section_title(pdf, "Detailed Feedback")
    _paragraph(pdf, report.detailedFeedback)

    _section_title(pdf, "Recommendations")
    _bullets(pdf, report.recommendations, "No recommendations.")

    _section_title(pdf, "Question Scores")
    _table(
        pdf,
        ["Question", "Type", "Score"],
        [0.64, 0.18, 0.18],
        [(item.question, item.type.title(), f"{item.score}/100") for item in report.questionScores],
        "No questions scored.",
    )

    if exchanges:
        _section_title(pdf, "Question & Answer Transcript")
        for index, exchange in enumerate(sorted(exchanges, key=lambda ex: ex.order_index), start=1):
            _render_exchange(pdf, index, exchange)

    return bytes(pdf.output())


__all__ = ["ReportPDF", "render_report_pdf"]
