"""Keyword heuristics over job titles and descriptions."""
from __future__ import annotations

import re
from typing import Literal, Optional

from .types import Seniority

CompanyType = Literal["startup", "enterprise", "tech", "generic"]

_SENIORITY_RULES = [
    (r"ceo|cto|cfo|cpo|\bvp\b|vice president|chief|director|head of", "executive"),
    (r"lead|principal|staff|architect|manager", "lead"),
    (r"senior|\bsr\.", "senior"),
    (r"junior|\bjr\.|entry|associate|intern", "entry"),
]

_INDUSTRY_RULES = [
    (r"software|tech|engineering|developer|saas|platform", "tech"),
    (r"finance|banking|fintech|investment|trading", "finance"),
    (r"healthcare|medical|hospital|patient|clinical", "healthcare"),
    (r"education|learning|teaching|student|school", "education"),
    (r"ecommerce|e-commerce|retail|shopping|marketplace", "ecommerce"),
    (r"consulting|advisory|strategy", "consulting"),
    (r"media|journalism|content|publishing", "media"),
    (r"nonprofit|ngo|charity|social impact", "nonprofit"),
]

_COMPANY_RULES = [
    (r"startup|early stage|seed|series a|fast-paced|fast moving|agile|scrappy", "startup"),
    (r"enterprise|fortune 500|global|established|fortune 1000|multinational", "enterprise"),
    (r"tech|technology|software|saas|platform|engineering|developer", "tech"),
]


def detect_seniority(job_title: Optional[str]) -> Seniority:
    title = (job_title or "").lower()
    for pattern, level in _SENIORITY_RULES:
        if re.search(pattern, title):
            return level  # type: ignore[return-value]
    return "mid"


def detect_industry(*texts: Optional[str]) -> Optional[str]:
    text = " ".join(t for t in texts if t).lower()
    for pattern, industry in _INDUSTRY_RULES:
        if re.search(pattern, text):
            return industry
    return None


def detect_company_type(job_context: Optional[str], company_name: Optional[str]) -> CompanyType:
    if not job_context and not company_name:
        return "generic"
    text = f"{job_context or ''} {company_name or ''}".lower()
    for pattern, kind in _COMPANY_RULES:
        if re.search(pattern, text):
            return kind  # type: ignore[return-value]
    return "generic"


__all__ = ["CompanyType", "detect_company_type", "detect_industry", "detect_seniority"]
