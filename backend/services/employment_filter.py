# backend/services/employment_filter.py
import logging
import re
from typing import Iterable, List, Optional

from models import EmploymentEntry

# Placeholder/generic names the investigators tend to invent
INVALID_COMPANY_PATTERNS = [
    re.compile(r"^(xxx|cccc|zzz|[a-z]{1,4})$", re.I),
    re.compile(r"^(company|inc|ltd|llc)$", re.I),
    re.compile(r"^(test|sample|example)$", re.I),
    re.compile(r"^(unknown|n/a|tbd)$", re.I),
    re.compile(r"^(fraud|fake)$", re.I),
    re.compile(r"^fraud\s+ai$", re.I),
]
REJECTED_COMPANIES = {"xxx", "ccc", "zzz", "fraud ai", "fraud ai inc"}


def is_valid_company_name(company: Optional[str]) -> bool:
    if not company or len(company) < 2:
        return False
    if company.lower() in REJECTED_COMPANIES:
        logging.info(f"[employment_filter] rejected company {company!r}")
        return False
    if any(p.search(company) for p in INVALID_COMPANY_PATTERNS):
        logging.info(f"[employment_filter] rejected company pattern {company!r}")
        return False
    return True


def is_valid_position(position: Optional[str]) -> bool:
    return bool(position) and position.lower() != "xxx" and len(position) > 2


def filter_employment(entries: Iterable[EmploymentEntry]) -> List[EmploymentEntry]:
    """Drop entries whose company or position looks hallucinated."""
    entries = list(entries)
    kept = [e for e in entries if is_valid_company_name(e.company) and is_valid_position(e.position)]
    if len(kept) < len(entries):
        logging.info(f"[employment_filter] kept {len(kept)} of {len(entries)} employment entries")
    return kept
