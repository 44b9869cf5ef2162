# backend/services/risk_assessor.py
import logging
import os
import re
from functools import lru_cache
from typing import List, Optional, Tuple

from pydantic import BaseModel

from models import CanonicalPerson, Location, RiskAssessment, RiskLevel, RiskSignals
from utils.dates import DateLike, months_between, today, within_years
from utils.helpers import CONFIG_DIR, load_yaml

RISK_KEYWORDS_PATH = os.getenv("TENANTCHECK_RISK_KEYWORDS_PATH", str(CONFIG_DIR / "risk_keywords.yaml"))

# ---- knobs ----
LEGAL_LOOKBACK_YEARS = 7
MOBILITY_LOOKBACK_YEARS = 3
HIGH_CONFIDENCE = 0.9
LOW_CONFIDENCE = 0.6
HIGH_THRESHOLD = 6
MEDIUM_THRESHOLD = 3


class RiskKeywords(BaseModel):
    """Ordered keyword patterns per category, as loaded from risk_keywords.yaml."""

    tenancy: List[str]
    adverse_legal: List[str]
    adverse_press: List[str]
    hostile_comments: List[str]

    def pattern(self, category: str) -> re.Pattern:
        return _compile(tuple(getattr(self, category)))


@lru_cache(maxsize=32)
def _compile(patterns: Tuple[str, ...]) -> re.Pattern:
    if not patterns:
        # matches nothing
        return re.compile(r"(?!x)x")
    return re.compile("|".join(patterns), re.IGNORECASE)


@lru_cache(maxsize=4)
def load_risk_keywords(path: Optional[str] = None) -> RiskKeywords:
    path = path or RISK_KEYWORDS_PATH
    keywords = RiskKeywords.model_validate(load_yaml(path))
    logging.debug(f"[risk] loaded keyword sets from {path}")
    return keywords


def normalize_confidence(value: Optional[float]) -> Optional[float]:
    """Map a 0-1 or 0-100 match score onto 0-1."""
    if value is None:
        return None
    scaled = value / 100 if value > 1 else value
    return max(0.0, min(1.0, scaled))


def risk_level(score: int) -> RiskLevel:
    if score >= HIGH_THRESHOLD:
        return "high"
    if score >= MEDIUM_THRESHOLD:
        return "medium"
    return "low"


def _matches(pattern: re.Pattern, *texts: Optional[str]) -> bool:
    return any(pattern.search(t or "") for t in texts)


def count_recent_moves(person: CanonicalPerson, now: DateLike = None) -> int:
    """
    Locations whose start or end falls inside the mobility window.
    An entry with a start but no end is treated as ongoing (ends now).
    Plain string locations carry no dates and never count.
    """
    ref = today(now)
    moves = 0
    for loc in person.location_history:
        if not isinstance(loc, Location):
            continue
        start, end = loc.starts, loc.ends
        if not (start or end):
            continue
        end_use = end or ref
        if within_years(end_use, MOBILITY_LOOKBACK_YEARS, ref) or within_years(start, MOBILITY_LOOKBACK_YEARS, ref):
            moves += 1
    return moves


def assess_risk(
    person: CanonicalPerson,
    signals: Optional[RiskSignals] = None,
    *,
    now: DateLike = None,
    keywords: Optional[RiskKeywords] = None,
) -> RiskAssessment:
    """
    Score a canonical person against the fixed tenant-risk rule set.
    Rules run in a fixed order and each appends its reason only when it fires.
    """
    signals = signals or RiskSignals()
    keywords = keywords or load_risk_keywords()
    ref = today(now)
    score = 0
    reasons: List[str] = []

    # 1) identity confidence
    confidence = normalize_confidence(signals.identity_confidence)
    if confidence is not None:
        if confidence >= HIGH_CONFIDENCE:
            score -= 1
            reasons.append("High identity confidence")
        elif confidence < LOW_CONFIDENCE:
            score += 1
            reasons.append("Low identity confidence")

    # 2) watchlists
    if signals.watchlist_hit_count > 0:
        score += 6
        reasons.append("Watchlist / sanctions match")

    # 3) legal appearances in the lookback window
    recent_legal = [l for l in person.legal_appearances if within_years(l.date, LEGAL_LOOKBACK_YEARS, ref)]
    tenancy_re = keywords.pattern("tenancy")
    adverse_re = keywords.pattern("adverse_legal")
    tenancy = [l for l in recent_legal if _matches(tenancy_re, l.title, l.description)]
    adverse = [l for l in recent_legal if _matches(adverse_re, l.title, l.description)]
    if tenancy:
        score += min(6, 2 * len(tenancy))
        reasons.append(f"{len(tenancy)} recent tenancy-related legal record(s)")
    elif adverse:
        score += min(4, len(adverse))
        reasons.append(f"{len(adverse)} recent adverse legal record(s)")

    # 4) residential mobility
    moves = count_recent_moves(person, ref)
    if moves >= 5:
        score += 3
        reasons.append("Frequent moves in last 3 years")
    elif moves >= 3:
        score += 2
        reasons.append("Several moves in last 3 years")

    # 5) employment stability
    jobs = person.employment_history
    if not jobs:
        score += 1
        reasons.append("No employment history available")
    else:
        latest = jobs[-1]
        if months_between(latest.start_date, latest.end_date, ref) < 3:
            score += 1
            reasons.append("Short recent employment tenure")
        total_months = sum(months_between(j.start_date, j.end_date, ref) for j in jobs)
        if total_months >= 60:
            score -= 1
            reasons.append("5+ years cumulative employment history")

    # 6) adverse press
    press_re = keywords.pattern("adverse_press")
    adverse_press = [p for p in person.press_mentions if _matches(press_re, p.topic, p.description)]
    if adverse_press:
        score += min(2, len(adverse_press))
        reasons.append("Adverse media mentions")

    # 7) public comments
    comments_re = keywords.pattern("hostile_comments")
    if any(_matches(comments_re, c.content) for c in person.public_comments):
        score += 1
        reasons.append("Concerning public comments")

    return RiskAssessment(score=score, level=risk_level(score), reasons=reasons)
