# backend/services/summary_builder.py
import re
from datetime import date
from typing import Dict, List, Optional, Sequence

from models import CanonicalPerson, EducationEntry, Location
from utils.dates import DateLike, parse_date, today, years_between
from utils.helpers import title_case

MAX_SENTENCES = 3

# Rank degrees roughly: PhD > Master's > Bachelor's > Associate > Diploma/Cert
DEGREE_RANKS: Dict[str, int] = {
    "phd": 5,
    "ph.d": 5,
    "doctorate": 5,
    "doctor of philosophy": 5,
    "masters": 4,
    "master": 4,
    "msc": 4,
    "m.sc": 4,
    "ma": 4,
    "m.a": 4,
    "meng": 4,
    "mba": 4,
    "mfa": 4,
    "bachelors": 3,
    "bachelor": 3,
    "bsc": 3,
    "b.sc": 3,
    "ba": 3,
    "b.a": 3,
    "beng": 3,
    "bba": 3,
    "bed": 3,
    "associate": 2,
    "associates": 2,
    "assoc": 2,
    "aa": 2,
    "as": 2,
    "diploma": 1,
    "cert": 1,
    "certificate": 1,
}

# Order matters: first match wins.
DEGREE_NAMES = [
    (r"phd|ph\.d|doctor of philosophy|doctorate", "Ph.D."),
    (r"mba", "MBA"),
    (r"msc|m\.sc|master of science|masters", "Master of Science"),
    (r"ma|m\.a|master of arts", "Master of Arts"),
    (r"meng|m\.eng|master of engineering", "Master of Engineering"),
    (r"bsc|b\.sc|bachelor of science|bachelors", "Bachelor of Science"),
    (r"ba|b\.a|bachelor of arts", "Bachelor of Arts"),
    (r"beng|b\.eng|bachelor of engineering", "Bachelor of Engineering"),
    (r"associates?", "Associate Degree"),
    (r"diploma", "Diploma"),
    (r"certificate|cert", "Certificate"),
]


def _word(pattern: str) -> re.Pattern:
    # keys like "ma" or "as" must not match inside "diploma" or "class"
    return re.compile(rf"(?<![a-z])(?:{pattern})(?![a-z])")


_RANK_RES = [(_word(re.escape(k)), v) for k, v in DEGREE_RANKS.items()]
_NAME_RES = [(_word(p), name) for p, name in DEGREE_NAMES]

_CANADA_RE = re.compile(r"(^|[, ])canada\b")
_US_RE = re.compile(r"united states|\busa\b|u\.s\.a\.|u\.s\.")

# ---- claim heuristics shared by both summaries ----
CLAIM_PATTERNS = {
    "work": re.compile(r"\b(?:worked at|across) \d+ compan(?:y|ies)\b", re.I),
    "years": re.compile(r"(?:years?|months?) of experience|\b\d+(?:\.\d+)? (?:years?|months?)\b", re.I),
    "lived": re.compile(
        r"lived in \d+ countries|lived in (?:canada|united states)|location history (?:shows|spans)", re.I
    ),
    "current": re.compile(r"\b(?:currently|presently)\s+\w+", re.I),
}

_SENTENCE_SPLIT = re.compile(r"(?<=[.!?])\s+(?=[A-Z0-9])")


# --------- education ---------
def degree_rank(degree: Optional[str]) -> int:
    if not degree:
        return 0
    low = degree.lower()
    return max((v for rx, v in _RANK_RES if rx.search(low)), default=0)


def normalize_degree_name(degree: Optional[str]) -> Optional[str]:
    if not degree:
        return None
    low = degree.lower()
    for rx, name in _NAME_RES:
        if rx.search(low):
            return name
    return title_case(degree)


def extract_grad_year(entry: EducationEntry) -> Optional[int]:
    d = parse_date(entry.end_date) or parse_date(entry.start_date)
    return d.year if d else None


def pick_top_education(education: Sequence[EducationEntry]) -> Optional[EducationEntry]:
    """Highest degree rank wins; ties go to the most recent graduation year, then to the earlier entry."""
    best, best_rank, best_year = None, -1, -1
    for entry in education:
        rank = degree_rank(entry.degree)
        year = extract_grad_year(entry) or -1
        if rank > best_rank or (rank == best_rank and year > best_year):
            best, best_rank, best_year = entry, rank, year
    return best


# --------- locations ---------
def country_from_string(value: str) -> Optional[str]:
    low = value.lower()
    if _CANADA_RE.search(low):
        return "Canada"
    if _US_RE.search(low):
        return "United States"
    return None


def _country_of(loc) -> Optional[str]:
    if isinstance(loc, str):
        return country_from_string(loc)
    if isinstance(loc, Location) and loc.country and loc.country.strip():
        return country_from_string(loc.country) or title_case(loc.country)
    return None


def _countries(person: CanonicalPerson) -> List[str]:
    out: List[str] = []
    seen = set()
    for loc in person.location_history:
        country = _country_of(loc)
        if country and country.lower() not in seen:
            seen.add(country.lower())
            out.append(country)
    return out


def join_with_and(items: Sequence[str]) -> str:
    if len(items) <= 2:
        return " and ".join(items)
    return ", ".join(items[:-1]) + ", and " + items[-1]


# --------- employment ---------
def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"


def _span_text(years: float) -> str:
    if not years:
        return ""
    if years >= 1:
        whole = int(years) if years == int(years) else years
        return f"{whole} year" if whole == 1 else f"{whole} years"
    return _plural(max(1, int(years * 12 + 0.5)), "month")


def _current_job(person: CanonicalPerson):
    jobs = person.employment_history
    if not jobs:
        return None
    for job in jobs:
        if not job.end_date:
            return job
    dated_end = [j for j in jobs if parse_date(j.end_date)]
    if dated_end:
        return max(dated_end, key=lambda j: parse_date(j.end_date))
    dated_start = [j for j in jobs if parse_date(j.start_date)]
    if dated_start:
        return max(dated_start, key=lambda j: parse_date(j.start_date))
    return jobs[0]


def _employment_sentence(person: CanonicalPerson, name: str, ref: date) -> str:
    jobs = person.employment_history
    companies: List[str] = []
    for job in jobs:
        key = (job.company or "").strip().lower()
        if key and key not in companies:
            companies.append(key)
    starts = [d for d in (parse_date(j.start_date) for j in jobs) if d]
    ends = [parse_date(j.end_date) or ref for j in jobs]
    span = _span_text(years_between(min(starts) if starts else None, max(ends) if ends else None))
    current = _current_job(person)

    if not (companies or span or (current and (current.position or current.company))):
        return ""
    sentence = f"{name} has {span or 'professional'} experience"
    if companies:
        sentence += f" across {len(companies)} compan{'y' if len(companies) == 1 else 'ies'}"
    if current and (current.position or current.company):
        role = title_case(current.position) if current.position else "working"
        at = f" at {title_case(current.company)}" if current.company else ""
        sentence += f". Currently {role}{at}"
    return sentence + "."


def _education_sentence(person: CanonicalPerson) -> str:
    top = pick_top_education(person.education_history)
    if top is None:
        return ""
    degree = normalize_degree_name(top.degree)
    school = title_case(top.school)
    year = extract_grad_year(top)
    bits = []
    if degree and school:
        bits.append(f"a {degree} from {school}")
    elif degree:
        bits.append(degree)
    elif school:
        bits.append(f"studies at {school}")
    if not bits:
        return ""
    if year:
        bits.append(f"({year})")
    return f"Education includes {' '.join(bits)}."


def _location_sentence(person: CanonicalPerson) -> str:
    countries = _countries(person)
    if not countries:
        return ""
    if len(countries) == 1:
        return f"Location history shows time in {countries[0]}."
    return f"Location history spans {join_with_and(countries)}."


def synthesize_summary(person: CanonicalPerson, full_name: str, *, now: DateLike = None) -> str:
    """
    Deterministic summary built only from structured facts:
    employment span and current role, top credential, countries lived in.
    """
    name = (full_name or "").strip() or "This person"
    ref = today(now)
    parts = [
        _employment_sentence(person, name, ref),
        _education_sentence(person),
        _location_sentence(person),
    ]
    return " ".join(p for p in parts if p)


# --------- merging ---------
def _clean(text: Optional[str]) -> str:
    text = re.sub(r"\s+", " ", text or "")
    return re.sub(r"[ \t]+\.", ".", text).strip()


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]


def _sentence_key(sentence: str) -> str:
    return re.sub(r"[^a-z0-9 ]+", "", sentence.lower()).strip()


def claims(text: str) -> set:
    return {name for name, rx in CLAIM_PATTERNS.items() if rx.search(text)}


def merge_summaries(ai_summary: Optional[str], synthetic: Optional[str]) -> str:
    """
    Combine the AI free-text summary with the synthetic one.
    The synthetic text is appended only when it makes a claim the AI summary
    lacks; repeated sentences are then dropped and the result capped.
    """
    ai = _clean(ai_summary)
    syn = _clean(synthetic)
    if not ai or not syn:
        return ai or syn

    ai_claims = claims(ai)
    additions = split_sentences(syn) if claims(syn) - ai_claims else []

    out: List[str] = []
    seen = set()
    for sentence in split_sentences(ai) + additions:
        key = _sentence_key(sentence)
        if key not in seen:
            seen.add(key)
            out.append(sentence)
    return " ".join(out[:MAX_SENTENCES])
