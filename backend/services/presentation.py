# backend/services/presentation.py
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models import CanonicalPerson, Location
from services.merger import location_label
from utils.dates import DateLike, format_month_year, format_range
from utils.helpers import title_case, to_absolute_url

NO_SUMMARY = "No summary available."

# (fill, text) per risk tier
RISK_COLORS: Dict[str, Dict[str, str]] = {
    "low": {"fill": "#C6EFCE", "text": "#166534"},
    "medium": {"fill": "#FFF2CC", "text": "#854D0E"},
    "high": {"fill": "#FFC7CE", "text": "#991B1B"},
}


class ReportRow(BaseModel):
    primary: str
    meta: str = ""
    secondary: str = ""
    link: str = ""


class ReportSection(BaseModel):
    """One titled block of the report; `empty` means rows holds only the empty-state line."""

    title: str
    rows: List[ReportRow] = Field(default_factory=list)
    empty: bool = False


def risk_badge_color(level: Optional[str]) -> Dict[str, str]:
    return RISK_COLORS.get((level or "medium").lower(), RISK_COLORS["medium"])


def risk_label(level: Optional[str]) -> str:
    level = (level or "medium").lower()
    return f"{level[:1].upper()}{level[1:]} Risk"


def _section(title: str, rows: List[ReportRow], empty_text: str) -> ReportSection:
    if rows:
        return ReportSection(title=title, rows=rows)
    return ReportSection(title=title, rows=[ReportRow(primary=empty_text)], empty=True)


def _joined(*parts: Optional[str], sep: str = " • ") -> str:
    return sep.join(p for p in parts if p)


def _month(value: DateLike) -> str:
    return format_month_year(value) if value else ""


def build_sections(person: CanonicalPerson, now: DateLike = None) -> List[ReportSection]:
    """Sections in report order, each with an explicit empty-state row. Education is only present when non-empty."""
    sections: List[ReportSection] = []

    jobs = [
        ReportRow(
            primary=f"{title_case(e.position) or 'Role Unknown'} · {title_case(e.company) or 'Company'}",
            meta=format_range(e.start_date, e.end_date, now),
        )
        for e in person.employment_history
        if e.company or e.position
    ]
    sections.append(_section("Employment History", jobs, "No employment history found."))

    if person.education_history:
        education = [
            ReportRow(
                primary=(title_case(ed.school) or "School") + (f" — {title_case(ed.degree)}" if ed.degree else ""),
                meta=format_range(ed.start_date, ed.end_date, now),
                secondary=_joined(title_case(ed.institution_type), title_case(ed.location)),
            )
            for ed in person.education_history
        ]
        sections.append(ReportSection(title="Education", rows=education))

    legal = [
        ReportRow(
            primary=title_case(l.title) or "Legal record",
            meta=_joined(l.location, _month(l.date), l.plaintiff),
            secondary=l.description or "",
            link=to_absolute_url(l.link),
        )
        for l in person.legal_appearances
    ]
    sections.append(_section("Legal Appearances", legal, "No legal appearances found."))

    companies = [
        ReportRow(primary=title_case(c.name) or "Company", link=to_absolute_url(c.link))
        for c in person.company_registrations
    ]
    sections.append(_section("Company Registrations", companies, "No company registrations found."))

    press = [
        ReportRow(
            primary=title_case(p.topic) or "Mention",
            meta=_month(p.date),
            secondary=p.description or "",
            link=to_absolute_url(p.link),
        )
        for p in person.press_mentions
    ]
    sections.append(_section("Press Mentions", press, "No press mentions found."))

    social = [
        ReportRow(primary=title_case(s.platform) or "Profile", link=to_absolute_url(s.link))
        for s in person.social_media_profiles
    ]
    sections.append(_section("Online / Social Profiles", social, "No social profiles found."))

    locations = []
    for loc in person.location_history:
        row = ReportRow(primary=title_case(location_label(loc)) or "Location")
        if isinstance(loc, Location) and (loc.starts or loc.ends):
            row.meta = format_range(loc.starts, loc.ends, now)
        locations.append(row)
    sections.append(_section("Locations", locations, "No location history found."))

    comments = [
        ReportRow(
            primary=title_case(c.platform) or "Comment",
            meta=_month(c.date),
            secondary=c.content or "",
            link=to_absolute_url(c.link),
        )
        for c in person.public_comments
    ]
    sections.append(_section("Public Comments", comments, "No public comments found."))

    others = [
        ReportRow(primary=title_case(o.platform) or "Other", secondary=o.note or "", link=to_absolute_url(o.link))
        for o in person.others
    ]
    sections.append(_section("Other Online Activity", others, "No additional items found."))

    return sections
