# backend/services/normalizer.py
import logging
from typing import Any, List, Optional

from pydantic import ValidationError

from models import (
    EducationEntry,
    EmploymentEntry,
    IdentityLocation,
    LocationEntry,
    PersonFragment,
    ProviderResult,
    RawAiFindings,
    RawIdentityProfile,
    SocialProfile,
)


# --------- validation boundary ---------
def parse_ai_findings(raw: Any) -> RawAiFindings:
    """Validate whatever the AI provider returned; anything unusable becomes empty findings."""
    if isinstance(raw, RawAiFindings):
        return raw
    if not isinstance(raw, dict):
        return RawAiFindings()
    try:
        return RawAiFindings.model_validate(raw)
    except ValidationError as e:
        logging.warning(f"[normalizer] AI payload failed validation: {e.error_count()} error(s)")
        return RawAiFindings()


def parse_identity_profile(raw: Any) -> RawIdentityProfile:
    if isinstance(raw, RawIdentityProfile):
        return raw
    if not isinstance(raw, dict):
        return RawIdentityProfile()
    try:
        return RawIdentityProfile.model_validate(raw)
    except ValidationError as e:
        logging.warning(f"[normalizer] identity payload failed validation: {e.error_count()} error(s)")
        return RawIdentityProfile()


# --------- helpers ---------
def _place(loc: Optional[IdentityLocation]) -> str:
    """'city, region, country' with absent parts skipped."""
    if loc is None:
        return ""
    parts = [loc.locality, loc.region, loc.country]
    joined = ", ".join(p.strip() for p in parts if p and p.strip())
    return joined or (loc.name or "").strip()


def _school_location(loc: Optional[IdentityLocation]) -> str:
    if loc is None:
        return ""
    text = loc.locality or ""
    if loc.region:
        text += f", {loc.region}"
    return text


# --------- AI provider ---------
def normalize_ai_result(result: Optional[ProviderResult]) -> PersonFragment:
    """
    AI findings pass through nearly as-is; the AI path carries no education.
    The free-text summary is only kept when the investigator found the person.
    """
    if result is None or not result.ok or result.data is None:
        return PersonFragment(source="ai")

    findings = parse_ai_findings(result.data)
    return PersonFragment(
        source="ai",
        employment_history=[
            EmploymentEntry(
                start_date=e.start_date,
                end_date=e.end_date,
                company=e.company,
                position=e.position,
            )
            for e in findings.employment_history
        ],
        location_history=list(findings.location_history),
        legal_appearances=list(findings.legal_appearances),
        press_mentions=list(findings.press_mentions),
        social_media_profiles=list(findings.social_media_profiles),
        company_registrations=list(findings.company_registrations),
        public_comments=list(findings.public_comments),
        others=list(findings.others),
        summary_candidate=findings.short_summary.strip() if findings.found_person else "",
    )


# --------- identity-graph provider ---------
def normalize_identity_result(result: Optional[ProviderResult]) -> PersonFragment:
    """
    Map the identity-graph profile onto the canonical shape.
    Not-ok results, and ok results without a profile, leak nothing.
    """
    if result is None or not result.ok or result.data is None:
        return PersonFragment(source="identity")

    profile = parse_identity_profile(result.data)

    employment = [
        EmploymentEntry(
            start_date=exp.start_date,
            end_date=exp.end_date,
            company=exp.company.name if exp.company else None,
            position=exp.title.name if exp.title else None,
        )
        for exp in profile.experience
    ]

    education = [
        EducationEntry(
            start_date=edu.start_date,
            end_date=edu.end_date,
            school=edu.school.name if edu.school else None,
            institution_type=edu.school.type if edu.school else None,
            location=_school_location(edu.school.location if edu.school else None),
            degree="; ".join(edu.degrees),
        )
        for edu in profile.education
    ]

    profiles = [SocialProfile(platform=p.network, link=p.url) for p in profile.profiles]

    locations: List[LocationEntry] = list(profile.regions)
    for exp in profile.experience:
        label = _place(exp.company.location if exp.company else None)
        if label:
            locations.append(label)
    for edu in profile.education:
        label = _place(edu.school.location if edu.school else None)
        if label:
            locations.append(label)

    return PersonFragment(
        source="identity",
        employment_history=employment,
        education_history=education,
        social_media_profiles=profiles,
        location_history=locations,
        reports_current_role=bool(profile.job_title or profile.job_company_name),
        identity_confidence=profile.match_score,
    )
