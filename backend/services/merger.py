# backend/services/merger.py
from typing import Iterable, List, Optional

from models import CanonicalPerson, Location, LocationEntry, PersonFragment
from utils.helpers import normalize_label


def location_label(entry: LocationEntry) -> str:
    if isinstance(entry, Location):
        return entry.label()
    return (entry or "").strip() if isinstance(entry, str) else ""


def dedupe_locations(entries: Iterable[LocationEntry]) -> List[LocationEntry]:
    """Keep the first entry for each normalized label, in arrival order. Empty labels are dropped."""
    seen = set()
    out: List[LocationEntry] = []
    for entry in entries:
        key = normalize_label(location_label(entry))
        if not key or key in seen:
            continue
        seen.add(key)
        out.append(entry)
    return out


def merge_fragments(ai: Optional[PersonFragment], identity: Optional[PersonFragment]) -> CanonicalPerson:
    """
    AI fragment is the base, identity fragment the overlay.

    - employment: identity experience replaces the AI list when the identity
      profile reports its own current role, otherwise it is appended
    - education: identity education replaces the base when present
    - social profiles: AI ++ identity
    - locations: AI ++ identity, then de-duplicated by label
    The short summary is left to the summary builder.
    """
    ai = ai or PersonFragment(source="ai")
    identity = identity or PersonFragment(source="identity")

    if identity.reports_current_role:
        employment = list(identity.employment_history)
    else:
        employment = list(ai.employment_history) + list(identity.employment_history)

    return CanonicalPerson(
        employment_history=employment,
        education_history=list(identity.education_history or ai.education_history),
        legal_appearances=list(ai.legal_appearances),
        press_mentions=list(ai.press_mentions),
        social_media_profiles=list(ai.social_media_profiles) + list(identity.social_media_profiles),
        company_registrations=list(ai.company_registrations),
        public_comments=list(ai.public_comments),
        others=list(ai.others),
        location_history=dedupe_locations(list(ai.location_history) + list(identity.location_history)),
    )
