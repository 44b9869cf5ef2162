# backend/services/identity_lookup.py
import asyncio
import logging
import os
from typing import Any, Dict, List, Optional

import requests

from models import ProspectInfo, ProviderResult, RawIdentityProfile
from services.employment_filter import is_valid_company_name, is_valid_position
from utils.helpers import _require_env, load_app_settings

# ---- Env knobs ----
PDL_BASE_URL = os.getenv("PDL_BASE_URL", "https://api.peopledatalabs.com")
IDENTITY_LOOKUP_ENABLE = os.getenv("IDENTITY_LOOKUP_ENABLE", "1") not in ("0", "false", "False")

REQUIRED_FIELDS = ("first_name", "last_name", "city", "state", "dob")


def build_identify_params(prospect: ProspectInfo) -> Dict[str, str]:
    """People Data Labs identify parameters; absent values are skipped."""
    params = {
        "first_name": prospect.first_name,
        "last_name": prospect.last_name,
        "middle_name": prospect.other_names,
        "locality": prospect.city,
        "region": prospect.state,
        "birth_date": prospect.dob,
    }
    return {k: str(v) for k, v in params.items() if v}


def select_best_match(matches: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    best = None
    for m in matches or []:
        if not isinstance(m, dict):
            continue
        if best is None or (m.get("match_score") or 0) > (best.get("match_score") or 0):
            best = m
    return best


def _filter_experience(profile: RawIdentityProfile) -> RawIdentityProfile:
    kept = [
        exp
        for exp in profile.experience
        if is_valid_company_name(exp.company.name if exp.company else None)
        and is_valid_position(exp.title.name if exp.title else None)
    ]
    logging.info(f"[identity_lookup] experience entries: {len(profile.experience)} -> {len(kept)}")
    return profile.model_copy(update={"experience": kept})


def identify_person(prospect: ProspectInfo, timeout: Optional[float] = None) -> ProviderResult[RawIdentityProfile]:
    """
    Blocking identify call. Never raises; every failure becomes ok=False.
    """
    if not IDENTITY_LOOKUP_ENABLE:
        return ProviderResult(ok=False, error="Identity lookup disabled")
    if any(not getattr(prospect, f) for f in REQUIRED_FIELDS):
        return ProviderResult(ok=False, error="Missing a form field")

    if timeout is None:
        timeout = load_app_settings()["provider_timeout_seconds"]

    try:
        api_key = _require_env("PDL_API_KEY")
        resp = requests.get(
            f"{PDL_BASE_URL.rstrip('/')}/v5/person/identify",
            params=build_identify_params(prospect),
            headers={"X-Api-Key": api_key},
            timeout=timeout,
        )
        try:
            body = resp.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}

        if not resp.ok:
            err = body.get("error")
            message = (err.get("message") if isinstance(err, dict) else None) or body.get("message")
            logging.warning(f"[identity_lookup] HTTP {resp.status_code}")
            return ProviderResult(ok=False, error=message or f"PDL error {resp.status_code}")

        if body.get("status") != 200:
            return ProviderResult(ok=False, error="No match found")

        match = select_best_match(body.get("matches") or [])
        if match is None:
            return ProviderResult(ok=False, error="No match found")

        data = match.get("data") if isinstance(match.get("data"), dict) else {}
        profile = RawIdentityProfile.model_validate({**data, "match_score": match.get("match_score")})
        return ProviderResult(ok=True, data=_filter_experience(profile))
    except requests.RequestException as e:
        logging.warning(f"[identity_lookup] request failed: {e}")
        return ProviderResult(ok=False, error=str(e) or "Identity lookup failed")
    except Exception as e:
        logging.error(f"[identity_lookup] unexpected error: {e}")
        return ProviderResult(ok=False, error="An unexpected error occurred.")


async def fetch_identity_profile(prospect: ProspectInfo) -> ProviderResult[RawIdentityProfile]:
    return await asyncio.to_thread(identify_person, prospect)
