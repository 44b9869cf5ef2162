import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

from dotenv import load_dotenv

from models import (
    BackgroundCheckReport,
    ProspectInfo,
    ProviderResult,
    RawAiFindings,
    RawIdentityProfile,
    RiskSignals,
)
from services.ai_researcher import fetch_ai_findings
from services.identity_lookup import fetch_identity_profile
from services.merger import merge_fragments
from services.normalizer import normalize_ai_result, normalize_identity_result, parse_ai_findings
from services.risk_assessor import assess_risk
from services.summary_builder import merge_summaries, synthesize_summary

load_dotenv()

Provider = Callable[[ProspectInfo], Awaitable[ProviderResult]]

AI_CRASHED = "AI provider crashed"
IDENTITY_CRASHED = "Identity provider crashed"


def new_report_id() -> str:
    return "BCR-" + uuid.uuid4().hex[:6].upper()


def _settle(outcome: Any, crash_message: str) -> ProviderResult:
    """Turn a gather() outcome into a ProviderResult; exceptions become ok=False."""
    if isinstance(outcome, BaseException):
        logging.error(f"[pipeline] {crash_message}: {outcome!r}")
        return ProviderResult(ok=False, error=crash_message)
    if isinstance(outcome, ProviderResult):
        return outcome
    if isinstance(outcome, dict):
        return ProviderResult.model_validate(outcome)
    logging.error(f"[pipeline] {crash_message}: unexpected result type {type(outcome).__name__}")
    return ProviderResult(ok=False, error=crash_message)


def build_report(
    prospect: ProspectInfo,
    ai_result: Optional[ProviderResult],
    identity_result: Optional[ProviderResult],
    *,
    now: Optional[datetime] = None,
    report_id: Optional[str] = None,
    watchlist_hit_count: int = 0,
) -> BackgroundCheckReport:
    """
    Pure fusion step: normalize both provider results, merge them, write the
    summary and score the risk. Total over every provider outcome.
    """
    now = now or datetime.now(timezone.utc)
    ai_result = ai_result or ProviderResult(ok=False, error="AI provider not called")
    identity_result = identity_result or ProviderResult(ok=False, error="Identity provider not called")

    ai_fragment = normalize_ai_result(ai_result)
    identity_fragment = normalize_identity_result(identity_result)
    person = merge_fragments(ai_fragment, identity_fragment)

    synthetic = synthesize_summary(person, prospect.full_name, now=now)
    person.short_summary = merge_summaries(ai_fragment.summary_candidate, synthetic)

    identity_ok = bool(identity_result.ok)
    signals = RiskSignals(
        identity_confidence=identity_fragment.identity_confidence if identity_ok else None,
        watchlist_hit_count=watchlist_hit_count,
    )
    risk = assess_risk(person, signals, now=now)

    ai_found = bool(ai_result.ok and parse_ai_findings(ai_result.data).found_person)
    report = BackgroundCheckReport(
        report_id=report_id or new_report_id(),
        generated_at=now,
        prospect=prospect,
        person=person,
        risk=risk,
        found_result=ai_found or identity_ok,
        ai_ok=bool(ai_result.ok),
        identity_ok=identity_ok,
        ai_error=ai_result.error,
        identity_error=identity_result.error,
        both_crashed=ai_result.error == AI_CRASHED and identity_result.error == IDENTITY_CRASHED,
    )
    logging.info(
        f"[pipeline] report {report.report_id}: found={report.found_result} "
        f"risk={risk.level} ({risk.score})"
    )
    return report


async def run_background_check(
    prospect: ProspectInfo,
    *,
    ai_provider: Optional[Provider] = None,
    identity_provider: Optional[Provider] = None,
    now: Optional[datetime] = None,
    report_id: Optional[str] = None,
) -> BackgroundCheckReport:
    """Run both providers concurrently (all-settled) and fuse their results."""
    ai_provider = ai_provider or fetch_ai_findings
    identity_provider = identity_provider or fetch_identity_profile

    logging.info(f"[pipeline] background check for {prospect.full_name!r}")
    ai_outcome, identity_outcome = await asyncio.gather(
        ai_provider(prospect),
        identity_provider(prospect),
        return_exceptions=True,
    )
    ai_result: ProviderResult[RawAiFindings] = _settle(ai_outcome, AI_CRASHED)
    identity_result: ProviderResult[RawIdentityProfile] = _settle(identity_outcome, IDENTITY_CRASHED)
    if not ai_result.ok:
        logging.warning(f"[pipeline] AI provider not ok: {ai_result.error}")
    if not identity_result.ok:
        logging.warning(f"[pipeline] identity provider not ok: {identity_result.error}")

    return build_report(prospect, ai_result, identity_result, now=now, report_id=report_id)
