# backend/services/ai_researcher.py
import asyncio
import json
import logging
import re
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from models import ProspectInfo, ProviderResult, RawAiFindings
from services.employment_filter import filter_employment
from utils.helpers import load_app_settings
from utils.web_scraper import search_person_mentions

SearchFn = Callable[..., List[Dict[str, str]]]


def _default_crew_factory():
    from crew import BackgroundCheckCrew

    return BackgroundCheckCrew().background_check_crew()


def gather_web_excerpts(prospect: ProspectInfo, search: Optional[SearchFn] = None,
                        app_settings: Optional[Dict[str, Any]] = None) -> List[Dict[str, str]]:
    search = search or search_person_mentions
    app_settings = app_settings or load_app_settings()
    previous = ", ".join(p for p in [prospect.city2, prospect.state2] if p)
    return search(
        first_name=prospect.first_name,
        last_name=prospect.last_name,
        city=prospect.city,
        region=prospect.state,
        previous_location=previous,
        profile_hint=prospect.social_media_profile,
        max_results=int(app_settings.get("max_web_results", 5)),
        save_to_disk=bool(app_settings.get("cache_scraper_results", False)),
    ) or []


def build_research_notes(excerpts: List[Dict[str, str]]) -> str:
    joined = "\n\n---\n\n".join(
        f"{r.get('title', '')}\n{r.get('body') or r.get('snippet', '')}\n{r.get('url', '')}" for r in excerpts
    )
    return ("### WEB EXCERPTS\n" + joined).strip() if joined else ""


def build_crew_inputs(prospect: ProspectInfo, research_notes: str) -> Dict[str, str]:
    name = " ".join(p for p in [prospect.first_name, prospect.other_names, prospect.last_name] if p)
    return {
        "full_name": name,
        "other_names": prospect.other_names or "None",
        "dob": prospect.dob or "Unknown",
        "location": ", ".join(p for p in [prospect.city, prospect.state] if p) or "Unknown",
        "previous_location": ", ".join(p for p in [prospect.city2, prospect.state2] if p) or "None",
        "email": prospect.email or "Unknown",
        "research_notes": research_notes,
    }


def _clean_raw(raw: str) -> str:
    raw = (raw or "").replace("`", "")
    raw = re.sub(r"^\s*json\s*", "", raw)
    return re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", raw).strip()


def parse_crew_output(result: Any) -> RawAiFindings:
    """
    Accept whatever the crew produced: the pydantic output, a json_dict,
    or raw text holding one JSON object.
    """
    pyd = getattr(result, "pydantic", None)
    if isinstance(pyd, RawAiFindings):
        return pyd
    if pyd is not None and hasattr(pyd, "model_dump"):
        return RawAiFindings.model_validate(pyd.model_dump())

    json_dict = getattr(result, "json_dict", None)
    if isinstance(json_dict, dict):
        return RawAiFindings.model_validate(json_dict)

    raw = result if isinstance(result, str) else getattr(result, "raw", "")
    raw = _clean_raw(raw)
    start, end = raw.find("{"), raw.rfind("}")
    if start == -1 or end <= start:
        raise ValueError("Crew output holds no JSON object")
    return RawAiFindings.model_validate(json.loads(raw[start:end + 1]))


def apply_employment_filter(findings: RawAiFindings) -> RawAiFindings:
    """Drop hallucinated jobs, unless that would drop every one of them."""
    validated = filter_employment(findings.employment_history)
    logging.info(
        f"[ai_research] employment entries: {len(findings.employment_history)} -> {len(validated)}"
    )
    if not validated:
        return findings
    return findings.model_copy(update={"employment_history": validated})


async def fetch_ai_findings(
    prospect: ProspectInfo,
    *,
    crew_factory: Optional[Callable[[], Any]] = None,
    search: Optional[SearchFn] = None,
) -> ProviderResult[RawAiFindings]:
    """
    Web search + CrewAI extraction. Never raises; failures come back as ok=False.
    When the web search finds nothing the LLM is not called at all.
    """
    try:
        excerpts = await asyncio.to_thread(gather_web_excerpts, prospect, search)
        notes = build_research_notes(excerpts)
        if not notes:
            logging.warning(f"[ai_research] no web excerpts for {prospect.full_name!r}")
            return ProviderResult(ok=True, data=RawAiFindings())

        crew_instance = (crew_factory or _default_crew_factory)()
        result = await crew_instance.kickoff_async(inputs=build_crew_inputs(prospect, notes))
        findings = apply_employment_filter(parse_crew_output(result))
        logging.info(f"[ai_research] found_person={findings.found_person}")
        return ProviderResult(ok=True, data=findings)
    except (ValidationError, ValueError) as e:
        logging.warning(f"[ai_research] unusable crew output: {e}")
        return ProviderResult(ok=False, error="AI provider returned malformed findings")
    except Exception as e:
        logging.error(f"[ai_research] provider failure: {e}")
        return ProviderResult(ok=False, error=str(e) or "AI provider failure")
