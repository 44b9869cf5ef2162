import asyncio
from types import SimpleNamespace
from unittest.mock import MagicMock

from models import EmploymentEntry, ProspectInfo, RawAiFindings
from services.ai_researcher import (
    apply_employment_filter,
    build_crew_inputs,
    build_research_notes,
    fetch_ai_findings,
    parse_crew_output,
)

PROSPECT = ProspectInfo(
    first_name="Jane", last_name="Doe", other_names="J.", city="Toronto", state="ON",
    city2="Ottawa", state2="ON", dob="1990-04-12",
)

EXCERPTS = [{"title": "Jane Doe joins Northwind", "url": "https://news.example.com/a", "body": "Jane Doe of Toronto"}]


class FakeCrew:
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.inputs = None

    async def kickoff_async(self, inputs):
        self.inputs = inputs
        if self.error:
            raise self.error
        return self.result


def _search(**kwargs):
    return EXCERPTS


def test_findings_are_returned_and_filtered():
    findings = RawAiFindings(
        employment_history=[
            {"company": "Northwind Freight", "position": "Dispatcher"},
            {"company": "xxx", "position": "xxx"},
        ],
        short_summary="Jane Doe works in logistics.",
    )
    crew = FakeCrew(result=SimpleNamespace(pydantic=findings))

    result = asyncio.run(fetch_ai_findings(PROSPECT, crew_factory=lambda: crew, search=_search))

    assert result.ok
    assert result.data.found_person
    assert [e.company for e in result.data.employment_history] == ["Northwind Freight"]
    assert crew.inputs["full_name"] == "Jane J. Doe"
    assert "Jane Doe of Toronto" in crew.inputs["research_notes"]


def test_no_excerpts_skips_the_llm():
    factory = MagicMock()
    result = asyncio.run(fetch_ai_findings(PROSPECT, crew_factory=factory, search=lambda **kwargs: []))
    assert result.ok
    assert result.data.found_person is False
    factory.assert_not_called()


def test_malformed_output_is_not_ok():
    crew = FakeCrew(result=SimpleNamespace(pydantic=None, json_dict=None, raw="Sorry, I could not help."))
    result = asyncio.run(fetch_ai_findings(PROSPECT, crew_factory=lambda: crew, search=_search))
    assert not result.ok
    assert result.error == "AI provider returned malformed findings"


def test_crew_failure_is_not_ok():
    crew = FakeCrew(error=RuntimeError("LLM unavailable"))
    result = asyncio.run(fetch_ai_findings(PROSPECT, crew_factory=lambda: crew, search=_search))
    assert not result.ok
    assert result.error == "LLM unavailable"


def test_parse_crew_output_from_raw_json():
    raw = '```json\n{"press_mentions": [{"topic": "Award"}], "short_summary": "Hi"}\n```'
    findings = parse_crew_output(SimpleNamespace(pydantic=None, json_dict=None, raw=raw))
    assert findings.press_mentions[0].topic == "Award"
    assert findings.found_person


def test_parse_crew_output_from_json_dict():
    findings = parse_crew_output(SimpleNamespace(pydantic=None, json_dict={"legal_appearances": [{"title": "Eviction"}]}))
    assert findings.legal_appearances[0].title == "Eviction"


def test_filter_keeps_everything_when_all_rejected():
    findings = RawAiFindings(employment_history=[EmploymentEntry(company="xxx", position="Manager")])
    assert apply_employment_filter(findings).employment_history == findings.employment_history


def test_build_inputs_and_notes():
    inputs = build_crew_inputs(PROSPECT, "notes")
    assert inputs["location"] == "Toronto, ON"
    assert inputs["previous_location"] == "Ottawa, ON"
    assert inputs["email"] == "Unknown"
    assert build_research_notes([]) == ""
    assert build_research_notes(EXCERPTS).startswith("### WEB EXCERPTS\nJane Doe joins Northwind")
