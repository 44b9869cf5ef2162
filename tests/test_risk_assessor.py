from datetime import date

import pytest

from models import (
    CanonicalPerson,
    EmploymentEntry,
    LegalAppearance,
    Location,
    PressMention,
    PublicComment,
    RiskSignals,
)
from services.risk_assessor import (
    RiskKeywords,
    assess_risk,
    count_recent_moves,
    load_risk_keywords,
    normalize_confidence,
    risk_level,
)

NOW = date(2024, 6, 1)

# Long, stable job: keeps rule 5 quiet apart from the cumulative bonus
STEADY_JOB = EmploymentEntry(company="Northwind Freight", position="Dispatcher", start_date="2015-01-01")


def _person(**kwargs) -> CanonicalPerson:
    return CanonicalPerson(**kwargs)


def test_empty_person_is_low_risk():
    result = assess_risk(_person(), now=NOW)
    assert result.score == 1
    assert result.level == "low"
    assert result.reasons == ["No employment history available"]


@pytest.mark.parametrize("score,level", [(-2, "low"), (2, "low"), (3, "medium"), (5, "medium"), (6, "high"), (9, "high")])
def test_risk_level_thresholds(score, level):
    assert risk_level(score) == level


def test_normalize_confidence_scales_percentages():
    assert normalize_confidence(95) == 0.95
    assert normalize_confidence(0.4) == 0.4
    assert normalize_confidence(250) == 1.0
    assert normalize_confidence(-3) == 0.0
    assert normalize_confidence(None) is None


def test_identity_confidence_rules():
    high = assess_risk(_person(), RiskSignals(identity_confidence=95), now=NOW)
    assert "High identity confidence" in high.reasons
    assert high.score == 0

    low = assess_risk(_person(), RiskSignals(identity_confidence=0.5), now=NOW)
    assert "Low identity confidence" in low.reasons
    assert low.score == 2

    mid = assess_risk(_person(), RiskSignals(identity_confidence=0.75), now=NOW)
    assert not any("identity confidence" in r for r in mid.reasons)


def test_watchlist_hit_is_high_risk():
    result = assess_risk(_person(), RiskSignals(watchlist_hit_count=1), now=NOW)
    assert "Watchlist / sanctions match" in result.reasons
    assert result.level == "high"


def test_recent_eviction_scores_tenancy_rule():
    person = _person(legal_appearances=[
        LegalAppearance(date="2022-05-01", title="Eviction application", description="Landlord and Tenant Board"),
    ])
    result = assess_risk(person, now=NOW)
    assert "1 recent tenancy-related legal record(s)" in result.reasons
    assert not any("adverse legal" in r for r in result.reasons)
    assert result.score == 3
    assert result.level == "medium"


def test_tenancy_points_are_capped():
    person = _person(
        employment_history=[STEADY_JOB],
        legal_appearances=[
            LegalAppearance(date=f"202{i}-01-01", title="Unlawful detainer filed") for i in range(4)
        ],
    )
    result = assess_risk(person, now=NOW)
    assert "4 recent tenancy-related legal record(s)" in result.reasons
    # +6 capped, -1 cumulative employment
    assert result.score == 5


def test_generic_adverse_legal_record():
    person = _person(legal_appearances=[LegalAppearance(date="2021-03-01", title="Small claims judgment")])
    result = assess_risk(person, now=NOW)
    assert "1 recent adverse legal record(s)" in result.reasons
    assert result.score == 2


def test_old_legal_records_are_ignored():
    person = _person(legal_appearances=[LegalAppearance(date="2013-03-01", title="Eviction order")])
    result = assess_risk(person, now=NOW)
    assert result.reasons == ["No employment history available"]


def test_mobility_counts_only_structured_recent_locations():
    recent = [Location(city=f"City {i}", start_date=f"2023-0{i + 1}-01") for i in range(3)]
    person = _person(location_history=recent + ["Toronto, ON", Location(city="Old", start_date="2010-01-01", end_date="2012-01-01")])
    assert count_recent_moves(person, NOW) == 3
    assert "Several moves in last 3 years" in assess_risk(person, now=NOW).reasons


def test_open_ended_location_counts_as_current():
    person = _person(location_history=[Location(city="Calgary", start_date="2005-01-01")])
    assert count_recent_moves(person, NOW) == 1


def test_frequent_moves():
    person = _person(location_history=[Location(city=f"City {i}", **{"from": f"2022-0{i + 1}-01"}) for i in range(5)])
    result = assess_risk(person, now=NOW)
    assert "Frequent moves in last 3 years" in result.reasons
    assert "Several moves in last 3 years" not in result.reasons


def test_short_recent_tenure():
    person = _person(employment_history=[
        EmploymentEntry(company="Maple Logistics", position="Driver", start_date="2018-01-01", end_date="2024-03-31"),
        EmploymentEntry(company="Northwind Freight", position="Dispatcher", start_date="2024-04-15"),
    ])
    result = assess_risk(person, now=NOW)
    assert "Short recent employment tenure" in result.reasons
    assert "5+ years cumulative employment history" in result.reasons
    assert result.score == 0


def test_adverse_press_and_comments():
    person = _person(
        employment_history=[STEADY_JOB],
        press_mentions=[
            PressMention(topic="Local man charged with fraud"),
            PressMention(topic="Arrested after brawl"),
            PressMention(topic="Scam alert"),
            PressMention(topic="Bake sale raises funds"),
        ],
        public_comments=[PublicComment(content="This is a threat to you all")],
    )
    result = assess_risk(person, now=NOW)
    assert "Adverse media mentions" in result.reasons
    assert "Concerning public comments" in result.reasons
    # -1 employment, +2 press (capped), +1 comments
    assert result.score == 2


def test_adding_adverse_records_never_lowers_score():
    base = _person(employment_history=[STEADY_JOB])
    before = assess_risk(base, now=NOW).score
    worse = base.model_copy(update={
        "legal_appearances": [LegalAppearance(date="2023-01-01", title="Eviction")],
    })
    assert assess_risk(worse, now=NOW).score >= before


def test_injected_keywords_override_defaults():
    keywords = RiskKeywords(tenancy=["noise complaint"], adverse_legal=[], adverse_press=[], hostile_comments=[])
    person = _person(legal_appearances=[
        LegalAppearance(date="2023-01-01", title="Noise complaint to strata council"),
        LegalAppearance(date="2023-02-01", title="Eviction order"),
    ])
    result = assess_risk(person, now=NOW, keywords=keywords)
    assert "1 recent tenancy-related legal record(s)" in result.reasons


def test_keyword_file_loads():
    keywords = load_risk_keywords()
    assert keywords.pattern("tenancy").search("Residential Tenancy Branch dispute")
    assert not keywords.pattern("hostile_comments").search("great neighbour")
