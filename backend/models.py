from datetime import datetime
from typing import Annotated, Any, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, computed_field


# ---------- lenient coercion for provider JSON ----------
def _as_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value
    return None


def _as_list(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    return []


def _as_dict_list(value: Any) -> list:
    return [v for v in _as_list(value) if isinstance(v, (dict, BaseModel))]


def _as_text_list(value: Any) -> List[str]:
    return [t for t in (_as_text(v) for v in _as_list(value)) if t]


def _as_mapping(value: Any) -> Optional[dict]:
    return value if isinstance(value, (dict, BaseModel)) else None


def _as_score(value: Any) -> Optional[float]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _as_location_list(value: Any) -> list:
    return [v for v in _as_list(value) if isinstance(v, (str, dict, Location))]


def _as_degree_list(value: Any) -> List[str]:
    # Degrees can arrive nested: ["bachelors", ["ba", "arts"]]
    out: List[str] = []
    for d in _as_list(value):
        if isinstance(d, (list, tuple)):
            joined = ", ".join(t for t in (_as_text(x) for x in d) if t)
            if joined:
                out.append(joined)
        else:
            t = _as_text(d)
            if t:
                out.append(t)
    return out


OptStr = Annotated[Optional[str], BeforeValidator(_as_text)]
TextList = Annotated[List[str], BeforeValidator(_as_text_list)]


def DictList(model):
    return Annotated[List[model], BeforeValidator(_as_dict_list)]


class _Record(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# ---------- records shared by both provider shapes and the canonical person ----------
class Location(_Record):
    """A structured location entry; any part may be missing."""

    city: OptStr = None
    locality: OptStr = None
    town: OptStr = None
    region: OptStr = None
    state: OptStr = None
    country: OptStr = None
    start_date: OptStr = None
    end_date: OptStr = None
    from_: OptStr = Field(default=None, alias="from")
    to: OptStr = None

    def label(self) -> str:
        parts = [self.city or self.locality or self.town, self.region or self.state, self.country]
        return ", ".join(p.strip() for p in parts if p and p.strip())

    @property
    def starts(self) -> Optional[str]:
        return self.start_date or self.from_

    @property
    def ends(self) -> Optional[str]:
        return self.end_date or self.to


LocationEntry = Union[str, Location]
LocationList = Annotated[List[LocationEntry], BeforeValidator(_as_location_list)]


class EmploymentEntry(_Record):
    start_date: OptStr = None
    end_date: OptStr = None
    company: OptStr = None
    position: OptStr = None


class EducationEntry(_Record):
    start_date: OptStr = None
    end_date: OptStr = None
    school: OptStr = None
    institution_type: OptStr = None
    location: OptStr = None
    degree: OptStr = None


class PressMention(_Record):
    date: OptStr = None
    topic: OptStr = None
    description: OptStr = None
    link: OptStr = None


class LegalAppearance(_Record):
    date: OptStr = None
    title: OptStr = None
    description: OptStr = None
    location: OptStr = None
    plaintiff: OptStr = None
    link: OptStr = None


class SocialProfile(_Record):
    platform: OptStr = None
    link: OptStr = None


class CompanyRegistration(_Record):
    name: OptStr = None
    link: OptStr = None


class PublicComment(_Record):
    date: OptStr = None
    platform: OptStr = None
    content: OptStr = None
    link: OptStr = None


class OtherFinding(_Record):
    note: OptStr = None
    link: OptStr = None
    platform: OptStr = None


# ---------- AI provider payload ----------
class RawAiFindings(_Record):
    """
    Unverified findings returned by the AI web-search investigator.
    Every list defaults to empty and every entry field is optional.
    """

    employment_history: DictList(EmploymentEntry) = Field(default_factory=list, description="Jobs found on the web.")
    location_history: LocationList = Field(default_factory=list, description="Places the person lived or worked.")
    press_mentions: DictList(PressMention) = Field(default_factory=list, description="News articles and press.")
    legal_appearances: DictList(LegalAppearance) = Field(default_factory=list, description="Court or tribunal filings.")
    social_media_profiles: DictList(SocialProfile) = Field(default_factory=list, description="Public social profiles.")
    company_registrations: DictList(CompanyRegistration) = Field(default_factory=list, description="Companies or boards.")
    public_comments: DictList(PublicComment) = Field(default_factory=list, description="Posts, forum or blog comments.")
    others: DictList(OtherFinding) = Field(default_factory=list, description="Anything else of note.")
    short_summary: Annotated[str, BeforeValidator(lambda v: _as_text(v) or "")] = Field(
        default="", description="A short neutral summary of the person."
    )
    research_log: TextList = Field(default_factory=list, description="Queries and sources used.")

    @computed_field
    @property
    def found_person(self) -> bool:
        return bool(
            self.company_registrations
            or self.social_media_profiles
            or self.employment_history
            or self.public_comments
            or self.legal_appearances
            or self.press_mentions
        )


# ---------- identity-graph provider payload ----------
class IdentityLocation(_Record):
    name: OptStr = None
    locality: OptStr = None
    region: OptStr = None
    country: OptStr = None


class IdentityCompany(_Record):
    name: OptStr = None
    location: Annotated[Optional[IdentityLocation], BeforeValidator(_as_mapping)] = None


class IdentityTitle(_Record):
    name: OptStr = None


class IdentityExperience(_Record):
    company: Annotated[Optional[IdentityCompany], BeforeValidator(_as_mapping)] = None
    title: Annotated[Optional[IdentityTitle], BeforeValidator(_as_mapping)] = None
    start_date: OptStr = None
    end_date: OptStr = None


class IdentitySchool(_Record):
    name: OptStr = None
    type: OptStr = None
    location: Annotated[Optional[IdentityLocation], BeforeValidator(_as_mapping)] = None


class IdentityEducation(_Record):
    school: Annotated[Optional[IdentitySchool], BeforeValidator(_as_mapping)] = None
    degrees: Annotated[List[str], BeforeValidator(_as_degree_list)] = Field(default_factory=list)
    start_date: OptStr = None
    end_date: OptStr = None


class IdentityProfileLink(_Record):
    network: OptStr = None
    url: OptStr = None


class RawIdentityProfile(_Record):
    """Best-matching person record from the identity-graph (People Data Labs) API."""

    full_name: OptStr = None
    job_title: OptStr = None
    job_company_name: OptStr = None
    experience: DictList(IdentityExperience) = Field(default_factory=list)
    education: DictList(IdentityEducation) = Field(default_factory=list)
    profiles: DictList(IdentityProfileLink) = Field(default_factory=list)
    regions: TextList = Field(default_factory=list)
    match_score: Annotated[Optional[float], BeforeValidator(_as_score)] = Field(
        default=None, description="Match confidence, either on a 0-1 or a 0-100 scale."
    )


# ---------- provider outcome ----------
DataT = TypeVar("DataT")


class ProviderResult(BaseModel, Generic[DataT]):
    """Outcome of one provider call: ok with data, or not ok with an error."""

    ok: bool
    data: Optional[DataT] = None
    error: Optional[str] = None


# ---------- canonical person ----------
class CanonicalPerson(_Record):
    """The merged, de-duplicated record of everything found about one prospect."""

    employment_history: List[EmploymentEntry] = Field(default_factory=list)
    education_history: List[EducationEntry] = Field(default_factory=list)
    legal_appearances: List[LegalAppearance] = Field(default_factory=list)
    press_mentions: List[PressMention] = Field(default_factory=list)
    social_media_profiles: List[SocialProfile] = Field(default_factory=list)
    company_registrations: List[CompanyRegistration] = Field(default_factory=list)
    public_comments: List[PublicComment] = Field(default_factory=list)
    others: List[OtherFinding] = Field(default_factory=list)
    location_history: List[LocationEntry] = Field(default_factory=list)
    short_summary: str = ""


class PersonFragment(CanonicalPerson):
    """One provider's contribution, before merging."""

    source: Literal["ai", "identity"]
    summary_candidate: str = ""
    reports_current_role: bool = Field(
        default=False, description="Identity profile carries its own current job title/company."
    )
    identity_confidence: Optional[float] = None


RiskLevel = Literal["low", "medium", "high"]


class RiskSignals(BaseModel):
    identity_confidence: Optional[float] = None
    watchlist_hit_count: int = 0


class RiskAssessment(BaseModel):
    score: int
    level: RiskLevel
    reasons: List[str] = Field(default_factory=list)


# ---------- prospect, report and delivery ----------
class ProspectInfo(BaseModel):
    """Identifying fields collected by the prospect form."""

    model_config = ConfigDict(str_strip_whitespace=True)

    first_name: str
    last_name: str
    other_names: Optional[str] = None
    email: str = ""
    phone: str = ""
    street_address: str = ""
    city: str = ""
    state: str = ""
    postal_code: str = ""
    country: str = ""
    city2: Optional[str] = None
    state2: Optional[str] = None
    dob: str = ""
    company: str = ""
    school: str = ""
    social_media_profile: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class BackgroundCheckReport(BaseModel):
    report_id: str
    generated_at: datetime
    prospect: ProspectInfo
    person: CanonicalPerson
    risk: RiskAssessment
    found_result: bool
    ai_ok: bool = False
    identity_ok: bool = False
    ai_error: Optional[str] = None
    identity_error: Optional[str] = None
    both_crashed: bool = False


class UserDetails(BaseModel):
    first_name: str = ""
    last_name: str = ""
    email: str = ""
