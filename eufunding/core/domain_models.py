"""
Canonical domain models for the EU funding assistant.

Upstream JSON is converted into these structures at the boundary so the
rest of the system never deals with the search API's array-of-one-string
encoding.
"""

from dataclasses import dataclass, field, asdict, fields
from enum import Enum
from typing import Optional, List, Dict, Any

from eufunding.core.utils import first_value


class OpportunityStatus(str, Enum):
    """
    Status of a funding call as shown to the user.

    Mapped from the portal's numeric status codes:
    31094501 (and anything unrecognized) -> OPEN, 31094502 -> UPCOMING,
    31094503 -> CLOSED.
    """
    OPEN = "Open"
    UPCOMING = "Upcoming"
    CLOSED = "Closed"


@dataclass
class PartnerProfile:
    """
    Consortium partner organisation.

    Only name, description, experience and keywords take part in ranking;
    the remaining fields are carried for proposal drafting and display.
    """
    id: str
    name: str
    description: Optional[str] = None
    experience: Optional[str] = None
    keywords: List[str] = field(default_factory=list)

    # Organisation details
    acronym: Optional[str] = None
    country: Optional[str] = None
    organization_type: Optional[str] = None
    role: Optional[str] = None
    pic: Optional[str] = None  # EU Participant Identification Code
    website: Optional[str] = None
    contact_email: Optional[str] = None
    is_public_body: Optional[bool] = None
    is_non_profit: Optional[bool] = None

    created_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PartnerProfile":
        """Build a profile from stored JSON, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values.setdefault("id", "")
        values.setdefault("name", "")
        if values.get("keywords") is None:
            values["keywords"] = []
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class ScoredPartner:
    """A partner together with its relevance score for one ranking call."""
    partner: PartnerProfile
    relevance_score: int = 0
    match_reasons: List[str] = field(default_factory=list)  # at most 3


@dataclass
class RawOpportunityRecord:
    """
    One search hit from the funding portal, with metadata unwrapped.

    The portal encodes every metadata field as a one-element list of
    strings. `from_json` takes the first element of each and tolerates
    missing or malformed structure.
    """
    identifier: Optional[str] = None
    title: Optional[str] = None
    description_html: Optional[str] = None
    status_code: Optional[str] = None
    deadline_date: Optional[str] = None
    framework_programme: Optional[str] = None
    destination_description: Optional[str] = None
    ccm_id: Optional[str] = None
    budget: Optional[str] = None
    language: Optional[str] = None

    @classmethod
    def from_json(cls, item: Any) -> "RawOpportunityRecord":
        if not isinstance(item, dict):
            return cls()
        md = item.get("metadata")
        if not isinstance(md, dict):
            md = {}
        language = item.get("language")
        return cls(
            identifier=first_value(md.get("identifier")),
            title=first_value(md.get("title")),
            description_html=first_value(md.get("descriptionByte")),
            status_code=first_value(md.get("status")),
            deadline_date=first_value(md.get("deadlineDate")),
            framework_programme=first_value(md.get("frameworkProgramme")),
            destination_description=first_value(md.get("destinationDescription")),
            ccm_id=first_value(md.get("ccm2Id")) or first_value(md.get("ccmId")),
            budget=first_value(md.get("ccm2DetailsbudgetTopicActionSub")),
            language=language if isinstance(language, str) else None,
        )


@dataclass
class NormalizedOpportunity:
    """
    Funding call in the shape the application stores and displays.

    `call_id` is the natural key; the store upserts on it.
    """
    call_id: str
    title: str
    description: str
    url: str
    source: str
    status: OpportunityStatus = OpportunityStatus.OPEN
    deadline: Optional[str] = None  # "Mar 1, 2026" or None when unknown
    budget: Optional[str] = None
    funding_entity: Optional[str] = None
    topic: Optional[str] = None
    ccm_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class EnrichedOpportunity:
    """Opportunity refreshed from the per-topic API."""
    call_id: str
    url: str
    title: str
    description: str
    status: str
    deadline: Optional[str] = None
    opening_date: Optional[str] = None
    budget: Optional[str] = None
    funding_entity: Optional[str] = None
    last_enriched: Optional[str] = None  # ISO timestamp


@dataclass
class FundingSource:
    """User-maintained funding website outside the EU portal."""
    url: str
    description: str = ""
    enabled: bool = True


@dataclass
class SearchConfig:
    """
    Explicit search settings passed into each search call.

    Replaces the browser-local custom sources list of the web client.
    """
    custom_sources: List[FundingSource] = field(default_factory=list)
    use_portal: bool = True
    use_local_sources: bool = False


@dataclass
class Idea:
    title: str
    description: str


@dataclass
class RelevanceAnalysis:
    score: str  # "Good" | "Fair" | "Poor"
    justification: str


@dataclass
class ProposalDraft:
    """
    Generated proposal.

    Text sections hold HTML fragments as returned by the model; the
    structured sections are kept as plain lists of dicts.
    """
    title: str
    summary: str = ""
    relevance: str = ""
    methods: str = ""
    impact: str = ""
    sections: Dict[str, str] = field(default_factory=dict)  # introduction, objectives, ...
    partners: List[Dict[str, Any]] = field(default_factory=list)
    work_packages: List[Dict[str, Any]] = field(default_factory=list)
    milestones: List[Dict[str, Any]] = field(default_factory=list)
    risks: List[Dict[str, Any]] = field(default_factory=list)
    budget: List[Dict[str, Any]] = field(default_factory=list)
    timeline: List[Dict[str, Any]] = field(default_factory=list)
    generated_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
