"""
Briefing Content Schemas.

Briefing content is a JSON document tagged by its ``format`` key. Four
generations are in circulation and all of them must stay readable:

    absent / "markdown" / unknown   -> MarkdownContent
    "structured" / "structured_v2"  -> StructuredContent
    "volunteer_briefing_v1"         -> VolunteerBriefingContent
    "otl_briefing_v1"               -> OtlBriefingContent

Stored documents are never migrated in place; readers parse them into one
of these variants (see services/briefing_content.py).
"""
from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


class ContentFormat(str, Enum):
    MARKDOWN = "markdown"
    STRUCTURED = "structured"
    STRUCTURED_V2 = "structured_v2"
    VOLUNTEER_BRIEFING_V1 = "volunteer_briefing_v1"
    OTL_BRIEFING_V1 = "otl_briefing_v1"


def _coerce_text(value: Any) -> Any:
    # Older documents hold numbers in some text slots (e.g. resources.beds)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return value


Text = Annotated[Optional[str], BeforeValidator(_coerce_text)]


class _Document(BaseModel):
    model_config = ConfigDict(extra="allow")


# ---------------------------------------------------------------------------
# Legacy free text
# ---------------------------------------------------------------------------

class MarkdownContent(_Document):
    """Legacy free text. Also used for absent or unrecognised format tags."""
    format: Optional[str] = ContentFormat.MARKDOWN.value
    text: Text = None


# ---------------------------------------------------------------------------
# "structured" and "structured_v2"
# ---------------------------------------------------------------------------

class StructuredOverview(_Document):
    briefing_reference: Text = None
    area_team: Text = None
    response_summary: Text = None


class StructuredLocation(_Document):
    building_and_street: Text = None
    town_or_city: Text = None
    postcode: Text = None
    what3words: Text = None
    meeting_point: Text = None
    getting_there: Text = None
    hazards: Text = None
    lead_partner_organisation: Text = None


class StructuredDeployment(_Document):
    # structured_v2
    estimated_demand: Text = None
    risks_and_escalation: Text = None
    equipment_and_supplies: Text = None
    anticipated_needs: Text = None
    special_assistance: Text = None
    sensitivities: Text = None
    what_to_bring: Text = None
    # structured
    requested_support: Text = None
    rest_centre_location: Text = None
    communication_details: Text = None
    incident_scale: Text = None
    team_composition: Text = None
    procedures: Text = None
    key_messaging: Text = None


class StructuredResources(_Document):
    beds: Text = None
    response_vehicles: Text = None
    food: Text = None
    water: Text = None
    blankets: Text = None
    medication: Text = None
    toiletries: Text = None


class StructuredContacts(_Document):
    incident_officer: Text = None
    otl_contact: Text = None
    volunteer_contact: Text = None


class StructuredPartner(_Document):
    partner_organisation: Text = None
    key_partner_name: Text = None
    key_partner_contact: Text = None
    otl_additional_details: Text = None


class StructuredShift(_Document):
    start_date: Text = None
    start_time: Text = None
    end_date: Text = None
    end_time: Text = None
    otl_name: Text = None
    otl_contact: Text = None


class VolunteerEntry(BaseModel):
    """A volunteer on shift: name plus contact number and free-text notes."""
    name: Text = ""
    contact: Text = ""
    information: Text = ""


class StructuredContent(_Document):
    """
    Keyed-section documents. Every section is optional; a missing section
    simply has nothing to render.
    """
    format: Literal["structured", "structured_v2"]
    overview: Optional[StructuredOverview] = None
    response_summary: Text = None
    situation_update: Text = None
    response_location: Optional[StructuredLocation] = None
    deployment_details: Optional[StructuredDeployment] = None
    resources: Optional[StructuredResources] = None
    contacts: Optional[StructuredContacts] = None
    partner_details: Optional[StructuredPartner] = None
    shift_information: Optional[StructuredShift] = None
    volunteers: Optional[List[VolunteerEntry]] = None
    additional_info: Text = None


# ---------------------------------------------------------------------------
# Current dual-document format
# ---------------------------------------------------------------------------

class SectionField(_Document):
    """
    A labelled value. Volunteer documents store it under ``value``,
    OTL documents under ``content``.
    """
    label: str = ""
    value: Text = None
    content: Text = None

    @property
    def field_value(self) -> str:
        return self.value or self.content or ""


class Section(_Document):
    heading: str = ""
    content: Text = None
    fields: Optional[List[SectionField]] = None


class VolunteerDocumentHeader(_Document):
    title: Text = None
    last_updated: Text = None
    audience: Text = None
    intro: Text = None


class VolunteerBriefingContent(_Document):
    format: Literal["volunteer_briefing_v1"] = ContentFormat.VOLUNTEER_BRIEFING_V1.value
    document: VolunteerDocumentHeader = Field(default_factory=VolunteerDocumentHeader)
    sections: List[Section] = Field(default_factory=list)


class OtlPageMetadata(_Document):
    last_updated: Text = None


class OtlPageHeader(_Document):
    title: Text = None
    metadata: OtlPageMetadata = Field(default_factory=OtlPageMetadata)
    description: Text = None


class OtlBriefingContent(_Document):
    format: Literal["otl_briefing_v1"] = ContentFormat.OTL_BRIEFING_V1.value
    page: OtlPageHeader = Field(default_factory=OtlPageHeader)
    sections: List[Section] = Field(default_factory=list)


BriefingContent = Union[
    MarkdownContent,
    StructuredContent,
    VolunteerBriefingContent,
    OtlBriefingContent,
]


# ---------------------------------------------------------------------------
# Normalised view, identical for every generation
# ---------------------------------------------------------------------------

class RenderedItem(BaseModel):
    label: str
    value: str


class RenderedSection(BaseModel):
    heading: str
    body: Optional[str] = None
    items: List[RenderedItem] = []


class RenderedBriefing(BaseModel):
    format: Optional[str] = None
    title: Optional[str] = None
    subtitle: List[str] = []
    intro: Optional[str] = None
    sections: List[RenderedSection] = []
    html: Optional[str] = None
