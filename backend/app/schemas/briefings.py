"""
Briefing Schemas.

BriefingFormFields is the flat set of named text inputs the content builder
turns into a volunteer document and an OTL document. Extraction for
"create new version" produces the same shape.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from backend.app.schemas.briefing_content import VolunteerEntry


class BriefingFormFields(BaseModel):
    incident_name: str = ""
    briefing_reference: str = ""
    area_team: str = ""

    # Overview
    response_summary: str = ""

    # Response location
    building_and_street: str = ""
    town_or_city: str = ""
    postcode: str = ""
    what3words: str = ""
    meeting_point: str = ""
    getting_there: str = ""
    hazards: str = ""
    lead_partner_organisation: str = ""

    # Deployment details
    estimated_demand: str = ""
    risks_and_escalation: str = ""
    equipment_and_supplies: str = ""
    anticipated_needs: str = ""
    special_assistance: str = ""

    # Instructions and notes
    sensitivities: str = ""
    what_to_bring: str = ""

    # Shift and team
    start_date: str = ""
    start_time: str = ""
    end_date: str = ""
    end_time: str = ""
    otl_name: str = ""
    otl_contact: str = ""

    additional_info: str = ""

    # OTL only
    volunteers: List[VolunteerEntry] = Field(default_factory=list)
    key_partner_name: str = ""
    key_partner_contact: str = ""
    otl_additional_details: str = ""


class BriefingCreate(BriefingFormFields):
    """Dual briefing request: one volunteer and one OTL briefing from shared input."""
    incident_id: str = ""
    volunteer_password: Optional[str] = None
    otl_password: Optional[str] = None
    # Set when the input was prefilled from an existing briefing
    source_briefing_id: Optional[str] = None


class MarkdownBriefingCreate(BaseModel):
    incident_id: str = ""
    type: str = ""
    shift: str = ""
    content: str = ""
    require_password: bool = False
    viewer_password: Optional[str] = None


class BriefingRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    incident_id: str
    type: str
    shift: str
    content: Optional[Any] = None
    viewer_password_hash: Optional[str] = None
    created_at: datetime
    created_by: Optional[str] = None


class BriefingResponse(BaseModel):
    id: str
    incident_id: str
    type: str
    shift: str
    content: Optional[Any] = None
    is_protected: bool = False
    created_at: datetime


class BriefingSummary(BaseModel):
    id: str
    incident_id: str
    type: str
    shift: str
    is_protected: bool = False
    created_at: datetime


class BriefingListResponse(BaseModel):
    items: List[BriefingSummary]
    total: int
    totalPages: int


class BriefingCreateResponse(BaseModel):
    success: bool = True
    id: str
    type: str
    shift: str
    otl_briefing_id: Optional[str] = None
    persisted: bool
    changed_fields: List[str] = Field(default_factory=list)


class BriefingPrefill(BaseModel):
    source_briefing_id: str
    source_type: str
    fields: BriefingFormFields
