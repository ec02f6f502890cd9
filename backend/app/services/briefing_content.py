"""
Briefing Content Registry.

Reads every generation of briefing content (legacy markdown, structured,
structured_v2, volunteer_briefing_v1, otl_briefing_v1), builds the current
dual-document format from form input, and extracts form input back out of
stored documents for "create new version".

Dispatch over the content variants is explicit: every reader below handles
the four variants of BriefingContent and raises TypeError on anything else.
"""
import html
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError as PydanticValidationError

from backend.app.schemas.briefing_content import (
    BriefingContent,
    ContentFormat,
    MarkdownContent,
    OtlBriefingContent,
    OtlPageHeader,
    OtlPageMetadata,
    RenderedBriefing,
    RenderedItem,
    RenderedSection,
    Section,
    SectionField,
    StructuredContent,
    StructuredOverview,
    VolunteerBriefingContent,
    VolunteerDocumentHeader,
    VolunteerEntry,
)
from backend.app.schemas.briefings import BriefingFormFields

logger = logging.getLogger(__name__)

EN_DASH = "–"

VOLUNTEER_BRIEFING_TYPE = "Volunteer Briefing"
OTL_BRIEFING_TYPE = "OTL Briefing"

VOLUNTEER_INTRO = (
    "The information in this volunteer briefing is specific to this deployment. "
    "For broader advice on responding effectively, use the Volunteer Playbook."
)
OTL_DESCRIPTION = (
    "The information in this OTL briefing is specific to this deployment. "
    "For broader advice, use the Volunteer Playbook."
)

SHIFT_TIMES_LABEL = "Start and end date and time"
SHIFT_SECTION_HEADING = "Your shift and team"
ADDITIONAL_INFO_HEADING = "Additional information"

_FORMAT_MODELS = {
    ContentFormat.STRUCTURED.value: StructuredContent,
    ContentFormat.STRUCTURED_V2.value: StructuredContent,
    ContentFormat.VOLUNTEER_BRIEFING_V1.value: VolunteerBriefingContent,
    ContentFormat.OTL_BRIEFING_V1.value: OtlBriefingContent,
}

# Order matters: "## " must be consumed before "# " can match it.
_MARKDOWN_PASSES = (
    (re.compile(r"\n"), "<br>"),
    (re.compile(r"^## (.*)$", re.MULTILINE), r"<h2>\1</h2>"),
    (re.compile(r"^# (.*)$", re.MULTILINE), r"<h1>\1</h1>"),
    (re.compile(r"^- (.*)$", re.MULTILINE), r"<li>\1</li>"),
    (re.compile(r"^\d\. (.*)$", re.MULTILINE), r"<ol><li>\1</li></ol>"),
)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_content(raw: Any) -> BriefingContent:
    """
    Detect the generation of a stored document and parse it.

    Absent, unknown and unreadable documents are read as legacy text.
    """
    if isinstance(raw, (MarkdownContent, StructuredContent, VolunteerBriefingContent, OtlBriefingContent)):
        return raw

    if isinstance(raw, str):
        try:
            decoded = json.loads(raw)
        except ValueError:
            decoded = None
        if not isinstance(decoded, dict):
            return MarkdownContent(text=raw)
        raw = decoded

    if not isinstance(raw, dict):
        return MarkdownContent(format=None)

    fmt = raw.get("format")
    model = _FORMAT_MODELS.get(fmt) if isinstance(fmt, str) else None
    if model is None:
        return _as_markdown(raw)

    try:
        return model.model_validate(raw)
    except PydanticValidationError as e:
        logger.warning(f"Unreadable {fmt} briefing content ({e.error_count()} errors), reading as text")
        return _as_markdown(raw)


def _as_markdown(raw: Dict[str, Any]) -> MarkdownContent:
    fmt = raw.get("format")
    text = raw.get("text")
    return MarkdownContent(
        format=fmt if isinstance(fmt, str) else None,
        text=text if isinstance(text, str) else None,
    )


def dump_content(content: BriefingContent) -> Dict[str, Any]:
    """JSON-ready dict for the content column."""
    return content.model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Legacy markdown
# ---------------------------------------------------------------------------

def render_markdown(text: str) -> str:
    """
    Restricted markdown-to-HTML substitution for legacy briefings.

    Only line breaks, ``#``/``##`` headings, ``- `` items and ``N. `` items
    are recognised, each as one substitution pass in a fixed order. Input is
    HTML-escaped first.

    Line breaks are substituted first, so the block patterns only ever match
    at the very start of the text.
    """
    rendered = html.escape(text, quote=False)
    for pattern, replacement in _MARKDOWN_PASSES:
        rendered = pattern.sub(replacement, rendered)
    return rendered


# ---------------------------------------------------------------------------
# Shift times
# ---------------------------------------------------------------------------

def format_shift_times(start_date: str, start_time: str, end_date: str, end_time: str) -> str:
    return f"{start_date}, {start_time} {EN_DASH} {end_date}, {end_time}"


def split_shift_times(value: str) -> Dict[str, str]:
    """
    Inverse of format_shift_times, split on the en dash then on commas.

    Lossy: a component that contains a comma shifts the split and yields
    wrong values without any error.
    """
    extracted: Dict[str, str] = {}
    halves = value.split(EN_DASH)
    if len(halves) < 2:
        return extracted

    start_parts = halves[0].strip().split(",")
    end_parts = halves[1].strip().split(",")

    if len(start_parts) >= 2:
        extracted["start_date"] = start_parts[0].strip()
        extracted["start_time"] = start_parts[1].strip()
    if len(end_parts) >= 2:
        extracted["end_date"] = end_parts[0].strip()
        extracted["end_time"] = end_parts[1].strip()
    return extracted


def format_last_updated(now: datetime) -> str:
    # e.g. "18 October 2026 at 14:05"
    return f"{now.day} {now.strftime('%B %Y')} at {now.strftime('%H:%M')}"


# ---------------------------------------------------------------------------
# Builder
# ---------------------------------------------------------------------------

def _volunteer_section(heading: str, pairs: Sequence[Tuple[str, str]]) -> Section:
    return Section(heading=heading, fields=[SectionField(label=label, value=value) for label, value in pairs])


def _otl_section(heading: str, pairs: Sequence[Tuple[str, str]]) -> Section:
    return Section(heading=heading, fields=[SectionField(label=label, content=value) for label, value in pairs])


def build_briefing_documents(
    fields: BriefingFormFields,
    now: Optional[datetime] = None,
) -> Tuple[VolunteerBriefingContent, OtlBriefingContent]:
    """
    Build the volunteer and the OTL document from the same form input.

    Both share the overview, location, deployment, instruction and shift
    sections. The OTL document adds the partner liaison fields, one
    "Volunteer N name and number" field per named volunteer and the
    OTL-only notes. "Additional information" is appended to both only when
    the shared additional info is non-empty.
    """
    last_updated = format_last_updated(now or datetime.now(timezone.utc))
    incident_name = fields.incident_name or "Incident"

    address = "\n".join(part for part in (fields.building_and_street, fields.town_or_city, fields.postcode) if part)
    shift_times = format_shift_times(fields.start_date, fields.start_time, fields.end_date, fields.end_time)

    location = [
        ("Address", address),
        ("What3words", fields.what3words),
        ("Meeting point", fields.meeting_point),
        ("Getting there", fields.getting_there),
        ("Hazards", fields.hazards),
    ]
    deployment = [
        ("Estimated demand", fields.estimated_demand),
        ("Risks and escalation", fields.risks_and_escalation),
        ("Equipment and supplies", fields.equipment_and_supplies),
        ("Anticipated needs", fields.anticipated_needs),
        ("Special assistance", fields.special_assistance),
    ]
    instructions = [
        ("Sensitivities", fields.sensitivities),
        ("What to bring", fields.what_to_bring),
    ]

    volunteer_doc = VolunteerBriefingContent(
        document=VolunteerDocumentHeader(
            title=f"{incident_name}: volunteer briefing",
            last_updated=last_updated,
            audience="volunteers",
            intro=VOLUNTEER_INTRO,
        ),
        sections=[
            Section(heading="Overview", content=fields.response_summary),
            _volunteer_section(
                "Response location",
                location + [("Lead partner organisation", fields.lead_partner_organisation)],
            ),
            _volunteer_section("Deployment details", deployment),
            _volunteer_section("Instructions and notes", instructions),
            _volunteer_section(SHIFT_SECTION_HEADING, [
                (SHIFT_TIMES_LABEL, shift_times),
                ("OTL name and number", f"{fields.otl_name}\n{fields.otl_contact}"),
            ]),
        ],
    )

    otl_shift = _otl_section(SHIFT_SECTION_HEADING, [(SHIFT_TIMES_LABEL, shift_times)])
    otl_doc = OtlBriefingContent(
        page=OtlPageHeader(
            title=f"{incident_name}: OTL briefing",
            metadata=OtlPageMetadata(last_updated=last_updated),
            description=OTL_DESCRIPTION,
        ),
        sections=[
            Section(heading="Overview", content=fields.response_summary),
            _otl_section("Response location", location),
            _otl_section("Partner information", [
                ("Lead partner organisation", fields.lead_partner_organisation),
                ("Partner liaison name", fields.key_partner_name),
                ("Partner liaison number", fields.key_partner_contact),
            ]),
            _otl_section("Deployment details", deployment),
            _otl_section("Instructions and notes", instructions),
            otl_shift,
        ],
    )

    if fields.additional_info:
        volunteer_doc.sections.append(Section(heading=ADDITIONAL_INFO_HEADING, content=fields.additional_info))
        otl_doc.sections.append(Section(heading=ADDITIONAL_INFO_HEADING, content=fields.additional_info))

    named = [volunteer for volunteer in fields.volunteers if volunteer.name]
    for number, volunteer in enumerate(named, start=1):
        otl_shift.fields.append(SectionField(
            label=f"Volunteer {number} name and number",
            content=f"{volunteer.name}\n{volunteer.contact or ''}",
        ))

    if fields.otl_additional_details:
        otl_shift.fields.append(SectionField(label=ADDITIONAL_INFO_HEADING, content=fields.otl_additional_details))

    return volunteer_doc, otl_doc


# ---------------------------------------------------------------------------
# Extraction ("create new version")
# ---------------------------------------------------------------------------

_LABEL_TO_FIELD = {
    "Meeting point": "meeting_point",
    "Getting there": "getting_there",
    "Hazards": "hazards",
    "What3words": "what3words",
    "Lead partner organisation": "lead_partner_organisation",
    "Estimated demand": "estimated_demand",
    "Risks and escalation": "risks_and_escalation",
    "Equipment and supplies": "equipment_and_supplies",
    "Anticipated needs": "anticipated_needs",
    "Special assistance": "special_assistance",
    "Sensitivities": "sensitivities",
    "What to bring": "what_to_bring",
    "Partner liaison name": "key_partner_name",
    "Partner liaison number": "key_partner_contact",
    # labels from earlier revisions of the OTL document
    "Partner Organisation": "lead_partner_organisation",
    "Key Partner Name": "key_partner_name",
    "Key Partner Contact": "key_partner_contact",
    "Additional Details (OTL Only)": "otl_additional_details",
}

_STRUCTURED_LOCATION_FIELDS = (
    "building_and_street", "town_or_city", "postcode", "what3words",
    "meeting_point", "getting_there", "hazards", "lead_partner_organisation",
)
_STRUCTURED_DEPLOYMENT_FIELDS = (
    "estimated_demand", "risks_and_escalation", "equipment_and_supplies",
    "anticipated_needs", "special_assistance", "sensitivities", "what_to_bring",
)
_STRUCTURED_SHIFT_FIELDS = ("start_date", "start_time", "end_date", "end_time", "otl_name", "otl_contact")
_STRUCTURED_PARTNER_FIELDS = ("key_partner_name", "key_partner_contact", "otl_additional_details")


def _split_address(value: str) -> Dict[str, str]:
    lines = value.split("\n")
    if len(lines) >= 3:
        return {"building_and_street": lines[0], "town_or_city": lines[1], "postcode": lines[2]}
    if len(lines) == 2:
        return {"building_and_street": lines[0], "town_or_city": lines[1]}
    return {"building_and_street": value}


def _split_name_and_number(value: str) -> Tuple[str, str]:
    parts = value.split("\n")
    if len(parts) >= 2:
        return parts[0], parts[1]
    return value, ""


def _extract_documents(title: Optional[str], sections: List[Section]) -> Dict[str, Any]:
    extracted: Dict[str, Any] = {}

    if title:
        title_parts = title.split(":")
        if len(title_parts) > 1:
            extracted["incident_name"] = title_parts[0].strip()

    volunteers: List[VolunteerEntry] = []
    for section in sections:
        if section.heading == "Overview" and section.content:
            extracted["response_summary"] = section.content
        elif section.heading == ADDITIONAL_INFO_HEADING and section.content:
            extracted["additional_info"] = section.content

        for field in section.fields or []:
            value = field.field_value
            if not value:
                continue

            if field.label == "Address":
                extracted.update(_split_address(value))
            elif field.label == "OTL name and number":
                extracted["otl_name"], extracted["otl_contact"] = _split_name_and_number(value)
            elif field.label == SHIFT_TIMES_LABEL:
                extracted.update(split_shift_times(value))
            elif field.label.startswith("Volunteer") and field.label.endswith("name and number"):
                name, contact = _split_name_and_number(value)
                volunteers.append(VolunteerEntry(name=name, contact=contact))
            elif field.label == ADDITIONAL_INFO_HEADING and section.heading == SHIFT_SECTION_HEADING:
                extracted["otl_additional_details"] = value
            elif field.label in _LABEL_TO_FIELD:
                extracted[_LABEL_TO_FIELD[field.label]] = value

    if volunteers:
        extracted["volunteers"] = volunteers
    return extracted


def _extract_structured_v2(content: StructuredContent) -> Dict[str, Any]:
    extracted: Dict[str, Any] = {}

    if content.response_summary:
        extracted["response_summary"] = content.response_summary
    elif content.overview and content.overview.response_summary:
        extracted["response_summary"] = content.overview.response_summary
    if content.additional_info:
        extracted["additional_info"] = content.additional_info

    sources = (
        (content.response_location, _STRUCTURED_LOCATION_FIELDS),
        (content.deployment_details, _STRUCTURED_DEPLOYMENT_FIELDS),
        (content.shift_information, _STRUCTURED_SHIFT_FIELDS),
        (content.partner_details, _STRUCTURED_PARTNER_FIELDS),
    )
    for section, names in sources:
        if section is None:
            continue
        for name in names:
            value = getattr(section, name)
            if value:
                extracted[name] = value

    partner = content.partner_details
    if partner and partner.partner_organisation and "lead_partner_organisation" not in extracted:
        extracted["lead_partner_organisation"] = partner.partner_organisation

    if content.volunteers:
        extracted["volunteers"] = [
            VolunteerEntry(name=v.name or "", contact=v.contact or "", information=v.information or "")
            for v in content.volunteers
        ]
    return extracted


def extract_form_fields(content: BriefingContent, shift: str) -> BriefingFormFields:
    """
    Read a stored briefing back into builder input to pre-populate a new version.

    Only fields actually found are set, so ``model_dump(exclude_unset=True)``
    gives the original values for change detection.
    """
    if isinstance(content, VolunteerBriefingContent):
        extracted = _extract_documents(content.document.title, content.sections)
    elif isinstance(content, OtlBriefingContent):
        extracted = _extract_documents(content.page.title, content.sections)
    elif isinstance(content, StructuredContent):
        extracted = _extract_structured_v2(content) if content.format == ContentFormat.STRUCTURED_V2.value else {}
    elif isinstance(content, MarkdownContent):
        extracted = {}
    else:
        raise TypeError(f"Unsupported briefing content: {type(content).__name__}")

    extracted["briefing_reference"] = shift
    return BriefingFormFields(**extracted)


def changed_fields(original: Dict[str, Any], current: Dict[str, Any]) -> List[str]:
    """
    Names of fields whose value differs from the prefilled original.

    A field missing from the original and left empty is not a change.
    """
    changed = []
    for name in sorted(set(original) | set(current)):
        before = original.get(name)
        after = current.get(name, "")
        if before != after and (before is not None or after not in ("", None, [])):
            changed.append(name)
    return changed


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

def _rendered(
    heading: str,
    pairs: Sequence[Tuple[str, Optional[str]]] = (),
    body: Optional[str] = None,
) -> Optional[RenderedSection]:
    items = [RenderedItem(label=label, value=value) for label, value in pairs if value]
    if not items and not body:
        return None
    return RenderedSection(heading=heading, body=body or None, items=items)


def _join(*parts: Optional[str], sep: str = "\n") -> str:
    return sep.join(part for part in parts if part)


def _render_document_sections(sections: List[Section]) -> List[RenderedSection]:
    rendered = []
    for section in sections:
        items = [
            RenderedItem(label=field.label, value=field.field_value)
            for field in section.fields or []
            if field.field_value
        ]
        rendered.append(RenderedSection(heading=section.heading, body=section.content or None, items=items))
    return rendered


def _render_volunteer(content: VolunteerBriefingContent) -> RenderedBriefing:
    header = content.document
    subtitle = []
    if header.last_updated:
        subtitle.append(f"Last updated: {header.last_updated}")
    if header.audience:
        subtitle.append(f"Audience: {header.audience}")
    return RenderedBriefing(
        format=content.format,
        title=header.title or VOLUNTEER_BRIEFING_TYPE,
        subtitle=subtitle,
        intro=header.intro,
        sections=_render_document_sections(content.sections),
    )


def _render_otl(content: OtlBriefingContent) -> RenderedBriefing:
    page = content.page
    subtitle = []
    if page.metadata.last_updated:
        subtitle.append(f"Last updated: {page.metadata.last_updated}")
    return RenderedBriefing(
        format=content.format,
        title=page.title or OTL_BRIEFING_TYPE,
        subtitle=subtitle,
        intro=page.description,
        sections=_render_document_sections(content.sections),
    )


def _render_structured(content: StructuredContent) -> RenderedBriefing:
    overview = content.overview or StructuredOverview()
    location = content.response_location
    deployment = content.deployment_details
    shift = content.shift_information
    partner = content.partner_details
    resources = content.resources
    contacts = content.contacts

    sections = [
        _rendered("Overview", [
            ("Briefing Reference", overview.briefing_reference),
            ("Area Team", overview.area_team),
            ("Response Summary", overview.response_summary or content.response_summary),
        ]),
        _rendered("Situation Update", body=content.situation_update),
    ]

    if location:
        sections.append(_rendered("Response Location", [
            ("Address", _join(location.building_and_street, location.town_or_city, location.postcode)),
            ("What3words", location.what3words),
            ("Meeting Point", location.meeting_point),
            ("Getting There", location.getting_there),
            ("Hazards", location.hazards),
            ("Lead Partner Organisation", location.lead_partner_organisation),
        ]))

    if deployment:
        sections.append(_rendered("Deployment Details", [
            ("Estimated Demand", deployment.estimated_demand),
            ("Risks and Escalation", deployment.risks_and_escalation),
            ("Equipment and Supplies", deployment.equipment_and_supplies),
            ("Anticipated Needs", deployment.anticipated_needs),
            ("Special Assistance", deployment.special_assistance),
            ("Sensitivities", deployment.sensitivities),
            ("What to Bring", deployment.what_to_bring),
            ("Requested Support", deployment.requested_support),
            ("Rest Centre Location", deployment.rest_centre_location),
            ("Communication Details", deployment.communication_details),
            ("Incident Scale", deployment.incident_scale),
            ("Team Composition", deployment.team_composition),
            ("Procedures", deployment.procedures),
            ("Key Messaging", deployment.key_messaging),
        ]))

    sections.append(_rendered("Additional Information", body=content.additional_info))

    if shift:
        sections.append(_rendered("Shift Information", [
            ("Start", _join(shift.start_date, shift.start_time, sep=" ")),
            ("End", _join(shift.end_date, shift.end_time, sep=" ")),
            ("OTL Name", shift.otl_name),
            ("OTL Contact", shift.otl_contact),
        ]))

    if content.volunteers:
        sections.append(_rendered("Volunteer Details", [
            (
                f"Volunteer {number}",
                _join(volunteer.name, f"Contact: {volunteer.contact}" if volunteer.contact else None, volunteer.information),
            )
            for number, volunteer in enumerate(content.volunteers, start=1)
        ]))

    if partner:
        sections.append(_rendered("Partner Details", [
            ("Partner Organisation", partner.partner_organisation),
            ("Key Partner Name", partner.key_partner_name),
            ("Key Partner Contact", partner.key_partner_contact),
            ("Additional Details (OTL Only)", partner.otl_additional_details),
        ]))

    if resources:
        sections.append(_rendered("Resources", [
            ("Beds", resources.beds),
            ("Response Vehicles", resources.response_vehicles),
            ("Food", resources.food),
            ("Water", resources.water),
            ("Blankets", resources.blankets),
            ("Medication", resources.medication),
            ("Toiletries", resources.toiletries),
        ]))

    if contacts:
        sections.append(_rendered("Contact Information", [
            ("Incident Officer", contacts.incident_officer),
            ("OTL Contact", contacts.otl_contact),
            ("Volunteer Contact", contacts.volunteer_contact),
        ]))

    return RenderedBriefing(
        format=content.format,
        sections=[section for section in sections if section is not None],
    )


def _render_markdown_content(content: MarkdownContent) -> RenderedBriefing:
    return RenderedBriefing(
        format=content.format,
        html=render_markdown(content.text) if content.text else None,
    )


def render_briefing(content: BriefingContent) -> RenderedBriefing:
    """Normalise any content generation into one view."""
    if isinstance(content, VolunteerBriefingContent):
        return _render_volunteer(content)
    if isinstance(content, OtlBriefingContent):
        return _render_otl(content)
    if isinstance(content, StructuredContent):
        return _render_structured(content)
    if isinstance(content, MarkdownContent):
        return _render_markdown_content(content)
    raise TypeError(f"Unsupported briefing content: {type(content).__name__}")
