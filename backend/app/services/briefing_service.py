"""
Briefing Service.

Creates briefings (a volunteer/OTL pair from shared form input, or a single
legacy markdown briefing), reads them back subject to viewer passwords, and
serves the rendered view and "create new version" prefill.
"""
import logging
import math
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError, StoreFailureError, ValidationError
from backend.app.core.security import hash_password
from backend.app.schemas.access import ResourceType
from backend.app.schemas.briefing_content import BriefingContent, MarkdownContent, RenderedBriefing
from backend.app.schemas.briefings import (
    BriefingCreate,
    BriefingFormFields,
    BriefingListResponse,
    BriefingPrefill,
    BriefingRecord,
    BriefingResponse,
    BriefingSummary,
    MarkdownBriefingCreate,
)
from backend.app.services.access_service import AccessSessionManager
from backend.app.services.briefing_content import (
    OTL_BRIEFING_TYPE,
    VOLUNTEER_BRIEFING_TYPE,
    build_briefing_documents,
    changed_fields,
    dump_content,
    extract_form_fields,
    parse_content,
    render_briefing,
)
from backend.app.services.resource_store import Created, ResourceStore

logger = logging.getLogger(__name__)


def _new_record(
    incident_id: str,
    briefing_type: str,
    shift: str,
    content: BriefingContent,
    password: Optional[str],
    now: datetime,
) -> BriefingRecord:
    return BriefingRecord(
        id=str(uuid.uuid4()),
        incident_id=incident_id,
        type=briefing_type,
        shift=shift,
        content=dump_content(content),
        viewer_password_hash=hash_password(password) if password else None,
        created_at=now,
    )


async def _store(record: BriefingRecord, session: AsyncSession) -> Created[BriefingRecord]:
    # A failed insert rolls back to its own savepoint; earlier writes in
    # the transaction stay
    try:
        async with session.begin_nested():
            stored = await ResourceStore(session).insert_briefing(record)
    except SQLAlchemyError as e:
        logger.error(f"Briefing {record.id} was not stored, returning unsaved record: {e}")
        return Created(record=record, persisted=False)

    if stored is None:
        logger.warning(f"Briefing {record.id} could not be read back, returning unsaved record")
        return Created(record=record, persisted=False)

    logger.info(
        f"Briefing created: {stored.id} ({stored.type}, incident={stored.incident_id})",
        extra={"extra_data": {
            "resource_type": ResourceType.BRIEFING.value,
            "resource_id": stored.id,
            "incident_id": stored.incident_id,
            "protected": stored.viewer_password_hash is not None,
        }},
    )
    return Created(record=stored, persisted=True)


async def create_briefings(
    payload: BriefingCreate,
    session: AsyncSession,
    now: Optional[datetime] = None,
) -> Tuple[Created[BriefingRecord], Created[BriefingRecord]]:
    """
    Create the volunteer and OTL briefings from one form submission.

    Each document gets its own optional viewer password. Returns
    (volunteer, otl).
    """
    if not payload.incident_id:
        raise ValidationError("Incident ID is required", field="incident_id")
    if not payload.briefing_reference.strip():
        raise ValidationError("Briefing reference is required", field="briefing_reference")

    now = now or datetime.now(timezone.utc)
    volunteer_doc, otl_doc = build_briefing_documents(payload, now=now)
    shift = payload.briefing_reference

    volunteer = await _store(
        _new_record(payload.incident_id, VOLUNTEER_BRIEFING_TYPE, shift, volunteer_doc, payload.volunteer_password, now),
        session,
    )
    otl = await _store(
        _new_record(payload.incident_id, OTL_BRIEFING_TYPE, shift, otl_doc, payload.otl_password, now),
        session,
    )
    return volunteer, otl


async def create_markdown_briefing(payload: MarkdownBriefingCreate, session: AsyncSession) -> Created[BriefingRecord]:
    if not payload.incident_id:
        raise ValidationError("Incident ID is required", field="incident_id")
    if not payload.type.strip():
        raise ValidationError("Briefing type is required", field="type")
    if not payload.shift.strip():
        raise ValidationError("Briefing reference is required", field="shift")
    if payload.require_password and not payload.viewer_password:
        raise ValidationError("Password is required when password protection is enabled", field="viewer_password")

    password = payload.viewer_password if payload.require_password else None
    record = _new_record(
        payload.incident_id,
        payload.type,
        payload.shift,
        MarkdownContent(text=payload.content),
        password,
        datetime.now(timezone.utc),
    )
    return await _store(record, session)


async def get_briefing(briefing_id: str, session: AsyncSession) -> Optional[BriefingRecord]:
    try:
        return await ResourceStore(session).get_briefing(briefing_id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching briefing {briefing_id}: {e}")
        raise StoreFailureError("Failed to fetch briefing") from e


async def get_briefing_for_viewer(briefing_id: str, access: AccessSessionManager) -> BriefingRecord:
    """The briefing if the caller holds its grant (or it is open); NotFound or Unauthorized otherwise."""
    record = await get_briefing(briefing_id, access.session)
    if record is None:
        raise ResourceNotFoundError("Briefing not found")
    access.require_access(ResourceType.BRIEFING, briefing_id, record.viewer_password_hash is not None)
    return record


def to_response(record: BriefingRecord) -> BriefingResponse:
    return BriefingResponse(
        id=record.id,
        incident_id=record.incident_id,
        type=record.type,
        shift=record.shift,
        content=record.content,
        is_protected=record.viewer_password_hash is not None,
        created_at=record.created_at,
    )


def render_view(record: BriefingRecord) -> RenderedBriefing:
    return render_briefing(parse_content(record.content))


def prefill_from(record: BriefingRecord) -> BriefingPrefill:
    """Form input for a new version, read out of an existing briefing."""
    fields = extract_form_fields(parse_content(record.content), record.shift)
    return BriefingPrefill(source_briefing_id=record.id, source_type=record.type, fields=fields)


def changes_from(source: BriefingRecord, payload: BriefingFormFields) -> List[str]:
    """Names of the form fields a new version edits relative to its source briefing."""
    original = extract_form_fields(parse_content(source.content), source.shift)
    current = payload.model_dump(include=set(BriefingFormFields.model_fields))
    return changed_fields(original.model_dump(exclude_unset=True), current)


async def list_briefings(
    session: AsyncSession,
    incident_id: Optional[str] = None,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
) -> BriefingListResponse:
    """One page of briefing summaries. A store failure reads as zero results."""
    page = max(page, 1)
    offset = (page - 1) * limit
    try:
        records, total = await ResourceStore(session).list_briefings(
            incident_id=incident_id, search=search, limit=limit, offset=offset
        )
    except SQLAlchemyError as e:
        logger.error(f"Error listing briefings: {e}")
        await session.rollback()
        records, total = [], 0

    items = [
        BriefingSummary(
            id=r.id,
            incident_id=r.incident_id,
            type=r.type,
            shift=r.shift,
            is_protected=r.viewer_password_hash is not None,
            created_at=r.created_at,
        )
        for r in records
    ]
    return BriefingListResponse(
        items=items,
        total=total,
        totalPages=math.ceil(total / limit) if limit else 0,
    )
