"""
Briefing API Router.

Dual (volunteer + OTL) and markdown briefing creation, protected reads,
the normalised view and the "create new version" prefill.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.exceptions import BriefingsError
from backend.app.schemas.access import ProtectionStatus, ResourceType
from backend.app.schemas.briefing_content import RenderedBriefing
from backend.app.schemas.briefings import (
    BriefingCreate,
    BriefingCreateResponse,
    BriefingPrefill,
    BriefingResponse,
    MarkdownBriefingCreate,
)
from backend.app.services import briefing_service
from backend.app.services.access_service import AccessGrants, AccessSessionManager, get_access_grants

logger = logging.getLogger(__name__)
router = APIRouter()


@router.post("", response_model=BriefingCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_briefings(
    payload: BriefingCreate,
    db: AsyncSession = Depends(get_db),
    grants: AccessGrants = Depends(get_access_grants),
):
    """
    Create the volunteer briefing and its OTL companion; id is the volunteer briefing.

    A new version names its source briefing, which the caller must be able
    to read, and the response lists the fields it changed.
    """
    changed = []
    try:
        if payload.source_briefing_id:
            source = await briefing_service.get_briefing_for_viewer(
                payload.source_briefing_id, AccessSessionManager(db, grants)
            )
            changed = briefing_service.changes_from(source, payload)
        volunteer, otl = await briefing_service.create_briefings(payload, db)
    except BriefingsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return BriefingCreateResponse(
        id=volunteer.record.id,
        type=volunteer.record.type,
        shift=volunteer.record.shift,
        otl_briefing_id=otl.record.id,
        persisted=volunteer.persisted and otl.persisted,
        changed_fields=changed,
    )


@router.post("/markdown", response_model=BriefingCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_markdown_briefing(
    payload: MarkdownBriefingCreate,
    db: AsyncSession = Depends(get_db),
):
    try:
        created = await briefing_service.create_markdown_briefing(payload, db)
    except BriefingsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    return BriefingCreateResponse(
        id=created.record.id,
        type=created.record.type,
        shift=created.record.shift,
        persisted=created.persisted,
    )


@router.get("/{briefing_id}/protection-status", response_model=ProtectionStatus)
async def briefing_protection_status(
    briefing_id: str,
    db: AsyncSession = Depends(get_db),
    grants: AccessGrants = Depends(get_access_grants),
):
    try:
        return await AccessSessionManager(db, grants).check_protection(ResourceType.BRIEFING, briefing_id)
    except BriefingsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{briefing_id}", response_model=BriefingResponse)
async def get_briefing(
    briefing_id: str,
    db: AsyncSession = Depends(get_db),
    grants: AccessGrants = Depends(get_access_grants),
):
    try:
        record = await briefing_service.get_briefing_for_viewer(briefing_id, AccessSessionManager(db, grants))
    except BriefingsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return briefing_service.to_response(record)


@router.get("/{briefing_id}/view", response_model=RenderedBriefing)
async def view_briefing(
    briefing_id: str,
    db: AsyncSession = Depends(get_db),
    grants: AccessGrants = Depends(get_access_grants),
):
    try:
        record = await briefing_service.get_briefing_for_viewer(briefing_id, AccessSessionManager(db, grants))
    except BriefingsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return briefing_service.render_view(record)


@router.get("/{briefing_id}/prefill", response_model=BriefingPrefill)
async def prefill_new_version(
    briefing_id: str,
    db: AsyncSession = Depends(get_db),
    grants: AccessGrants = Depends(get_access_grants),
):
    """Form input for a new version of this briefing."""
    try:
        record = await briefing_service.get_briefing_for_viewer(briefing_id, AccessSessionManager(db, grants))
    except BriefingsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return briefing_service.prefill_from(record)
