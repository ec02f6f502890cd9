"""
Incident API Router.

Create, list and read incidents. Sensitive incidents are only returned to
callers holding that incident's access grant; the protection-status
endpoint is open and reveals only the lock flag.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import get_settings
from backend.app.core.database import get_db
from backend.app.core.exceptions import BriefingsError
from backend.app.schemas.access import ProtectionStatus, ResourceType
from backend.app.schemas.briefings import BriefingListResponse
from backend.app.schemas.incidents import (
    IncidentCreate,
    IncidentCreateResponse,
    IncidentListResponse,
    IncidentResponse,
)
from backend.app.services import briefing_service, incident_service
from backend.app.services.access_service import AccessGrants, AccessSessionManager, get_access_grants

logger = logging.getLogger(__name__)
settings = get_settings()
router = APIRouter()


@router.post("", response_model=IncidentCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_incident(
    payload: IncidentCreate,
    db: AsyncSession = Depends(get_db),
):
    try:
        created = await incident_service.create_incident(payload, db)
    except BriefingsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    record = created.record
    return IncidentCreateResponse(
        id=record.id,
        name=record.name,
        area=record.area,
        persisted=created.persisted,
    )


@router.get("", response_model=IncidentListResponse)
async def list_incidents(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    return await incident_service.list_incidents(db, page=page, limit=limit, search=search)


@router.get("/{incident_id}/protection-status", response_model=ProtectionStatus)
async def incident_protection_status(
    incident_id: str,
    db: AsyncSession = Depends(get_db),
    grants: AccessGrants = Depends(get_access_grants),
):
    try:
        return await AccessSessionManager(db, grants).check_protection(ResourceType.INCIDENT, incident_id)
    except BriefingsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{incident_id}", response_model=IncidentResponse)
async def get_incident(
    incident_id: str,
    db: AsyncSession = Depends(get_db),
    grants: AccessGrants = Depends(get_access_grants),
):
    try:
        return await incident_service.get_incident_for_viewer(incident_id, AccessSessionManager(db, grants))
    except BriefingsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{incident_id}/briefings", response_model=BriefingListResponse)
async def list_incident_briefings(
    incident_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
):
    """Briefing summaries for one incident. Summaries never include content."""
    return await briefing_service.list_briefings(
        db, incident_id=incident_id, page=page, limit=limit, search=search
    )
