"""
Access API Router.

Password verification for incidents and briefings, and the bulk reset that
drops every access grant the client holds.
"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import get_db
from backend.app.core.exceptions import BriefingsError
from backend.app.schemas.access import (
    AccessError,
    AccessRequest,
    AccessResult,
    ResetResponse,
    ResourceType,
)
from backend.app.services.access_service import AccessGrants, AccessSessionManager, get_access_grants

logger = logging.getLogger(__name__)
router = APIRouter()


async def _verify(
    resource_type: ResourceType,
    resource_id: str,
    payload: AccessRequest,
    response: Response,
    db: AsyncSession,
    grants: AccessGrants,
):
    try:
        result = await AccessSessionManager(db, grants).verify_access(resource_type, resource_id, payload.password)
    except BriefingsError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)

    if not result.success:
        code = status.HTTP_404_NOT_FOUND if result.error_kind == AccessError.NOT_FOUND else status.HTTP_401_UNAUTHORIZED
        return JSONResponse(status_code=code, content={"success": False, "error": result.error})

    grants.apply(response)
    return {"success": True}


@router.post("/incidents/{incident_id}/verify", response_model=AccessResult, response_model_exclude_none=True)
async def verify_incident_access(
    incident_id: str,
    payload: AccessRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    grants: AccessGrants = Depends(get_access_grants),
):
    return await _verify(ResourceType.INCIDENT, incident_id, payload, response, db, grants)


@router.post("/briefings/{briefing_id}/verify", response_model=AccessResult, response_model_exclude_none=True)
async def verify_briefing_access(
    briefing_id: str,
    payload: AccessRequest,
    response: Response,
    db: AsyncSession = Depends(get_db),
    grants: AccessGrants = Depends(get_access_grants),
):
    return await _verify(ResourceType.BRIEFING, briefing_id, payload, response, db, grants)


@router.post("/reset", response_model=ResetResponse)
async def reset_access(
    response: Response,
    grants: AccessGrants = Depends(get_access_grants),
):
    """Forget every incident and briefing grant at once."""
    cleared = grants.clear_all()
    grants.apply(response)
    logger.info(f"Access state reset, {cleared} grants cleared")
    return ResetResponse(cleared=cleared)
