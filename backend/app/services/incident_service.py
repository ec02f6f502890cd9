import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.exceptions import ResourceNotFoundError, StoreFailureError, ValidationError
from backend.app.core.security import hash_password
from backend.app.schemas.access import ResourceType
from backend.app.schemas.incidents import (
    IncidentCreate,
    IncidentListResponse,
    IncidentRecord,
    IncidentResponse,
)
from backend.app.services.access_service import AccessSessionManager
from backend.app.services.resource_store import Created, ResourceStore

logger = logging.getLogger(__name__)


async def create_incident(payload: IncidentCreate, session: AsyncSession) -> Created[IncidentRecord]:
    """Create an incident. Sensitive incidents must carry an editor password.

    The record, id included, is built before the write so that a failed
    write or read-back still returns it, flagged persisted=False.
    """
    if not payload.name.strip():
        raise ValidationError("Name and area are required", field="name")
    if not payload.area.strip():
        raise ValidationError("Name and area are required", field="area")
    if payload.is_sensitive and not payload.editor_password:
        raise ValidationError("Password is required for sensitive incidents", field="editor_password")

    record = IncidentRecord(
        id=str(uuid.uuid4()),
        name=payload.name,
        area=payload.area,
        created_at=datetime.now(timezone.utc),
        is_sensitive=payload.is_sensitive,
        editor_password_hash=hash_password(payload.editor_password) if payload.is_sensitive else None,
    )

    store = ResourceStore(session)
    try:
        async with session.begin_nested():
            stored = await store.insert_incident(record)
    except SQLAlchemyError as e:
        logger.error(f"Incident {record.id} was not stored, returning unsaved record: {e}")
        return Created(record=record, persisted=False)

    if stored is None:
        logger.warning(f"Incident {record.id} could not be read back, returning unsaved record")
        return Created(record=record, persisted=False)

    logger.info(
        f"Incident created: {stored.id} (sensitive={stored.is_sensitive})",
        extra={"extra_data": {
            "resource_type": ResourceType.INCIDENT.value,
            "resource_id": stored.id,
            "protected": stored.is_sensitive,
        }},
    )
    return Created(record=stored, persisted=True)


async def get_incident(incident_id: str, session: AsyncSession) -> Optional[IncidentRecord]:
    try:
        return await ResourceStore(session).get_incident(incident_id)
    except SQLAlchemyError as e:
        logger.error(f"Error fetching incident {incident_id}: {e}")
        raise StoreFailureError("Failed to fetch incident") from e


async def get_incident_for_viewer(incident_id: str, access: AccessSessionManager) -> IncidentResponse:
    """Full incident if the caller may see it; NotFound or Unauthorized otherwise."""
    record = await get_incident(incident_id, access.session)
    if record is None:
        raise ResourceNotFoundError("Incident not found")
    access.require_access(ResourceType.INCIDENT, incident_id, record.is_sensitive)
    return IncidentResponse.model_validate(record.model_dump())


async def list_incidents(
    session: AsyncSession,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
) -> IncidentListResponse:
    """One page of incidents. A store failure reads as zero results."""
    page = max(page, 1)
    offset = (page - 1) * limit
    try:
        records, total = await ResourceStore(session).list_incidents(search=search, limit=limit, offset=offset)
    except SQLAlchemyError as e:
        logger.error(f"Error listing incidents: {e}")
        await session.rollback()
        records, total = [], 0

    return IncidentListResponse(
        items=[IncidentResponse.model_validate(r.model_dump()) for r in records],
        total=total,
        totalPages=math.ceil(total / limit) if limit else 0,
    )
