"""
Resource Store - Database operations for incidents, briefings and access logs.

Tables are created on first write (checkfirst), so a fresh database needs
no migration step. Every method is a thin statement over the session;
callers decide how failures surface.
"""

from dataclasses import dataclass
from typing import Generic, List, Optional, Tuple, Type, TypeVar

from sqlalchemy import desc, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.database import Base
from backend.app.models.access_log_orm import AccessLogORM
from backend.app.models.briefing_orm import BriefingORM
from backend.app.models.incident_orm import IncidentORM
from backend.app.schemas.briefings import BriefingRecord
from backend.app.schemas.incidents import IncidentRecord

T = TypeVar("T")


@dataclass
class Created(Generic[T]):
    """
    Outcome of a create call. persisted is False when the row could not be
    written or read back and record is the unsaved in-memory copy.
    """
    record: T
    persisted: bool


class ResourceStore:
    """Repository for incident, briefing and access log rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def ensure_table(self, model: Type[Base]) -> None:
        """CREATE TABLE IF NOT EXISTS for one model."""
        table = model.__table__
        await self.session.run_sync(
            lambda sync_session: table.create(sync_session.connection(), checkfirst=True)
        )

    # ------------------------------------------------------------------
    # Incidents
    # ------------------------------------------------------------------

    async def insert_incident(self, record: IncidentRecord) -> Optional[IncidentRecord]:
        """Insert, then read the row back. None if the read-back finds nothing."""
        await self.ensure_table(IncidentORM)
        self.session.add(IncidentORM(**record.model_dump()))
        await self.session.flush()
        return await self.get_incident(record.id)

    async def get_incident(self, incident_id: str) -> Optional[IncidentRecord]:
        result = await self.session.execute(
            select(IncidentORM).where(IncidentORM.id == incident_id)
        )
        orm_obj = result.scalar_one_or_none()
        if orm_obj is None:
            return None
        return IncidentRecord.model_validate(orm_obj)

    async def get_incident_protection(self, incident_id: str) -> Optional[Tuple[bool, Optional[str]]]:
        """Only (is_sensitive, editor_password_hash); no other column is read."""
        result = await self.session.execute(
            select(IncidentORM.is_sensitive, IncidentORM.editor_password_hash)
            .where(IncidentORM.id == incident_id)
        )
        row = result.first()
        if row is None:
            return None
        return bool(row[0]), row[1]

    async def list_incidents(
        self,
        search: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[IncidentRecord], int]:
        """Newest first. Search is a case-insensitive substring match on name or area."""
        conditions = []
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(IncidentORM.name.ilike(pattern), IncidentORM.area.ilike(pattern)))

        result = await self.session.execute(
            select(IncidentORM)
            .where(*conditions)
            .order_by(desc(IncidentORM.created_at))
            .limit(limit)
            .offset(offset)
        )
        items = [IncidentRecord.model_validate(obj) for obj in result.scalars().all()]

        total = await self.session.scalar(
            select(func.count()).select_from(IncidentORM).where(*conditions)
        )
        return items, total or 0

    # ------------------------------------------------------------------
    # Briefings
    # ------------------------------------------------------------------

    async def insert_briefing(self, record: BriefingRecord) -> Optional[BriefingRecord]:
        """Insert, then read the row back. None if the read-back finds nothing."""
        await self.ensure_table(BriefingORM)
        self.session.add(BriefingORM(**record.model_dump()))
        await self.session.flush()
        return await self.get_briefing(record.id)

    async def get_briefing(self, briefing_id: str) -> Optional[BriefingRecord]:
        result = await self.session.execute(
            select(BriefingORM).where(BriefingORM.id == briefing_id)
        )
        orm_obj = result.scalar_one_or_none()
        if orm_obj is None:
            return None
        return BriefingRecord.model_validate(orm_obj)

    async def get_briefing_protection(self, briefing_id: str) -> Optional[Tuple[bool, Optional[str]]]:
        """A briefing is protected exactly when it has a viewer password hash."""
        result = await self.session.execute(
            select(BriefingORM.viewer_password_hash).where(BriefingORM.id == briefing_id)
        )
        row = result.first()
        if row is None:
            return None
        return row[0] is not None, row[0]

    async def list_briefings(
        self,
        incident_id: Optional[str] = None,
        search: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> Tuple[List[BriefingRecord], int]:
        """Newest first. Search is a case-insensitive substring match on type or shift."""
        conditions = []
        if incident_id is not None:
            conditions.append(BriefingORM.incident_id == incident_id)
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(BriefingORM.type.ilike(pattern), BriefingORM.shift.ilike(pattern)))

        result = await self.session.execute(
            select(BriefingORM)
            .where(*conditions)
            .order_by(desc(BriefingORM.created_at))
            .limit(limit)
            .offset(offset)
        )
        items = [BriefingRecord.model_validate(obj) for obj in result.scalars().all()]

        total = await self.session.scalar(
            select(func.count()).select_from(BriefingORM).where(*conditions)
        )
        return items, total or 0

    # ------------------------------------------------------------------
    # Access logs
    # ------------------------------------------------------------------

    async def insert_access_log(self, resource_type: str, resource_id: str, access_granted: bool) -> None:
        await self.ensure_table(AccessLogORM)
        self.session.add(AccessLogORM(
            resource_id=resource_id,
            resource_type=resource_type,
            access_granted=access_granted,
        ))
        await self.session.flush()

    async def list_access_logs(self, resource_type: str, resource_id: str) -> List[AccessLogORM]:
        result = await self.session.execute(
            select(AccessLogORM)
            .where(AccessLogORM.resource_type == resource_type, AccessLogORM.resource_id == resource_id)
            .order_by(AccessLogORM.accessed_at)
        )
        return list(result.scalars().all())
