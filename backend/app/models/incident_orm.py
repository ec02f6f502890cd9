"""
ORM Model for Incidents.

Incidents are created once and never updated or deleted.
SQLite-compatible: UUIDs stored as String.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Boolean, DateTime

from backend.app.core.database import Base


class IncidentORM(Base):
    __tablename__ = "incidents"

    # Primary key, stored as String for SQLite compatibility
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    name = Column(Text, nullable=False)
    area = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)

    # Sensitive incidents always carry an editor password hash, others never do
    is_sensitive = Column(Boolean, nullable=False, default=False)
    editor_password_hash = Column(Text, nullable=True)

    created_by = Column(String(36), nullable=True)

    def __repr__(self):
        return f"<Incident {self.id} {self.name!r}>"
