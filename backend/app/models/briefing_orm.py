"""
ORM Model for Briefings.

Every version of a briefing is its own row; there is no version chain.
The content column holds the tagged document (see schemas/briefing_content.py)
and is opaque to storage.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, DateTime, JSON
from sqlalchemy.dialects.postgresql import JSONB

from backend.app.core.database import Base


class BriefingORM(Base):
    __tablename__ = "briefings"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Parent incident (no FK constraint for SQLite compatibility)
    incident_id = Column(String(36), nullable=False, index=True)

    type = Column(Text, nullable=False)  # "Volunteer Briefing" | "OTL Briefing" | free text
    shift = Column(Text, nullable=False)
    content = Column(JSON().with_variant(JSONB(), "postgresql"), nullable=True)
    viewer_password_hash = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc), index=True)
    created_by = Column(String(36), nullable=True)

    def __repr__(self):
        return f"<Briefing {self.type} {self.shift!r} for {self.incident_id}>"
