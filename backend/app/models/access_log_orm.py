"""
Access Log ORM Model.

Append-only audit trail of password verification attempts against
protected incidents and briefings. Entries are never updated or deleted.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Boolean, DateTime
from backend.app.core.database import Base


class AccessLogORM(Base):
    __tablename__ = "access_logs"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    resource_id = Column(String(36), index=True, nullable=False)
    resource_type = Column(String(20), nullable=False)  # incident | briefing
    user_id = Column(String(36), nullable=True)

    accessed_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    access_granted = Column(Boolean, nullable=False)

    def __repr__(self):
        outcome = "granted" if self.access_granted else "denied"
        return f"<AccessLog {self.resource_type} {self.resource_id} {outcome}>"
