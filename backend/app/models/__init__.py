"""Models package."""

from backend.app.models.incident_orm import IncidentORM
from backend.app.models.briefing_orm import BriefingORM
from backend.app.models.access_log_orm import AccessLogORM

__all__ = [
    "IncidentORM",
    "BriefingORM",
    "AccessLogORM",
]
