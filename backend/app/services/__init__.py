"""Services package."""

from backend.app.services.resource_store import Created, ResourceStore
from backend.app.services.access_service import AccessGrants, AccessSessionManager, get_access_grants

__all__ = [
    "Created",
    "ResourceStore",
    "AccessGrants",
    "AccessSessionManager",
    "get_access_grants",
]
