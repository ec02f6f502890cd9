"""
Access Control Schemas.

Shared by the incident and briefing routers and the access session manager.
"""
from enum import Enum
from typing import Optional

from pydantic import BaseModel


class ResourceType(str, Enum):
    INCIDENT = "incident"
    BRIEFING = "briefing"


class AccessError(str, Enum):
    NOT_FOUND = "not_found"
    MISSING_PASSWORD = "missing_password"  # protected but no stored hash
    INVALID_PASSWORD = "invalid_password"


class ProtectionStatus(BaseModel):
    """Only the lock flag; never any other resource field."""
    isProtected: bool


class AccessRequest(BaseModel):
    password: str = ""


class AccessResult(BaseModel):
    success: bool
    error: Optional[str] = None
    error_kind: Optional[AccessError] = None


class ResetResponse(BaseModel):
    success: bool = True
    cleared: int = 0
