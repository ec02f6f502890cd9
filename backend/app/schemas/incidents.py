"""
Incident Schemas.

IncidentRecord is the internal shape (it carries the password hash);
IncidentResponse is what leaves the API.
"""
from datetime import datetime
from typing import Optional, List

from pydantic import BaseModel, ConfigDict


class IncidentCreate(BaseModel):
    # Required-ness is checked by the service so that callers get field-level messages
    name: str = ""
    area: str = ""
    is_sensitive: bool = False
    editor_password: Optional[str] = None


class IncidentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    area: str
    created_at: datetime
    is_sensitive: bool = False
    editor_password_hash: Optional[str] = None
    created_by: Optional[str] = None


class IncidentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    area: str
    created_at: datetime
    is_sensitive: bool = False


class IncidentCreateResponse(BaseModel):
    success: bool = True
    id: str
    name: str
    area: str
    persisted: bool


class IncidentListResponse(BaseModel):
    items: List[IncidentResponse]
    total: int
    totalPages: int
