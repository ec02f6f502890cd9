"""
Access Session Manager.

Per-resource access control for incidents and briefings:
- protection checks that reveal only the lock flag
- password verification with an append-only access log
- 24 hour grants scoped to exactly one (resource_type, resource_id)

Grants live in signed cookies held by the client. AccessGrants wraps the
cookies of one request and stages the cookie changes for its response.
"""

import logging
from typing import Dict, Mapping, Optional, Set, Tuple

from fastapi import Request, Response
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from backend.app.core.config import get_settings
from backend.app.core.exceptions import ResourceNotFoundError, StoreFailureError, UnauthorizedError
from backend.app.core.security import (
    GRANT_TTL,
    create_grant_token,
    decode_grant_token,
    grant_cookie_name,
    is_grant_cookie,
    verify_password,
)
from backend.app.schemas.access import AccessError, AccessResult, ProtectionStatus, ResourceType
from backend.app.services.resource_store import ResourceStore

logger = logging.getLogger(__name__)
settings = get_settings()

_LABELS = {
    ResourceType.INCIDENT: "Incident",
    ResourceType.BRIEFING: "Briefing",
}


def _decision(
    resource_type: ResourceType,
    resource_id: str,
    granted: bool,
    error_kind: Optional[AccessError] = None,
) -> Dict[str, object]:
    """Log fields for one access decision. Never carries the password."""
    fields: Dict[str, object] = {
        "resource_type": resource_type.value,
        "resource_id": resource_id,
        "access_granted": granted,
    }
    if error_kind is not None:
        fields["error_kind"] = error_kind.value
    return fields


class AccessGrants:
    """Access grants carried by one request, plus the changes to send back."""

    def __init__(self, cookies: Mapping[str, str]):
        self._cookies = dict(cookies)
        self._issued: Dict[str, str] = {}
        self._cleared: Set[str] = set()

    def has(self, resource_type: ResourceType, resource_id: str) -> bool:
        """True only for an authentic, unexpired grant naming exactly this resource."""
        name = grant_cookie_name(resource_type.value, resource_id)
        if name in self._issued:
            return True
        if name in self._cleared:
            return False

        token = self._cookies.get(name)
        if not token:
            return False

        claims = decode_grant_token(token)
        if claims is None:
            return False
        return claims.get("resource_type") == resource_type.value and claims.get("resource_id") == resource_id

    def issue(self, resource_type: ResourceType, resource_id: str) -> str:
        name = grant_cookie_name(resource_type.value, resource_id)
        token = create_grant_token(resource_type.value, resource_id)
        self._issued[name] = token
        self._cleared.discard(name)
        return token

    def clear_all(self) -> int:
        """Drop every grant at once. Returns how many grant cookies are cleared."""
        names = {name for name in self._cookies if is_grant_cookie(name)} | set(self._issued)
        self._issued.clear()
        self._cleared |= names
        return len(names)

    def apply(self, response: Response) -> None:
        for name in self._cleared:
            response.delete_cookie(name, path="/")
        for name, token in self._issued.items():
            response.set_cookie(
                name,
                token,
                max_age=int(GRANT_TTL.total_seconds()),
                path="/",
                httponly=True,
                secure=settings.grant_cookie_secure,
                samesite="lax",
            )


def get_access_grants(request: Request) -> AccessGrants:
    """Dependency for the grants carried by the current request."""
    return AccessGrants(request.cookies)


class AccessSessionManager:
    """Protection checks, password verification and grant lookups."""

    def __init__(self, session: AsyncSession, grants: AccessGrants):
        self.session = session
        self.store = ResourceStore(session)
        self.grants = grants

    async def _protection(
        self,
        resource_type: ResourceType,
        resource_id: str,
    ) -> Optional[Tuple[bool, Optional[str]]]:
        try:
            if resource_type == ResourceType.INCIDENT:
                return await self.store.get_incident_protection(resource_id)
            return await self.store.get_briefing_protection(resource_id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to read protection of {resource_type.value} {resource_id}: {e}")
            raise StoreFailureError(f"Failed to check {resource_type.value} protection") from e

    async def check_protection(self, resource_type: ResourceType, resource_id: str) -> ProtectionStatus:
        """Whether the resource is locked. Reads nothing else and writes nothing."""
        protection = await self._protection(resource_type, resource_id)
        if protection is None:
            raise ResourceNotFoundError(f"{_LABELS[resource_type]} not found")
        return ProtectionStatus(isProtected=protection[0])

    async def verify_access(self, resource_type: ResourceType, resource_id: str, password: str) -> AccessResult:
        """
        Check a password against the resource and issue a grant on success.

        Unprotected resources pass without a comparison, a log entry or a
        grant. Every real comparison is logged, granted or not.
        """
        protection = await self._protection(resource_type, resource_id)
        if protection is None:
            return AccessResult(
                success=False,
                error=f"{_LABELS[resource_type]} not found",
                error_kind=AccessError.NOT_FOUND,
            )

        is_protected, password_hash = protection
        if not is_protected:
            return AccessResult(success=True)

        if not password_hash:
            logger.warning(
                f"{resource_type.value} {resource_id} is protected but has no password hash",
                extra={"extra_data": _decision(resource_type, resource_id, False, AccessError.MISSING_PASSWORD)},
            )
            return AccessResult(
                success=False,
                error="Password required but not set",
                error_kind=AccessError.MISSING_PASSWORD,
            )

        granted = verify_password(password, password_hash)
        await self._record_attempt(resource_type, resource_id, granted)

        if not granted:
            logger.info(
                f"Access denied to {resource_type.value} {resource_id}",
                extra={"extra_data": _decision(resource_type, resource_id, False, AccessError.INVALID_PASSWORD)},
            )
            return AccessResult(
                success=False,
                error="Invalid password",
                error_kind=AccessError.INVALID_PASSWORD,
            )

        self.grants.issue(resource_type, resource_id)
        logger.info(
            f"Access granted to {resource_type.value} {resource_id}",
            extra={"extra_data": _decision(resource_type, resource_id, True)},
        )
        return AccessResult(success=True)

    async def _record_attempt(self, resource_type: ResourceType, resource_id: str, granted: bool) -> None:
        # Best-effort audit trail; a failure here never changes the access decision
        # and only undoes its own savepoint
        try:
            async with self.session.begin_nested():
                await self.store.insert_access_log(resource_type.value, resource_id, granted)
        except SQLAlchemyError as e:
            logger.error(
                f"Error logging access attempt for {resource_type.value} {resource_id}: {e}",
                extra={"extra_data": _decision(resource_type, resource_id, granted)},
            )

    def has_grant(self, resource_type: ResourceType, resource_id: str) -> bool:
        return self.grants.has(resource_type, resource_id)

    def require_access(self, resource_type: ResourceType, resource_id: str, is_protected: bool) -> None:
        """Raise UnauthorizedError for a protected resource without a grant."""
        if is_protected and not self.has_grant(resource_type, resource_id):
            raise UnauthorizedError()
