"""
Credential hashing and access grant tokens.

Passwords are hashed with bcrypt at a fixed cost factor so that every stored
hash stays verifiable for the lifetime of the system. Access grants are
short-lived JWTs scoped to a single (resource_type, resource_id) pair and
carried by the client in a cookie; nothing about a grant is stored server-side.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import bcrypt
from jose import JWTError, jwt

from backend.app.core.config import get_settings

logger = logging.getLogger(__name__)
settings = get_settings()

# Work factor for bcrypt. Never change: existing hashes are verified with it.
BCRYPT_ROUNDS = 10

# Grants expire 24 hours after issuance, no renewal.
GRANT_TTL = timedelta(hours=24)

# Bcrypt has a 72 byte limit
_BCRYPT_MAX_BYTES = 72


def hash_password(plain: str) -> str:
    """Hash a password with a fresh salt at the fixed cost factor."""
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(plain.encode("utf-8")[:_BCRYPT_MAX_BYTES], salt)
    return hashed.decode("utf-8")


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    """
    Verify a password against a stored hash.

    Malformed or missing hashes count as a failed verification, never an error.
    """
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8")[:_BCRYPT_MAX_BYTES], hashed.encode("utf-8"))
    except (ValueError, TypeError) as e:
        logger.error(f"Password verification error: {e}")
        return False


def grant_cookie_name(resource_type: str, resource_id: str) -> str:
    """Cookie carrying the grant for exactly one resource instance."""
    return f"{resource_type}_access_{resource_id}"


def is_grant_cookie(name: str) -> bool:
    prefix, sep, _ = name.partition("_access_")
    return bool(sep) and prefix in ("incident", "briefing")


def create_grant_token(
    resource_type: str,
    resource_id: str,
    now: Optional[datetime] = None,
) -> str:
    """
    Generate a signed grant for one resource, valid for GRANT_TTL.
    """
    issued_at = now or datetime.now(timezone.utc)
    expires = issued_at + GRANT_TTL
    to_encode = {
        "resource_id": resource_id,
        "resource_type": resource_type,
        "expires": int(expires.timestamp()),
        "exp": expires,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def decode_grant_token(token: str, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """
    Return the grant claims if the token is authentic and not yet expired.

    Tampered, foreign and expired tokens all yield None.
    """
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None

    current = now or datetime.now(timezone.utc)
    expires = claims.get("expires")
    if not isinstance(expires, (int, float)) or expires <= current.timestamp():
        return None
    return claims
