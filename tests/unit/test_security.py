"""
Unit tests for password hashing and access grant tokens.
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from backend.app.core.config import get_settings
from backend.app.core.security import (
    create_grant_token,
    decode_grant_token,
    grant_cookie_name,
    hash_password,
    is_grant_cookie,
    verify_password,
)


def test_hash_uses_cost_factor_ten():
    hashed = hash_password("secret123")
    assert hashed.startswith("$2b$10$")


def test_hash_is_salted():
    """Same password, different hashes."""
    assert hash_password("secret123") != hash_password("secret123")


@pytest.mark.parametrize("password", ["secret123", "", "pässwörd", "x" * 100])
def test_verify_round_trip(password):
    hashed = hash_password(password)
    assert verify_password(password, hashed) is True
    assert verify_password("wrong-" + password, hashed) is False


@pytest.mark.parametrize("stored", [None, "", "not-a-bcrypt-hash", "$2b$10$short"])
def test_verify_never_raises_on_bad_hash(stored):
    assert verify_password("secret123", stored) is False


def test_grant_cookie_names():
    assert grant_cookie_name("incident", "abc") == "incident_access_abc"
    assert grant_cookie_name("briefing", "abc") == "briefing_access_abc"
    assert is_grant_cookie("incident_access_abc")
    assert is_grant_cookie("briefing_access_abc")
    assert not is_grant_cookie("session_access_abc")
    assert not is_grant_cookie("csrftoken")


def test_grant_token_claims():
    now = datetime.now(timezone.utc)
    token = create_grant_token("briefing", "b-1", now=now)
    claims = decode_grant_token(token)

    assert claims["resource_type"] == "briefing"
    assert claims["resource_id"] == "b-1"
    assert claims["expires"] == int((now + timedelta(hours=24)).timestamp())


def test_grant_token_expires_after_24_hours():
    token = create_grant_token("incident", "i-1")
    later = datetime.now(timezone.utc) + timedelta(hours=24, minutes=1)
    assert decode_grant_token(token, now=later) is None


def test_grant_token_issued_long_ago_is_rejected():
    issued = datetime.now(timezone.utc) - timedelta(hours=25)
    token = create_grant_token("incident", "i-1", now=issued)
    assert decode_grant_token(token) is None


def test_grant_token_with_wrong_signature_is_rejected():
    settings = get_settings()
    forged = jwt.encode(
        {
            "resource_id": "i-1",
            "resource_type": "incident",
            "expires": int((datetime.now(timezone.utc) + timedelta(hours=1)).timestamp()),
        },
        "some-other-key",
        algorithm=settings.algorithm,
    )
    assert decode_grant_token(forged) is None


def test_unsigned_json_cookie_is_rejected():
    """A hand-written session cookie is not a grant."""
    assert decode_grant_token('{"resource_id": "i-1", "resource_type": "incident", "expires": 99999999999999}') is None


def test_grant_token_without_expires_is_rejected():
    settings = get_settings()
    token = jwt.encode({"resource_id": "i-1", "resource_type": "incident"}, settings.secret_key, algorithm=settings.algorithm)
    assert decode_grant_token(token) is None
