from __future__ import annotations

import time

import jwt
import pytest

from account_admin.config import get_settings
from account_admin.domain.errors import TokenExpiredError, TokenMalformedError
from account_admin.security.tokens import issue_access_token, verify_access_token


def test_issued_token_verifies_to_account():
    token, expires_in = issue_access_token(42)

    claims = verify_access_token(token)

    assert expires_in == get_settings().jwt_ttl_seconds
    assert claims.account_id == 42
    assert claims.expires_at.timestamp() == pytest.approx(time.time() + expires_in, abs=5)


def test_expired_token_is_rejected():
    token, _ = issue_access_token(42, ttl_seconds=-10)

    with pytest.raises(TokenExpiredError):
        verify_access_token(token)


@pytest.mark.parametrize("secret, issuer", [("someone-elses-secret", None), (None, "other-issuer")])
def test_foreign_tokens_are_malformed(secret, issuer):
    settings = get_settings()
    now = int(time.time())
    payload = {
        "iss": issuer or settings.jwt_issuer,
        "sub": "42",
        "iat": now,
        "exp": now + 60,
    }
    token = jwt.encode(payload, secret or settings.jwt_secret, algorithm="HS256")

    with pytest.raises(TokenMalformedError):
        verify_access_token(token)


def test_tampered_payload_is_malformed():
    token, _ = issue_access_token(42)
    forged, _ = issue_access_token(1)
    header, _, signature = token.split(".")
    spliced = ".".join([header, forged.split(".")[1], signature])

    with pytest.raises(TokenMalformedError):
        verify_access_token(spliced)


@pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c"])
def test_garbage_is_malformed(token):
    with pytest.raises(TokenMalformedError):
        verify_access_token(token)


def test_non_numeric_subject_is_malformed():
    settings = get_settings()
    now = int(time.time())
    token = jwt.encode(
        {"iss": settings.jwt_issuer, "sub": "admin", "iat": now, "exp": now + 60},
        settings.jwt_secret,
        algorithm="HS256",
    )

    with pytest.raises(TokenMalformedError):
        verify_access_token(token)
