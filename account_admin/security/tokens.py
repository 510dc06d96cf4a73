"""Utilities for issuing and validating session JWTs."""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import jwt

from ..config import get_settings
from ..domain.errors import TokenExpiredError, TokenMalformedError

ALGORITHM = "HS256"


@dataclass(slots=True, frozen=True)
class TokenClaims:
    """Verified subset of a session token's claims."""

    account_id: int
    expires_at: datetime


def issue_access_token(account_id: int, ttl_seconds: int | None = None) -> tuple[str, int]:
    """Create a signed JWT bound to a single account.

    Parameters
    ----------
    account_id:
        Account identifier embedded in the token ``sub`` claim.
    ttl_seconds:
        Optional lifetime override; defaults to ``JWT_TTL_SECONDS``.

    Returns
    -------
    tuple[str, int]
        The encoded JWT string and its TTL in seconds.
    """

    settings = get_settings()
    now = int(time.time())
    expires_in = settings.jwt_ttl_seconds if ttl_seconds is None else ttl_seconds
    payload: dict[str, Any] = {
        "iss": settings.jwt_issuer,
        "sub": str(account_id),
        "iat": now,
        "exp": now + expires_in,
    }

    token = jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)
    return token, expires_in


def verify_access_token(token: str) -> TokenClaims:
    """Decode and verify a JWT returning the account it is bound to.

    Raises
    ------
    TokenExpiredError
        When the ``exp`` claim is in the past.
    TokenMalformedError
        When the signature, issuer, structure or subject is invalid.
    """

    settings = get_settings()
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[ALGORITHM],
            issuer=settings.jwt_issuer,
            options={"require": ["exp", "iat", "sub", "iss"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise TokenExpiredError("token expired") from exc
    except jwt.PyJWTError as exc:
        raise TokenMalformedError("invalid token") from exc

    try:
        account_id = int(payload["sub"])
    except (TypeError, ValueError) as exc:
        raise TokenMalformedError("invalid token subject") from exc
    expires_at = datetime.fromtimestamp(payload["exp"], tz=timezone.utc)
    return TokenClaims(account_id=account_id, expires_at=expires_at)
