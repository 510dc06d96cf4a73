"""Domain-level request and result contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .account import Account


@dataclass(slots=True)
class RegisterAccountInput:
    """Raw inputs required to register an account; validated by the service."""

    name: str | None
    email: str | None
    password: str | None


@dataclass(slots=True)
class AuthenticatedSession:
    """Token issued on login together with the public account projection."""

    token: str
    expires_in: int
    account: Account


@dataclass(slots=True)
class SessionContext:
    """Request-scoped identity resolved by the access guard."""

    account: Account
    expires_at: datetime


@dataclass(slots=True)
class BulkResult:
    """Outcome of a bulk status change; ``affected`` counts rows that matched."""

    requested: int
    affected: int
