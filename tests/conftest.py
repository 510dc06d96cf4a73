from __future__ import annotations

import os

os.environ.setdefault("PASSWORD_HASH_ROUNDS", "4")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("RATE_LIMIT_BACKEND", "memory")

from dataclasses import replace
from datetime import datetime

import pytest
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient

from account_admin.api import routes
from account_admin.domain.account import Account, AccountStatus
from account_admin.domain.errors import DuplicateEmailError, StorageError
from account_admin.domain.service import AccountService
from account_admin.repository import StoredCredentials
from account_admin.security.guard import AccessGuard


class FakeRepository:
    """In-memory repository mimicking the Postgres-backed behaviours."""

    def __init__(self) -> None:
        self._accounts: dict[int, Account] = {}
        self._hashes: dict[int, str] = {}
        self._next_id = 1
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise StorageError("account store unavailable")

    def ensure_schema(self) -> None:
        self._check()

    def create_account(self, *, name: str, email: str, password_hash: str) -> Account:
        self._check()
        if any(account.email == email for account in self._accounts.values()):
            raise DuplicateEmailError("email already exists")
        account = Account(account_id=self._next_id, name=name, email=email)
        self._next_id += 1
        self._accounts[account.account_id] = account
        self._hashes[account.account_id] = password_hash
        return replace(account)

    def get_account(self, account_id: int) -> Account | None:
        self._check()
        account = self._accounts.get(account_id)
        return replace(account) if account else None

    def find_credentials(self, email: str) -> StoredCredentials | None:
        self._check()
        for account in self._accounts.values():
            if account.email == email:
                return StoredCredentials(
                    account=replace(account),
                    password_hash=self._hashes[account.account_id],
                )
        return None

    def record_login(self, account_id: int, at: datetime) -> None:
        self._check()
        if account_id in self._accounts:
            self._accounts[account_id].last_login = at

    def list_accounts(self) -> list[Account]:
        self._check()
        by_id = sorted(self._accounts.values(), key=lambda a: a.account_id)
        logged_in = sorted(
            (a for a in by_id if a.last_login is not None),
            key=lambda a: a.last_login,
            reverse=True,
        )
        never = [a for a in by_id if a.last_login is None]
        return [replace(a) for a in logged_in + never]

    def set_status(self, account_ids: list[int], status: AccountStatus) -> int:
        self._check()
        affected = 0
        for account_id in account_ids:
            account = self._accounts.get(account_id)
            if account is not None:
                account.status = status
                affected += 1
        return affected

    def delete_accounts(self, account_ids: list[int]) -> int:
        self._check()
        affected = 0
        for account_id in account_ids:
            if self._accounts.pop(account_id, None) is not None:
                self._hashes.pop(account_id, None)
                affected += 1
        return affected

    # test helpers

    def set_password_hash(self, account_id: int, password_hash: str) -> None:
        self._hashes[account_id] = password_hash

    def count(self) -> int:
        return len(self._accounts)


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def service(repository: FakeRepository) -> AccountService:
    return AccountService(repository)


@pytest.fixture
def guard(repository: FakeRepository) -> AccessGuard:
    return AccessGuard(repository)


@pytest.fixture
def api_client(service: AccountService, guard: AccessGuard):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    app.add_exception_handler(RequestValidationError, routes.validation_error_handler)
    app.include_router(routes.router)
    app.state.account_service = service
    app.state.access_guard = guard

    original_limiter = routes.rate_limiter
    routes.rate_limiter = routes.SlidingWindowRateLimiter(max_requests=100, window_seconds=60)

    with TestClient(app) as client:
        yield client

    routes.rate_limiter = original_limiter
