"""Account service orchestrating registration, login and bulk administration."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

from .account import Account, AccountStatus
from .contracts import AuthenticatedSession, BulkResult, RegisterAccountInput
from .errors import (
    AccountBlockedError,
    InvalidCredentialsError,
    InvalidInputError,
    SelfActionForbiddenError,
)
from ..repository import AccountRepository
from ..security.passwords import dummy_password_hash, hash_password, verify_password
from ..security.tokens import issue_access_token

logger = logging.getLogger(__name__)


class AccountService:
    """Account workflows backed by the account repository.

    Nothing is cached between calls; each operation reads the repository
    afresh so status changes apply to the very next request.
    """

    def __init__(self, repository: AccountRepository) -> None:
        """Store the repository used for every account read and write."""
        self._repository = repository

    def register(self, payload: RegisterAccountInput) -> Account:
        """Create an active account. Registration never logs the user in."""
        name = (payload.name or "").strip()
        email = (payload.email or "").strip()
        password = payload.password or ""
        if not name or not email or not password:
            raise InvalidInputError("all fields required")

        account = self._repository.create_account(
            name=name,
            email=email,
            password_hash=hash_password(password),
        )
        logger.info("registered account %s", account.account_id)
        return account

    def authenticate(self, email: str | None, password: str | None) -> AuthenticatedSession:
        """Verify credentials and issue a session token.

        Unknown emails and wrong passwords raise the same
        :class:`InvalidCredentialsError`. A blocked account is reported as
        :class:`AccountBlockedError` before its password is checked.
        """
        email = (email or "").strip()
        if not email or not password:
            raise InvalidCredentialsError("invalid credentials")

        credentials = self._repository.find_credentials(email)
        if credentials is None:
            # spend the same bcrypt work as a real mismatch
            verify_password(password, dummy_password_hash())
            logger.info("login failed: unknown email")
            raise InvalidCredentialsError("invalid credentials")

        account = credentials.account
        if account.is_blocked:
            logger.warning("blocked account attempted login: %s", account.account_id)
            raise AccountBlockedError("your account has been blocked")

        if not verify_password(password, credentials.password_hash):
            logger.info("login failed: password mismatch for account %s", account.account_id)
            raise InvalidCredentialsError("invalid credentials")

        now = datetime.now(timezone.utc)
        self._repository.record_login(account.account_id, now)
        account.last_login = now

        token, expires_in = issue_access_token(account.account_id)
        logger.info("account %s logged in", account.account_id)
        return AuthenticatedSession(token=token, expires_in=expires_in, account=account)

    def list_accounts(self) -> list[Account]:
        """Return all accounts ordered by last login, never-logged-in accounts last."""
        return self._repository.list_accounts()

    def block_accounts(self, actor: Account, target_ids: Iterable[int]) -> BulkResult:
        """Block every existing target; reject the whole batch if it includes the actor."""
        ids = self._guard_self_action(actor, target_ids, "block")
        affected = self._repository.set_status(ids, AccountStatus.blocked)
        logger.info(
            "account %s blocked accounts: requested=%d affected=%d",
            actor.account_id,
            len(ids),
            affected,
        )
        return BulkResult(requested=len(ids), affected=affected)

    def unblock_accounts(self, actor: Account, target_ids: Iterable[int]) -> BulkResult:
        """Reactivate every existing target. Already-active targets are left as is."""
        ids = sorted(set(target_ids))
        affected = self._repository.set_status(ids, AccountStatus.active)
        logger.info(
            "account %s unblocked accounts: requested=%d affected=%d",
            actor.account_id,
            len(ids),
            affected,
        )
        return BulkResult(requested=len(ids), affected=affected)

    def delete_accounts(self, actor: Account, target_ids: Iterable[int]) -> BulkResult:
        """Hard-delete every existing target; reject the whole batch if it includes the actor."""
        ids = self._guard_self_action(actor, target_ids, "delete")
        affected = self._repository.delete_accounts(ids)
        logger.info(
            "account %s deleted accounts: requested=%d affected=%d",
            actor.account_id,
            len(ids),
            affected,
        )
        return BulkResult(requested=len(ids), affected=affected)

    def _guard_self_action(self, actor: Account, target_ids: Iterable[int], action: str) -> list[int]:
        ids = sorted(set(target_ids))
        if actor.account_id in ids:
            logger.warning("account %s attempted to %s itself", actor.account_id, action)
            raise SelfActionForbiddenError(f"you cannot {action} yourself")
        return ids
