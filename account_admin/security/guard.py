"""Bearer-token access guard for protected account operations."""

from __future__ import annotations

import logging

from ..domain.contracts import SessionContext
from ..domain.errors import ForbiddenError, TokenError, UnauthenticatedError
from ..repository import AccountRepository
from .tokens import verify_access_token

logger = logging.getLogger(__name__)


class AccessGuard:
    """Resolve a bearer token to a live, non-blocked account.

    Every call re-reads the account from the repository, so a block or delete
    is enforced on the very next request even though the token itself stays
    cryptographically valid until it expires.
    """

    def __init__(self, repository: AccountRepository) -> None:
        self._repository = repository

    def resolve(self, token: str | None) -> SessionContext:
        if not token:
            raise UnauthenticatedError("missing bearer token")

        try:
            claims = verify_access_token(token)
        except TokenError as exc:
            logger.info("rejected bearer token: %s", exc)
            raise

        account = self._repository.get_account(claims.account_id)
        if account is None:
            logger.info("token presented for deleted account %s", claims.account_id)
            raise ForbiddenError("account no longer exists")
        if account.is_blocked:
            logger.warning("blocked account attempted access: %s", account.account_id)
            raise ForbiddenError("account blocked")

        return SessionContext(account=account, expires_at=claims.expires_at)
