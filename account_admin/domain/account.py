from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AccountStatus(str, Enum):
    active = "active"
    blocked = "blocked"


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered user account.

    The password hash is not part of the aggregate; only the repository's
    credential lookup returns it.
    """

    account_id: int
    name: str
    email: str
    status: AccountStatus = AccountStatus.active
    last_login: datetime | None = None

    @property
    def is_blocked(self) -> bool:
        return self.status is AccountStatus.blocked
