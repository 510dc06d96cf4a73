"""Database repository for account and credential data."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account, AccountStatus
from .domain.errors import DuplicateEmailError, StorageError

logger = logging.getLogger(__name__)

_ACCOUNT_COLUMNS = "id, name, email, status, last_login"

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    id            SERIAL PRIMARY KEY,
    name          VARCHAR(255) NOT NULL,
    email         VARCHAR(255) NOT NULL UNIQUE,
    password_hash VARCHAR(255) NOT NULL,
    status        VARCHAR(16)  NOT NULL DEFAULT 'active'
                  CHECK (status IN ('active', 'blocked')),
    last_login    TIMESTAMPTZ  NULL,
    created_at    TIMESTAMPTZ  NOT NULL DEFAULT NOW()
)
"""


@dataclass(slots=True)
class StoredCredentials:
    """Account together with its password hash, used only during login."""

    account: Account
    password_hash: str


class AccountRepository:
    """Postgres-backed account persistence.

    Bulk mutations are issued as one statement over the whole id set
    (``id = ANY(%s)``) so each is atomic with respect to concurrent writers.
    Every ``psycopg.Error`` is logged and re-raised as :class:`StorageError`.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _cursor(self, operation: str) -> Iterator[psycopg.Cursor]:
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    yield cur
                conn.commit()
        except psycopg.Error as exc:
            logger.exception("account store failure during %s", operation)
            raise StorageError("account store unavailable") from exc

    def ensure_schema(self) -> None:
        """Create the accounts table when it does not exist yet."""
        with self._cursor("ensure_schema") as cur:
            cur.execute(SCHEMA_SQL)

    def create_account(self, *, name: str, email: str, password_hash: str) -> Account:
        """Insert a new active account; raise :class:`DuplicateEmailError` on conflict."""
        with self._cursor("create_account") as cur:
            try:
                cur.execute(
                    f"""
                    INSERT INTO accounts (name, email, password_hash)
                    VALUES (%s, %s, %s)
                    RETURNING {_ACCOUNT_COLUMNS}
                    """,
                    (name, email, password_hash),
                )
            except pg_errors.UniqueViolation as exc:
                raise DuplicateEmailError("email already exists") from exc
            row = cur.fetchone()
        return self._map_record(row)

    def get_account(self, account_id: int) -> Account | None:
        """Fetch an account by id or return ``None``."""
        with self._cursor("get_account") as cur:
            cur.execute(
                f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE id = %s",
                (account_id,),
            )
            row = cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    def find_credentials(self, email: str) -> StoredCredentials | None:
        """Return the account and password hash registered under ``email``."""
        with self._cursor("find_credentials") as cur:
            cur.execute(
                f"SELECT {_ACCOUNT_COLUMNS}, password_hash FROM accounts WHERE email = %s",
                (email,),
            )
            row = cur.fetchone()
        if not row:
            return None
        return StoredCredentials(account=self._map_record(row[:5]), password_hash=row[5])

    def record_login(self, account_id: int, at: datetime) -> None:
        """Stamp the account's last successful authentication time."""
        with self._cursor("record_login") as cur:
            cur.execute(
                "UPDATE accounts SET last_login = %s WHERE id = %s",
                (at, account_id),
            )

    def list_accounts(self) -> list[Account]:
        """Return every account, most recently authenticated first."""
        with self._cursor("list_accounts") as cur:
            cur.execute(
                f"""
                SELECT {_ACCOUNT_COLUMNS}
                FROM accounts
                ORDER BY last_login DESC NULLS LAST, id ASC
                """
            )
            rows = cur.fetchall()
        return [self._map_record(row) for row in rows]

    def set_status(self, account_ids: list[int], status: AccountStatus) -> int:
        """Set ``status`` on every existing id in one statement; return the match count."""
        if not account_ids:
            return 0
        with self._cursor("set_status") as cur:
            cur.execute(
                "UPDATE accounts SET status = %s WHERE id = ANY(%s)",
                (status.value, account_ids),
            )
            return cur.rowcount

    def delete_accounts(self, account_ids: list[int]) -> int:
        """Hard-delete every existing id in one statement; return the number removed."""
        if not account_ids:
            return 0
        with self._cursor("delete_accounts") as cur:
            cur.execute("DELETE FROM accounts WHERE id = ANY(%s)", (account_ids,))
            return cur.rowcount

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=row[0],
            name=row[1],
            email=row[2],
            status=AccountStatus(row[3]),
            last_login=row[4],
        )
