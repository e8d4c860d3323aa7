"""Database repository for account data."""

from __future__ import annotations

import logging
import uuid
from typing import Any, Sequence

import psycopg
from psycopg import errors as pg_errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account
from .domain.contracts import AccountFilter, Ordering
from .domain.errors import NotFoundError, StoreError, UsernameTaken

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id UUID PRIMARY KEY,
    username TEXT NOT NULL,
    email TEXT NOT NULL,
    password_hash TEXT NOT NULL,
    salt TEXT NOT NULL,
    secret_key TEXT NOT NULL,
    api_key TEXT NOT NULL,
    roles TEXT[] NOT NULL,
    locked BOOLEAN NOT NULL DEFAULT FALSE,
    enabled BOOLEAN NOT NULL DEFAULT TRUE,
    first_name TEXT NOT NULL DEFAULT '',
    last_name TEXT NOT NULL DEFAULT '',
    timezone TEXT NOT NULL DEFAULT 'UTC',
    created_at TIMESTAMPTZ NOT NULL,
    CONSTRAINT accounts_username_key UNIQUE (username),
    CONSTRAINT accounts_api_key_key UNIQUE (api_key)
);
CREATE INDEX IF NOT EXISTS accounts_email_idx ON accounts (email);
"""

_COLUMNS = (
    "account_id, username, email, password_hash, salt, secret_key, api_key, roles, "
    "locked, enabled, first_name, last_name, timezone, created_at"
)
_ORDERABLE = {"username", "email", "created_at", "last_name"}


class AccountRepository:
    """Postgres-backed account store.

    Username uniqueness is enforced by the ``accounts_username_key``
    constraint; a conflicting save raises :class:`UsernameTaken`.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    def ensure_schema(self) -> None:
        """Create the accounts table and indexes when missing."""
        with self._pool.connection() as conn:
            conn.execute(SCHEMA)
            conn.commit()

    def find_by_id(self, account_id: str) -> Account | None:
        try:
            uuid.UUID(account_id)
        except ValueError:
            return None
        return self.find_one_by(AccountFilter(account_id=account_id))

    def find_one_by(self, criteria: AccountFilter) -> Account | None:
        found = self.find_many_by(criteria, limit=1)
        return found[0] if found else None

    def find_many_by(
        self,
        criteria: AccountFilter,
        ordering: Sequence[Ordering] | None = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[Account]:
        """Return accounts matching every populated field of ``criteria``."""
        clauses: list[str] = []
        params: list[Any] = []
        for name, value in criteria.constraints().items():
            if name == "role":
                clauses.append("%s = ANY(roles)")
            else:
                clauses.append(f"{name} = %s")
            params.append(value)

        query = f"SELECT {_COLUMNS} FROM accounts"
        if clauses:
            query += " WHERE " + " AND ".join(clauses)

        order_terms = []
        for order in ordering or ():
            if order.field not in _ORDERABLE:
                raise ValueError(f"cannot order by {order.field!r}")
            order_terms.append(f"{order.field} {'DESC' if order.descending else 'ASC'}")
        order_terms.append("account_id ASC")
        query += " ORDER BY " + ", ".join(order_terms)

        if limit is not None:
            query += " LIMIT %s"
            params.append(limit)
        if offset:
            query += " OFFSET %s"
            params.append(offset)

        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    cur.execute(query, params)
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise StoreError(f"account query failed: {exc}") from exc
        return [self._map_record(row) for row in rows]

    def save(self, account: Account) -> Account:
        """Insert a new account or update an existing one.

        The identifier is assigned on the account only after a successful insert.
        """
        if account.account_id is None:
            account_id = str(uuid.uuid4())
            query = f"""
                INSERT INTO accounts ({_COLUMNS})
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            """
            params = [account_id, *self._values(account), account.created_at]
        else:
            account_id = account.account_id
            query = """
                UPDATE accounts
                SET username = %s, email = %s, password_hash = %s, salt = %s,
                    secret_key = %s, api_key = %s, roles = %s, locked = %s,
                    enabled = %s, first_name = %s, last_name = %s, timezone = %s
                WHERE account_id = %s
            """
            params = [*self._values(account), account_id]

        try:
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute(query, params)
                    if cur.rowcount == 0:
                        raise NotFoundError(f"account {account_id} not found")
                conn.commit()
        except pg_errors.UniqueViolation as exc:
            constraint = exc.diag.constraint_name or ""
            if constraint == "accounts_username_key":
                raise UsernameTaken(f"username {account.username!r} is taken") from exc
            raise StoreError(f"uniqueness violation on {constraint or 'accounts'}") from exc
        except psycopg.Error as exc:
            raise StoreError(f"account save failed: {exc}") from exc

        account.account_id = account_id
        return account

    def remove(self, account: Account) -> None:
        if account.account_id is None:
            raise NotFoundError("account not found")
        try:
            with self._pool.connection() as conn:
                with conn.cursor() as cur:
                    cur.execute("DELETE FROM accounts WHERE account_id = %s", (account.account_id,))
                    deleted = cur.rowcount
                conn.commit()
        except psycopg.Error as exc:
            raise StoreError(f"account removal failed: {exc}") from exc
        if deleted == 0:
            raise NotFoundError(f"account {account.account_id} not found")

    def _values(self, account: Account) -> list[Any]:
        return [
            account.username,
            account.email,
            account.password_hash,
            account.salt,
            account.secret_key,
            account.api_key,
            sorted(account.roles),
            account.locked,
            account.enabled,
            account.first_name,
            account.last_name,
            account.timezone,
        ]

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=str(row[0]),
            username=row[1],
            email=row[2],
            password_hash=row[3],
            salt=row[4],
            secret_key=row[5],
            api_key=row[6],
            roles=set(row[7]),
            locked=row[8],
            enabled=row[9],
            first_name=row[10],
            last_name=row[11],
            timezone=row[12],
            created_at=row[13],
        )
