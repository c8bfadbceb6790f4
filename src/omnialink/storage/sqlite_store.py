"""Summary: SQLite storage implementation for OmniaLink.

Importance: Provides the local credential store for provider connections.
Alternatives: Use an ORM or an external database immediately.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from omnialink.models import ProviderConnection, User
from omnialink.token_codec import SecretCodec


@dataclass(frozen=True)
class StoredUser:
    """Summary: User record with database identifier.

    Importance: Lets OAuth state and request headers resolve to a known owner.
    Alternatives: Keep only a single implicit user without records.
    """

    id: int
    display_name: str
    email: str


_CONNECTION_COLUMNS = (
    "user_id, provider, access_token, refresh_token, scope, account_id, team_id, "
    "bot_user_id, authed_user_id, expires_at, connected_at, last_sync"
)


class SqliteStore:
    """Summary: SQLite-backed credential store for OmniaLink.

    Importance: Persists one connection per user and provider with encoded secrets.
    Alternatives: Use Postgres and SQLAlchemy from day one.
    """

    def __init__(self, db_path: str, codec: SecretCodec) -> None:
        self._db_path = Path(db_path)
        self._codec = codec

    def initialize(self) -> None:
        """Summary: Create tables if they do not exist.

        Importance: Ensures the database is ready before the first OAuth flow.
        Alternatives: Run migrations using a dedicated migration tool.
        """

        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    display_name TEXT NOT NULL,
                    email TEXT NOT NULL UNIQUE
                )
                """
            )
            cursor.execute(
                """
                CREATE TABLE IF NOT EXISTS provider_connections (
                    user_id INTEGER NOT NULL,
                    provider TEXT NOT NULL,
                    access_token TEXT,
                    refresh_token TEXT,
                    scope TEXT NOT NULL,
                    account_id TEXT NOT NULL,
                    team_id TEXT,
                    bot_user_id TEXT,
                    authed_user_id TEXT,
                    expires_at TEXT,
                    connected_at TEXT NOT NULL,
                    last_sync TEXT,
                    PRIMARY KEY (user_id, provider)
                )
                """
            )
            connection.commit()

    def ensure_user(self, user: User) -> int:
        """Summary: Ensure a user exists and return their ID.

        Importance: Provides a stable owner for connections.
        Alternatives: Omit user records in single-user mode.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "INSERT OR IGNORE INTO users (display_name, email) VALUES (?, ?)",
                (user.display_name, user.email),
            )
            if cursor.rowcount:
                user_id = cursor.lastrowid
            else:
                cursor.execute("SELECT id FROM users WHERE email = ?", (user.email,))
                row = cursor.fetchone()
                user_id = int(row[0]) if row else 0
            connection.commit()
        return int(user_id)

    def get_user(self, user_id: int) -> StoredUser | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute("SELECT id, display_name, email FROM users WHERE id = ?", (user_id,))
            row = cursor.fetchone()
        if not row:
            return None
        return StoredUser(id=int(row[0]), display_name=row[1], email=row[2])

    def upsert_connection(self, connection_record: ProviderConnection) -> None:
        """Summary: Insert or replace the connection for a user and provider.

        Importance: Re-authorization overwrites the previous credentials in one statement.
        Alternatives: Delete then insert inside an explicit transaction.
        """

        with self._connection() as connection:
            connection.execute(
                f"""
                INSERT INTO provider_connections ({_CONNECTION_COLUMNS})
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(user_id, provider) DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = excluded.refresh_token,
                    scope = excluded.scope,
                    account_id = excluded.account_id,
                    team_id = excluded.team_id,
                    bot_user_id = excluded.bot_user_id,
                    authed_user_id = excluded.authed_user_id,
                    expires_at = excluded.expires_at,
                    connected_at = excluded.connected_at,
                    last_sync = excluded.last_sync
                """,
                (
                    connection_record.user_id,
                    connection_record.provider,
                    self._codec.encode(connection_record.access_token),
                    self._codec.encode(connection_record.refresh_token),
                    connection_record.scope,
                    connection_record.account_id,
                    connection_record.team_id,
                    connection_record.bot_user_id,
                    connection_record.authed_user_id,
                    _to_text(connection_record.expires_at),
                    _to_text(connection_record.connected_at),
                    _to_text(connection_record.last_sync),
                ),
            )
            connection.commit()

    def update_tokens(
        self,
        user_id: int,
        provider: str,
        access_token: str | None,
        refresh_token: str | None,
        expires_at: datetime | None,
    ) -> bool:
        """Summary: Replace the tokens of an existing connection only.

        Importance: A refresh racing a disconnect must not bring the deleted row back.
        Alternatives: Upsert the refreshed record and accept resurrection.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "UPDATE provider_connections SET access_token = ?, refresh_token = ?, expires_at = ? "
                "WHERE user_id = ? AND provider = ?",
                (
                    self._codec.encode(access_token),
                    self._codec.encode(refresh_token),
                    _to_text(expires_at),
                    user_id,
                    provider,
                ),
            )
            updated = cursor.rowcount > 0
            connection.commit()
        return updated

    def get_connection(self, user_id: int, provider: str) -> ProviderConnection | None:
        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                f"SELECT {_CONNECTION_COLUMNS} FROM provider_connections "
                "WHERE user_id = ? AND provider = ?",
                (user_id, provider),
            )
            row = cursor.fetchone()
        if not row:
            return None
        return ProviderConnection(
            user_id=int(row[0]),
            provider=row[1],
            access_token=self._codec.decode(row[2]),
            refresh_token=self._codec.decode(row[3]),
            scope=row[4],
            account_id=row[5],
            team_id=row[6],
            bot_user_id=row[7],
            authed_user_id=row[8],
            expires_at=_from_text(row[9]),
            connected_at=_from_text(row[10]) or datetime.now(timezone.utc),
            last_sync=_from_text(row[11]),
        )

    def delete_connection(self, user_id: int, provider: str) -> bool:
        """Summary: Remove a stored connection.

        Importance: Disconnect leaves no credentials behind.
        Alternatives: Blank the token columns and keep the row.
        """

        with self._connection() as connection:
            cursor = connection.cursor()
            cursor.execute(
                "DELETE FROM provider_connections WHERE user_id = ? AND provider = ?",
                (user_id, provider),
            )
            deleted = cursor.rowcount > 0
            connection.commit()
        return deleted

    def touch_last_sync(self, user_id: int, provider: str, when: datetime | None = None) -> None:
        moment = when or datetime.now(timezone.utc)
        with self._connection() as connection:
            connection.execute(
                "UPDATE provider_connections SET last_sync = ? WHERE user_id = ? AND provider = ?",
                (moment.isoformat(), user_id, provider),
            )
            connection.commit()

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        """Summary: Context manager for SQLite connections.

        Importance: Ensures connections are closed cleanly after use.
        Alternatives: Keep a single long-lived connection.
        """

        connection = sqlite3.connect(self._db_path)
        try:
            yield connection
        finally:
            connection.close()


def _to_text(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _from_text(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
