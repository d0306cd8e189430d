"""SQLite storage adapter.

Implements the core ChannelStorePort and ChangeSinkPort using a simple SQLite
database.
"""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator, Optional

from core.models import AssigneeChange
from core.ports import StoreUnavailableError


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the store and sink contracts."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as exc:
            raise StoreUnavailableError(f"Cannot open {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Connection scope that reports any sqlite failure as a store outage."""

        conn = self._connect()
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreUnavailableError(str(exc)) from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - channels: current assignee per channel
        - assignee_changes: append-only log of assignee changes
        """

        with self._transaction() as conn:
            # channels holds the one shared field the engine arbitrates.
            # Fields:
            # - channel_key: platform-qualified channel key (PRIMARY KEY)
            # - assignee: self_id of the owning bot, '' when unclaimed
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS channels (
                    channel_key TEXT PRIMARY KEY,
                    assignee TEXT NOT NULL DEFAULT ''
                )
                """
            )
            # assignee_changes is an audit log only; the engine never reads it.
            # Fields:
            # - id: auto-increment primary key
            # - channel_key: channel that changed hands
            # - platform / self_id: identity whose decision caused the change
            # - previous / new: assignee before and after
            # - reason: decision reason from the trace
            # - created_at: when the change was recorded
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS assignee_changes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    channel_key TEXT NOT NULL,
                    platform TEXT NOT NULL,
                    self_id TEXT NOT NULL,
                    previous TEXT NOT NULL,
                    new TEXT NOT NULL,
                    reason TEXT,
                    created_at TIMESTAMP NOT NULL
                )
                """
            )

    def get_assignee(self, channel_key: str) -> str:
        """Return the current assignee for a channel, '' if none."""

        with self._transaction() as conn:
            row = conn.execute(
                "SELECT assignee FROM channels WHERE channel_key = ?",
                (channel_key,),
            ).fetchone()
        return str(row["assignee"]) if row else ""

    def set_assignee(self, channel_key: str, assignee: str) -> None:
        """Upsert the assignee for a channel."""

        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO channels (channel_key, assignee)
                VALUES (?, ?)
                ON CONFLICT(channel_key) DO UPDATE SET assignee = excluded.assignee
                """,
                (channel_key, assignee),
            )

    def record_change(self, change: AssigneeChange) -> None:
        """Append an assignee change to the audit log."""

        created_at = datetime.now(timezone.utc)
        with self._transaction() as conn:
            conn.execute(
                """
                INSERT INTO assignee_changes (
                    channel_key,
                    platform,
                    self_id,
                    previous,
                    new,
                    reason,
                    created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    change.channel_key,
                    change.identity.platform,
                    change.identity.self_id,
                    change.previous,
                    change.new,
                    change.reason,
                    created_at.isoformat(),
                ),
            )

    def list_assignees(self, platform: Optional[str] = None) -> dict[str, str]:
        """Return channel_key -> assignee for every claimed channel."""

        query = "SELECT channel_key, assignee FROM channels WHERE assignee != ''"
        params: tuple = ()
        if platform:
            query += " AND channel_key LIKE ?"
            params = (f"{platform}:%",)
        with self._transaction() as conn:
            rows = conn.execute(query, params).fetchall()
        return {row["channel_key"]: row["assignee"] for row in rows}
