"""SQLite storage adapter.

Implements the core AuditLogPort and TopicDirectory using a simple SQLite
database.
"""

from __future__ import annotations

from dataclasses import asdict
from datetime import datetime, timezone
import json
import sqlite3
from typing import Mapping, Optional

from core.models import CrashRecord, Message, display_text


def _serialize(message: Message) -> str:
    return json.dumps(asdict(message), default=str, ensure_ascii=False)


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the audit and topic ports."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - messages: append-only log of every inbound WhatsApp message
        - matches: append-only log of filter matches, bucketed by filter_name
        - crashes: diagnostic records written on fatal escalation
        - topics: Telegram forum topic name -> thread id
        """

        with self._connect() as conn:
            # Fields shared by messages and matches:
            # - chat_id: WhatsApp conversation JID
            # - message_id: WhatsApp message id
            # - sender: push name of the sender
            # - date: message timestamp from WhatsApp
            # - text: body text or media caption
            # - payload: full message as JSON
            # - logged_at: when the row was written
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS messages (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    chat_id TEXT,
                    message_id TEXT,
                    sender TEXT,
                    date TIMESTAMP,
                    text TEXT,
                    payload TEXT,
                    logged_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS matches (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    filter_name TEXT NOT NULL,
                    chat_id TEXT,
                    message_id TEXT,
                    sender TEXT,
                    date TIMESTAMP,
                    text TEXT,
                    payload TEXT,
                    logged_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS matches_filter_name ON matches (filter_name)")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS crashes (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    created_at TIMESTAMP NOT NULL,
                    classification TEXT,
                    message TEXT,
                    detail TEXT
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS topics (
                    name TEXT PRIMARY KEY,
                    thread_id INTEGER NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )

    def append_inbound_message(self, message: Message) -> None:
        """Persist an inbound message to the messages log."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO messages (chat_id, message_id, sender, date, text, payload, logged_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message.key.remote_jid,
                    message.key.id,
                    message.push_name,
                    message.timestamp.isoformat(),
                    display_text(message),
                    _serialize(message),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )

    def append_filter_match(self, filter_name: str, message: Message) -> None:
        """Persist a match under the filter's name."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO matches (
                    filter_name,
                    chat_id,
                    message_id,
                    sender,
                    date,
                    text,
                    payload,
                    logged_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    filter_name,
                    message.key.remote_jid,
                    message.key.id,
                    message.push_name,
                    message.timestamp.isoformat(),
                    display_text(message),
                    _serialize(message),
                    datetime.now(timezone.utc).isoformat(),
                ),
            )

    def append_crash_record(self, record: CrashRecord) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO crashes (created_at, classification, message, detail) VALUES (?, ?, ?, ?)",
                (record.timestamp.isoformat(), record.classification, record.message, record.detail),
            )

    def list_matches(self, filter_name: str) -> list[dict]:
        """Return logged matches for one filter, oldest first."""

        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM matches WHERE filter_name = ? ORDER BY id",
                (filter_name,),
            ).fetchall()
        return [dict(row) for row in rows]

    def list_crashes(self) -> list[dict]:
        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM crashes ORDER BY id").fetchall()
        return [dict(row) for row in rows]

    def lookup(self, name: str) -> Optional[int]:
        """Return the thread id of a topic, if known."""

        with self._connect() as conn:
            row = conn.execute(
                "SELECT thread_id FROM topics WHERE name = ?",
                (name,),
            ).fetchone()
        return int(row["thread_id"]) if row else None

    def save_topic(self, name: str, thread_id: int) -> None:
        """Upsert a topic name -> thread id mapping."""

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO topics (name, thread_id, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    thread_id = excluded.thread_id,
                    updated_at = excluded.updated_at
                """,
                (name, thread_id, datetime.now(timezone.utc).isoformat()),
            )

    def seed_topics(self, topics: Mapping[str, int]) -> int:
        """Store topics from config.json, returning how many were written."""

        for name, thread_id in topics.items():
            self.save_topic(name, int(thread_id))
        return len(topics)
