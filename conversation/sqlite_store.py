from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from core.models import ConversationState, utc_now_iso
from conversation.store_interface import ConversationStoreProtocol


class SqliteConversationStore(ConversationStoreProtocol):
    def __init__(self, sqlite_path: str) -> None:
        self.sqlite_path = Path(sqlite_path)
        self.sqlite_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.sqlite_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS conversation_states(
                    user_id TEXT PRIMARY KEY,
                    payload_json TEXT NOT NULL,
                    last_activity_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )
            conn.commit()

    def get(self, user_id: str) -> ConversationState | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT payload_json FROM conversation_states WHERE user_id = ?",
                (user_id,),
            ).fetchone()
        if row is None:
            return None
        payload = _load_json(row["payload_json"])
        if not isinstance(payload, dict):
            return None
        return ConversationState.from_dict(payload)

    def put(self, state: ConversationState) -> None:
        payload = state.to_dict()
        with self._connect() as conn:
            conn.execute(
                """
                INSERT OR REPLACE INTO conversation_states(
                    user_id, payload_json, last_activity_at, updated_at
                ) VALUES(?, ?, ?, ?)
                """,
                (
                    state.user_id,
                    json.dumps(payload, ensure_ascii=False, default=str),
                    payload["last_activity_at"],
                    utc_now_iso(),
                ),
            )
            conn.commit()

    def delete(self, user_id: str) -> None:
        with self._connect() as conn:
            conn.execute("DELETE FROM conversation_states WHERE user_id = ?", (user_id,))
            conn.commit()

    def list_user_ids(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT user_id FROM conversation_states ORDER BY user_id").fetchall()
        return [str(row["user_id"]) for row in rows]


def _load_json(text: str | None) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None
