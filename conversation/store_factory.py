from __future__ import annotations

from datetime import timedelta
from typing import Any

from conversation.dynamo_store import DynamoConversationStore
from conversation.memory_store import InMemoryConversationStore
from conversation.sqlite_store import SqliteConversationStore
from conversation.state_manager import ConversationStateManager
from conversation.store_interface import ConversationStoreProtocol


def create_conversation_store(config: dict[str, Any]) -> ConversationStoreProtocol:
    conv_conf = config.get("conversation", {})
    backend = str(conv_conf.get("backend", "memory") or "memory").strip().lower()

    if backend == "dynamodb":
        ddb_conf = conv_conf.get("dynamodb", {}) if isinstance(conv_conf, dict) else {}
        return DynamoConversationStore(
            region_name=_as_optional_str(ddb_conf.get("region")),
            table_prefix=str(ddb_conf.get("table_prefix", "expensebot")),
            table_name=_as_optional_str(ddb_conf.get("table")),
            ttl=timedelta(minutes=conversation_ttl_minutes(config)),
        )

    if backend == "sqlite":
        sqlite_path = str(conv_conf.get("sqlite_path", "data/conversation/states.db"))
        return SqliteConversationStore(sqlite_path=sqlite_path)

    return InMemoryConversationStore()


def create_conversation_manager(config: dict[str, Any]) -> ConversationStateManager:
    return ConversationStateManager(
        store=create_conversation_store(config),
        ttl=timedelta(minutes=conversation_ttl_minutes(config)),
    )


def conversation_ttl_minutes(config: dict[str, Any]) -> int:
    conv_conf = config.get("conversation", {})
    try:
        minutes = int(conv_conf.get("ttl_minutes", 60))
    except (TypeError, ValueError):
        minutes = 60
    return max(1, minutes)


def _as_optional_str(value: Any) -> str | None:
    text = str(value or "").strip()
    return text or None
