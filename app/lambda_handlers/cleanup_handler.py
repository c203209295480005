from __future__ import annotations

import os
from typing import Any

from app.config import load_config
from conversation.state_manager import ConversationStateManager
from conversation.store_factory import create_conversation_manager

_MANAGER: ConversationStateManager | None = None


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Scheduled sweep of abandoned conversations (EventBridge rate rule)."""
    _ = event
    _ = context
    try:
        removed = _get_manager().cleanup_expired_conversations()
    except Exception as exc:  # noqa: BLE001
        print(f"conversation-cleanup-failed error={exc}")
        return {"ok": False, "removed": 0, "error": str(exc)}
    print(f"conversation-cleanup removed={removed}")
    return {"ok": True, "removed": removed}


def _get_manager() -> ConversationStateManager:
    global _MANAGER
    if _MANAGER is None:
        config = load_config(os.getenv("EXPENSEBOT_CONFIG_PATH", "config.yaml"))
        _MANAGER = create_conversation_manager(config)
    return _MANAGER
