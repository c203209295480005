from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any, Callable

from core.models import ConversationState, utc_now
from conversation.memory_store import InMemoryConversationStore
from conversation.store_interface import ConversationStoreProtocol

DEFAULT_TTL = timedelta(hours=1)


class ConversationStateManager:
    """Tracks at most one pending multi-step dialog per user.

    Missing or expired state never raises: updates become no-ops and reads
    return ``None``. Expiry is checked lazily on every read; the periodic
    sweep only bounds memory held by abandoned conversations.

    Calls are not transactional. A ``get_conversation`` followed by
    ``update_step`` for the same user can lose an update if two callers
    interleave.
    """

    def __init__(
        self,
        store: ConversationStoreProtocol | None = None,
        ttl: timedelta = DEFAULT_TTL,
        now_fn: Callable[[], datetime] | None = None,
    ) -> None:
        self.store = store if store is not None else InMemoryConversationStore()
        self.ttl = ttl
        self._now = now_fn or utc_now

    def start_conversation(
        self,
        user_id: str,
        conversation_type: str,
        initial_data: dict[str, Any] | None = None,
    ) -> ConversationState:
        now = self._now()
        state = ConversationState(
            user_id=user_id,
            conversation_type=str(getattr(conversation_type, "value", conversation_type)),
            step=0,
            data=dict(initial_data or {}),
            started_at=now,
            last_activity_at=now,
        )
        self.store.put(state)
        return state

    def update_step(self, user_id: str, step: int, new_data: dict[str, Any] | None = None) -> None:
        state = self.get_conversation(user_id)
        if state is None:
            return
        state.step = step
        state.data.update(new_data or {})
        self._touch(state)

    def update_data(self, user_id: str, new_data: dict[str, Any]) -> None:
        state = self.get_conversation(user_id)
        if state is None:
            return
        state.data.update(new_data or {})
        self._touch(state)

    def add_data(self, user_id: str, key: str, value: Any) -> None:
        state = self.get_conversation(user_id)
        if state is None:
            return
        state.data[key] = value
        self._touch(state)

    def get_conversation(self, user_id: str) -> ConversationState | None:
        state = self.store.get(user_id)
        if state is None:
            return None
        if self._is_expired(state, self._now()):
            self.end_conversation(user_id)
            return None
        return state

    def is_in_conversation(self, user_id: str) -> bool:
        return self.get_conversation(user_id) is not None

    def end_conversation(self, user_id: str) -> None:
        self.store.delete(user_id)

    def cleanup_expired_conversations(self) -> int:
        now = self._now()
        removed = 0
        for user_id in self.store.list_user_ids():
            state = self.store.get(user_id)
            if state is None or self._is_expired(state, now):
                self.store.delete(user_id)
                removed += 1
        return removed

    def _touch(self, state: ConversationState) -> None:
        state.last_activity_at = self._now()
        self.store.put(state)

    def _is_expired(self, state: ConversationState, now: datetime) -> bool:
        return now - state.last_activity_at > self.ttl
