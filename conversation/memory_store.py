from __future__ import annotations

from core.models import ConversationState
from conversation.store_interface import ConversationStoreProtocol


class InMemoryConversationStore(ConversationStoreProtocol):
    """Process-local store. Not shared between workers."""

    def __init__(self) -> None:
        self._states: dict[str, ConversationState] = {}

    def get(self, user_id: str) -> ConversationState | None:
        state = self._states.get(user_id)
        if state is None:
            return None
        return state.copy()

    def put(self, state: ConversationState) -> None:
        self._states[state.user_id] = state.copy()

    def delete(self, user_id: str) -> None:
        self._states.pop(user_id, None)

    def list_user_ids(self) -> list[str]:
        return list(self._states.keys())
