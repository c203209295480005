from __future__ import annotations

from typing import Protocol

from core.models import ConversationState


class ConversationStoreProtocol(Protocol):
    def get(self, user_id: str) -> ConversationState | None: ...

    def put(self, state: ConversationState) -> None: ...

    def delete(self, user_id: str) -> None: ...

    def list_user_ids(self) -> list[str]: ...
