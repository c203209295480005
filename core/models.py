from __future__ import annotations

from copy import deepcopy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    return utc_now().isoformat()


def parse_iso_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(slots=True)
class ConversationState:
    user_id: str
    conversation_type: str
    step: int
    data: dict[str, Any]
    started_at: datetime
    last_activity_at: datetime

    def copy(self) -> "ConversationState":
        return ConversationState(
            user_id=self.user_id,
            conversation_type=self.conversation_type,
            step=self.step,
            data=deepcopy(self.data),
            started_at=self.started_at,
            last_activity_at=self.last_activity_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "conversation_type": self.conversation_type,
            "step": self.step,
            "data": deepcopy(self.data),
            "started_at": self.started_at.isoformat(),
            "last_activity_at": self.last_activity_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "ConversationState":
        data = payload.get("data")
        return cls(
            user_id=str(payload["user_id"]),
            conversation_type=str(payload["conversation_type"]),
            step=int(payload.get("step", 0)),
            data=dict(data) if isinstance(data, dict) else {},
            started_at=parse_iso_datetime(payload["started_at"]),
            last_activity_at=parse_iso_datetime(payload["last_activity_at"]),
        )


@dataclass(slots=True)
class StoreGroup:
    canonical_name: Any
    member_names: set[Any] = field(default_factory=set)
    transactions: list[Any] = field(default_factory=list)
    total_amount: Decimal = field(default_factory=lambda: Decimal("0"))
    visit_count: int = 0


@dataclass(slots=True)
class Project:
    project_id: str
    user_id: str
    name: str
    currency: str
    status: str
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "project_id": self.project_id,
            "user_id": self.user_id,
            "name": self.name,
            "currency": self.currency,
            "status": self.status,
            "created_at": self.created_at,
        }


@dataclass(slots=True)
class Expense:
    expense_id: str
    user_id: str
    project_id: str | None
    receipt_date: str
    store_name: str
    category: str
    total_amount: Decimal
    created_at: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "expense_id": self.expense_id,
            "user_id": self.user_id,
            "project_id": self.project_id,
            "receipt_date": self.receipt_date,
            "store_name": self.store_name,
            "category": self.category,
            "total_amount": str(self.total_amount),
            "created_at": self.created_at,
        }
