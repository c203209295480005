from __future__ import annotations

from decimal import Decimal
from typing import Protocol

from core.models import Expense


class ExpenseRepositoryProtocol(Protocol):
    def create_expense(
        self,
        user_id: str,
        receipt_date: str,
        store_name: str,
        category: str,
        total_amount: Decimal,
        project_id: str | None = None,
    ) -> Expense: ...

    def list_expenses(self, user_id: str, project_id: str | None = None) -> list[Expense]: ...
