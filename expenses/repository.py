from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from decimal import Decimal
from pathlib import Path
from typing import Iterator
from uuid import uuid4

from core.models import Expense, utc_now_iso
from expenses.repository_interface import ExpenseRepositoryProtocol


class ExpenseRepository(ExpenseRepositoryProtocol):
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
                CREATE TABLE IF NOT EXISTS expenses(
                    expense_id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    project_id TEXT,
                    receipt_date TEXT NOT NULL,
                    store_name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    total_amount TEXT NOT NULL,
                    created_at TEXT NOT NULL
                )
                """
            )
            conn.execute("CREATE INDEX IF NOT EXISTS idx_expenses_user_date ON expenses(user_id, receipt_date)")
            conn.commit()

    def create_expense(
        self,
        user_id: str,
        receipt_date: str,
        store_name: str,
        category: str,
        total_amount: Decimal,
        project_id: str | None = None,
    ) -> Expense:
        expense = Expense(
            expense_id=str(uuid4()),
            user_id=user_id,
            project_id=project_id,
            receipt_date=receipt_date,
            store_name=store_name,
            category=category,
            total_amount=total_amount,
            created_at=utc_now_iso(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO expenses(
                    expense_id, user_id, project_id, receipt_date, store_name, category, total_amount, created_at
                ) VALUES(?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    expense.expense_id,
                    user_id,
                    project_id,
                    receipt_date,
                    store_name,
                    category,
                    str(total_amount),
                    expense.created_at,
                ),
            )
            conn.commit()
        return expense

    def list_expenses(self, user_id: str, project_id: str | None = None) -> list[Expense]:
        query = (
            "SELECT expense_id, user_id, project_id, receipt_date, store_name, category, total_amount, created_at "
            "FROM expenses WHERE user_id = ?"
        )
        params: list[str] = [user_id]
        if project_id:
            query += " AND project_id = ?"
            params.append(project_id)
        query += " ORDER BY receipt_date, created_at"
        with self._connect() as conn:
            rows = conn.execute(query, tuple(params)).fetchall()
        return [
            Expense(
                expense_id=row["expense_id"],
                user_id=row["user_id"],
                project_id=row["project_id"],
                receipt_date=row["receipt_date"],
                store_name=row["store_name"],
                category=row["category"],
                total_amount=Decimal(row["total_amount"]),
                created_at=row["created_at"],
            )
            for row in rows
        ]
