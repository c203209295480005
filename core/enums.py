from __future__ import annotations

from enum import Enum


class ConversationType(str, Enum):
    CREATE_PROJECT = "create_project"
    CLOSE_PROJECT = "close_project"
    OPEN_PROJECT = "open_project"
    CREATE_EXPENSE = "create_expense"


class ProjectStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ExpenseCategory(str, Enum):
    GROCERIES = "groceries"
    DINING = "dining"
    GAS = "gas"
    PHARMACY = "pharmacy"
    RETAIL = "retail"
    SERVICES = "services"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


class MatchStrategy(str, Enum):
    FIRST_MATCH = "first_match"
    LONGEST_MATCH = "longest_match"


class TransactionField:
    STORE_NAME = "store_name"
    TOTAL_AMOUNT = "total_amount"
    STORE = "store"
    TOTAL = "total"
    AMOUNT = "amount"
