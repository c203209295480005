from __future__ import annotations

import re
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from core.enums import ConversationType, ExpenseCategory, ProjectStatus
from core.models import ConversationState, Project
from conversation.state_manager import ConversationStateManager
from expenses.repository_interface import ExpenseRepositoryProtocol
from projects.repository_interface import ProjectRepositoryProtocol
from stores.normalizer import parse_amount
from telegrambot import message_templates
from telegrambot.message_templates import CURRENCY_MAX_LENGTH, PROJECT_NAME_MAX_LENGTH

STEP_PROJECT_NAME = 0
STEP_PROJECT_CURRENCY = 1

STEP_EXPENSE_DATE = 0
STEP_EXPENSE_STORE = 1
STEP_EXPENSE_CATEGORY = 2
STEP_EXPENSE_AMOUNT = 3
STEP_EXPENSE_PROJECT = 4

EXPENSE_CATEGORIES = list(ExpenseCategory)
MAX_EXPENSE_AMOUNT = Decimal("999999")

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class ConversationFlowService:
    """Routes bot commands and free text into multi-step expense and project flows."""

    def __init__(
        self,
        manager: ConversationStateManager,
        projects: ProjectRepositoryProtocol,
        expenses: ExpenseRepositoryProtocol,
    ) -> None:
        self.manager = manager
        self.projects = projects
        self.expenses = expenses

    def handle_text(self, user_id: str, text: str) -> list[dict[str, Any]]:
        stripped = (text or "").strip()
        if stripped.startswith("/"):
            command = stripped.split()[0].split("@", 1)[0].lower()
            return self.handle_command(user_id, command)

        conversation = self.manager.get_conversation(user_id)
        if conversation is None:
            return message_templates.build_not_in_conversation_message()
        return self._continue_conversation(user_id, text or "", conversation)

    def handle_command(self, user_id: str, command: str) -> list[dict[str, Any]]:
        if command == "/cancel":
            self.manager.end_conversation(user_id)
            return message_templates.build_cancelled_message()
        if command == "/create":
            self.manager.start_conversation(user_id, ConversationType.CREATE_EXPENSE)
            return message_templates.build_ask_expense_date_message()
        if command == "/new":
            self.manager.start_conversation(user_id, ConversationType.CREATE_PROJECT)
            return message_templates.build_ask_project_name_message()
        if command == "/list":
            projects = self._list_projects(user_id, ProjectStatus.OPEN)
            if projects is None:
                return message_templates.build_projects_fetch_failed_message()
            return message_templates.build_project_list_message(projects)
        if command == "/close":
            return self._start_status_flow(user_id, ConversationType.CLOSE_PROJECT)
        if command == "/open":
            return self._start_status_flow(user_id, ConversationType.OPEN_PROJECT)
        return message_templates.build_help_message()

    def _continue_conversation(
        self,
        user_id: str,
        text: str,
        conversation: ConversationState,
    ) -> list[dict[str, Any]]:
        if conversation.conversation_type == ConversationType.CREATE_EXPENSE.value:
            return self._handle_create_expense(user_id, text, conversation)
        if conversation.conversation_type == ConversationType.CREATE_PROJECT.value:
            return self._handle_create_project(user_id, text, conversation)
        if conversation.conversation_type == ConversationType.CLOSE_PROJECT.value:
            return self._handle_status_selection(user_id, text, conversation, ProjectStatus.CLOSED)
        if conversation.conversation_type == ConversationType.OPEN_PROJECT.value:
            return self._handle_status_selection(user_id, text, conversation, ProjectStatus.OPEN)
        self.manager.end_conversation(user_id)
        return message_templates.build_unknown_flow_message()

    def _handle_create_project(
        self,
        user_id: str,
        text: str,
        conversation: ConversationState,
    ) -> list[dict[str, Any]]:
        value = text.strip()
        if conversation.step == STEP_PROJECT_NAME:
            if not value:
                return message_templates.build_project_name_empty_message()
            if len(value) > PROJECT_NAME_MAX_LENGTH:
                return message_templates.build_project_name_too_long_message()
            self.manager.update_step(user_id, STEP_PROJECT_CURRENCY, {"name": value})
            return message_templates.build_ask_currency_message(value)

        if not value:
            return message_templates.build_currency_empty_message()
        if len(value) > CURRENCY_MAX_LENGTH:
            return message_templates.build_currency_too_long_message()

        name = str(conversation.data.get("name", "") or "").strip()
        if not name:
            # Name missing from state; restart at the name step.
            self.manager.update_step(user_id, STEP_PROJECT_NAME)
            return message_templates.build_ask_project_name_message()
        try:
            project = self.projects.create_project(user_id=user_id, name=name, currency=value)
        except Exception as exc:  # noqa: BLE001
            print(f"project-create-failed user_id={user_id} error={exc}")
            self.manager.end_conversation(user_id)
            return message_templates.build_project_create_failed_message()
        self.manager.end_conversation(user_id)
        return message_templates.build_project_created_message(project)

    def _handle_create_expense(
        self,
        user_id: str,
        text: str,
        conversation: ConversationState,
    ) -> list[dict[str, Any]]:
        value = text.strip()
        data = conversation.data

        if conversation.step == STEP_EXPENSE_DATE:
            receipt_date = _parse_receipt_date(value)
            if receipt_date is None:
                return message_templates.build_invalid_date_message()
            self.manager.update_step(user_id, STEP_EXPENSE_STORE, {"receipt_date": receipt_date})
            return message_templates.build_ask_store_name_message(receipt_date)

        if conversation.step == STEP_EXPENSE_STORE:
            if not value:
                return message_templates.build_store_name_empty_message()
            self.manager.update_step(user_id, STEP_EXPENSE_CATEGORY, {"store_name": value})
            return message_templates.build_ask_category_message(value, EXPENSE_CATEGORIES)

        if conversation.step == STEP_EXPENSE_CATEGORY:
            index = _safe_int(value)
            if index is None or index < 1 or index > len(EXPENSE_CATEGORIES):
                return message_templates.build_invalid_category_message(EXPENSE_CATEGORIES)
            category = EXPENSE_CATEGORIES[index - 1].value
            self.manager.update_step(user_id, STEP_EXPENSE_AMOUNT, {"category": category})
            return message_templates.build_ask_amount_message(category)

        if not all(data.get(key) for key in ("receipt_date", "store_name", "category")):
            # Earlier answers missing from state; restart at the date step.
            self.manager.update_step(user_id, STEP_EXPENSE_DATE)
            return message_templates.build_ask_expense_date_message()

        if conversation.step == STEP_EXPENSE_AMOUNT:
            amount = _parse_expense_amount(value)
            if amount is None:
                return message_templates.build_invalid_amount_message()
            projects = self._list_projects(user_id, ProjectStatus.OPEN)
            if not projects:
                return self._save_expense(user_id, {**data, "total_amount": str(amount)}, None)
            self.manager.update_step(
                user_id,
                STEP_EXPENSE_PROJECT,
                {
                    "total_amount": str(amount),
                    "projects": [project.to_dict() for project in projects],
                },
            )
            return message_templates.build_choose_expense_project_message(projects)

        projects = _projects_from_data(data)
        index = _safe_int(value)
        if index is None or index < 1 or index > len(projects) + 1:
            return message_templates.build_invalid_expense_project_message(projects)
        selected = None if index == 1 else projects[index - 2]
        return self._save_expense(user_id, data, selected)

    def _save_expense(self, user_id: str, data: dict[str, Any], project: Project | None) -> list[dict[str, Any]]:
        try:
            expense = self.expenses.create_expense(
                user_id=user_id,
                receipt_date=str(data["receipt_date"]),
                store_name=str(data["store_name"]),
                category=str(data["category"]),
                total_amount=Decimal(str(data["total_amount"])),
                project_id=project.project_id if project else None,
            )
        except Exception as exc:  # noqa: BLE001
            print(f"expense-create-failed user_id={user_id} error={exc}")
            self.manager.end_conversation(user_id)
            return message_templates.build_expense_create_failed_message()
        self.manager.end_conversation(user_id)
        return message_templates.build_expense_saved_message(expense, project.name if project else None)

    def _list_projects(self, user_id: str, status: ProjectStatus) -> list[Project] | None:
        try:
            return self.projects.list_projects(user_id, status=status.value)
        except Exception as exc:  # noqa: BLE001
            print(f"project-list-failed user_id={user_id} status={status.value} error={exc}")
            return None

    def _start_status_flow(self, user_id: str, conversation_type: ConversationType) -> list[dict[str, Any]]:
        closing = conversation_type == ConversationType.CLOSE_PROJECT
        current_status = ProjectStatus.OPEN if closing else ProjectStatus.CLOSED
        projects = self._list_projects(user_id, current_status)
        if projects is None:
            return message_templates.build_projects_fetch_failed_message()
        if not projects:
            if closing:
                return message_templates.build_no_projects_to_close_message()
            return message_templates.build_no_projects_to_open_message()

        self.manager.start_conversation(
            user_id,
            conversation_type,
            {"projects": [project.to_dict() for project in projects]},
        )
        return message_templates.build_choose_project_message("close" if closing else "reopen", projects)

    def _handle_status_selection(
        self,
        user_id: str,
        text: str,
        conversation: ConversationState,
        target_status: ProjectStatus,
    ) -> list[dict[str, Any]]:
        projects = _projects_from_data(conversation.data)
        if not projects:
            self.manager.end_conversation(user_id)
            return message_templates.build_unknown_flow_message()
        index = _safe_int(text)
        if index is None or index < 1 or index > len(projects):
            return message_templates.build_invalid_selection_message(projects)

        selected = projects[index - 1]
        try:
            updated = self.projects.set_status(user_id, selected.project_id, target_status.value)
        except Exception as exc:  # noqa: BLE001
            print(f"project-status-failed user_id={user_id} project_id={selected.project_id} error={exc}")
            updated = False
        self.manager.end_conversation(user_id)
        if not updated:
            return message_templates.build_project_status_failed_message()
        return message_templates.build_project_status_changed_message(
            selected,
            closed=target_status == ProjectStatus.CLOSED,
        )


def _projects_from_data(data: dict[str, Any]) -> list[Project]:
    rows = data.get("projects", [])
    projects: list[Project] = []
    for row in rows if isinstance(rows, list) else []:
        if not isinstance(row, dict) or not row.get("project_id"):
            continue
        projects.append(
            Project(
                project_id=str(row["project_id"]),
                user_id=str(row.get("user_id", "")),
                name=str(row.get("name", "")),
                currency=str(row.get("currency", "")),
                status=str(row.get("status", "")),
                created_at=str(row.get("created_at", "")),
            )
        )
    return projects


def _safe_int(value: Any) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _parse_receipt_date(value: str) -> str | None:
    if not _DATE_RE.match(value):
        return None
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return None
    return value


def _parse_expense_amount(value: str) -> Decimal | None:
    amount = parse_amount(value)
    if amount <= 0 or amount >= MAX_EXPENSE_AMOUNT:
        return None
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
