from __future__ import annotations

from typing import Any

from core.enums import ExpenseCategory
from core.models import Expense, Project
from telegrambot.keyboards import text_message, with_keyboard_removed, with_reply_keyboard

CANCEL_COMMAND = "/cancel"
PROJECT_NAME_MAX_LENGTH = 255
CURRENCY_MAX_LENGTH = 20
CURRENCY_EXAMPLES = ("USD", "RM", "EUR", "GBP")
GENERAL_EXPENSES_LABEL = "General expenses"


def _project_lines(projects: list[Project]) -> list[str]:
    return [f"{index}. {project.name} ({project.currency})" for index, project in enumerate(projects, start=1)]


def _number_labels(count: int) -> list[str]:
    return [str(index) for index in range(1, count + 1)]


def build_help_message() -> list[dict[str, Any]]:
    text = "\n".join(
        [
            "Commands:",
            "/create - record an expense",
            "/new - create a project",
            "/list - show open projects",
            "/close - close a project",
            "/open - reopen a closed project",
            f"{CANCEL_COMMAND} - stop the current step",
        ]
    )
    return [text_message(text)]


def build_not_in_conversation_message() -> list[dict[str, Any]]:
    return [text_message("Send a command to get started. Type /help to see what I can do.")]


def build_cancelled_message() -> list[dict[str, Any]]:
    return [with_keyboard_removed("Cancelled. Nothing was saved.")]


def build_unknown_flow_message() -> list[dict[str, Any]]:
    return [with_keyboard_removed("Unknown conversation type. Please start over.")]


def build_ask_project_name_message() -> list[dict[str, Any]]:
    text = "\n".join(
        [
            "Create new project",
            "What would you like to name your project?",
            'Examples: "Japan Trip 2025", "Home Renovation"',
            f"Type {CANCEL_COMMAND} to stop.",
        ]
    )
    return [text_message(text)]


def build_project_name_empty_message() -> list[dict[str, Any]]:
    return [text_message("Project name cannot be empty.\nPlease enter a name for your project:")]


def build_project_name_too_long_message() -> list[dict[str, Any]]:
    return [
        text_message(
            f"Project name is too long (max {PROJECT_NAME_MAX_LENGTH} characters).\n"
            "Please enter a shorter name for your project:"
        )
    ]


def build_ask_currency_message(name: str) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            f"Project name: {name}",
            "What currency will this project use?",
            'Type any currency name you prefer (e.g. "USD", "RM", "Baht").',
        ]
    )
    return [with_reply_keyboard(text, list(CURRENCY_EXAMPLES), columns=4)]


def build_currency_empty_message() -> list[dict[str, Any]]:
    return [text_message("Currency cannot be empty.\nPlease enter the currency for this project:")]


def build_currency_too_long_message() -> list[dict[str, Any]]:
    return [
        text_message(
            f"Currency name is too long (max {CURRENCY_MAX_LENGTH} characters).\n"
            "Please enter a shorter currency name:"
        )
    ]


def build_project_created_message(project: Project) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            "Project created.",
            f"Name: {project.name}",
            f"Currency: {project.currency}",
            "Status: open",
        ]
    )
    return [with_keyboard_removed(text)]


def build_project_create_failed_message() -> list[dict[str, Any]]:
    return [with_keyboard_removed("Sorry, there was an error creating your project. Please try again with /new.")]


def build_project_list_message(projects: list[Project]) -> list[dict[str, Any]]:
    if not projects:
        return [text_message("You have no open projects. Use /new to create one.")]
    text = "Open projects:\n" + "\n".join(_project_lines(projects))
    return [text_message(text)]


def build_no_projects_to_close_message() -> list[dict[str, Any]]:
    return [text_message("You don't have any open projects to close.")]


def build_no_projects_to_open_message() -> list[dict[str, Any]]:
    return [text_message("All your projects are already open.")]


def build_choose_project_message(action: str, projects: list[Project]) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            f"Which project would you like to {action}?",
            *_project_lines(projects),
            f"Reply with the number of the project to {action}.",
        ]
    )
    return [with_reply_keyboard(text, _number_labels(len(projects)))]


def build_invalid_selection_message(projects: list[Project]) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            f"Invalid selection. Please choose a number from 1 to {len(projects)}:",
            *_project_lines(projects),
        ]
    )
    return [with_reply_keyboard(text, _number_labels(len(projects)))]


def build_project_status_changed_message(project: Project, closed: bool) -> list[dict[str, Any]]:
    if closed:
        text = f'Project "{project.name}" has been closed. Use /open to reopen it.'
    else:
        text = f'Project "{project.name}" has been reopened. Use /close when you are finished.'
    return [with_keyboard_removed(text)]


def build_project_status_failed_message() -> list[dict[str, Any]]:
    return [with_keyboard_removed("Sorry, there was an error updating the project. Please try again.")]


def build_projects_fetch_failed_message() -> list[dict[str, Any]]:
    return [with_keyboard_removed("Sorry, I couldn't fetch your projects. Please try again later.")]


def _category_label(category: ExpenseCategory | str) -> str:
    value = str(getattr(category, "value", category))
    return value[:1].upper() + value[1:]


def _category_lines(categories: list[ExpenseCategory]) -> list[str]:
    return [f"{index}. {_category_label(category)}" for index, category in enumerate(categories, start=1)]


def _expense_project_lines(projects: list[Project]) -> list[str]:
    return [f"1. {GENERAL_EXPENSES_LABEL}"] + [
        f"{index}. {project.name} ({project.currency})" for index, project in enumerate(projects, start=2)
    ]


def build_ask_expense_date_message() -> list[dict[str, Any]]:
    text = "\n".join(
        [
            "Create new expense",
            "Please enter the expense date (YYYY-MM-DD format):",
            f"Type {CANCEL_COMMAND} to stop.",
        ]
    )
    return [text_message(text)]


def build_invalid_date_message() -> list[dict[str, Any]]:
    text = "\n".join(
        [
            "Invalid date format. Please use YYYY-MM-DD format.",
            "Examples: 2025-01-15, 2025-08-24",
            f"Please enter the expense date or {CANCEL_COMMAND} to stop:",
        ]
    )
    return [text_message(text)]


def build_ask_store_name_message(receipt_date: str) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            f"Date set: {receipt_date}",
            "Please enter the store name:",
            "Examples: Walmart, Amazon, Starbucks",
        ]
    )
    return [text_message(text)]


def build_store_name_empty_message() -> list[dict[str, Any]]:
    return [text_message("Store name cannot be empty.\nPlease enter the store name:")]


def build_ask_category_message(store_name: str, categories: list[ExpenseCategory]) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            f"Store: {store_name}",
            "Please select a category by typing the number:",
            *_category_lines(categories),
        ]
    )
    return [with_reply_keyboard(text, _number_labels(len(categories)), columns=4)]


def build_invalid_category_message(categories: list[ExpenseCategory]) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            f"Invalid selection. Please choose a number from 1 to {len(categories)}:",
            *_category_lines(categories),
        ]
    )
    return [with_reply_keyboard(text, _number_labels(len(categories)), columns=4)]


def build_ask_amount_message(category: str) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            f"Category: {_category_label(category)}",
            "Please enter the total amount (numbers only):",
            "Examples: 25.99, 100, 15.50",
        ]
    )
    return [with_keyboard_removed(text)]


def build_invalid_amount_message() -> list[dict[str, Any]]:
    text = "\n".join(
        [
            "Invalid amount. Please enter a positive number.",
            "Examples: 25.99, 100, 15.50",
            "Please enter the total amount:",
        ]
    )
    return [text_message(text)]


def build_choose_expense_project_message(projects: list[Project]) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            "Where would you like to save this expense?",
            *_expense_project_lines(projects),
            "Reply with the number of your choice.",
        ]
    )
    return [with_reply_keyboard(text, _number_labels(len(projects) + 1))]


def build_invalid_expense_project_message(projects: list[Project]) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            f"Invalid selection. Please choose a number from 1 to {len(projects) + 1}:",
            *_expense_project_lines(projects),
        ]
    )
    return [with_reply_keyboard(text, _number_labels(len(projects) + 1))]


def build_expense_saved_message(expense: Expense, project_name: str | None) -> list[dict[str, Any]]:
    text = "\n".join(
        [
            "Expense saved.",
            f"Date: {expense.receipt_date}",
            f"Store: {expense.store_name}",
            f"Category: {_category_label(expense.category)}",
            f"Amount: {expense.total_amount}",
            f"Project: {project_name or GENERAL_EXPENSES_LABEL}",
        ]
    )
    return [with_keyboard_removed(text)]


def build_expense_create_failed_message() -> list[dict[str, Any]]:
    return [with_keyboard_removed("Sorry, there was an error saving your expense. Please try again with /create.")]
