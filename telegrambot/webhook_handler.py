from __future__ import annotations

import json
from typing import Any

from conversation.flow_service import ConversationFlowService
from conversation.state_manager import ConversationStateManager
from conversation.store_factory import create_conversation_manager
from expenses.repository import ExpenseRepository
from expenses.repository_interface import ExpenseRepositoryProtocol
from projects.repository import ProjectRepository
from projects.repository_interface import ProjectRepositoryProtocol
from telegrambot import message_templates
from telegrambot.keyboards import text_message
from telegrambot.reply_client import TelegramReplyClient
from telegrambot.secret import verify_webhook_secret


class TelegramWebhookHandler:
    def __init__(
        self,
        config: dict[str, Any],
        reply_client: TelegramReplyClient | None = None,
        manager: ConversationStateManager | None = None,
        projects: ProjectRepositoryProtocol | None = None,
        expenses: ExpenseRepositoryProtocol | None = None,
    ) -> None:
        self.config = config
        self.telegram_conf = config.get("telegram", {})
        self.enabled = bool(self.telegram_conf.get("enabled", False))
        self.webhook_secret = str(self.telegram_conf.get("webhook_secret", "") or "").strip()
        allowed = self.telegram_conf.get("allowed_user_ids", [])
        self.allowed_user_ids = {
            str(user_id).strip()
            for user_id in (allowed if isinstance(allowed, list) else [])
            if str(user_id).strip()
        }

        self.manager = manager or create_conversation_manager(config)
        projects_conf = config.get("projects", {})
        self.projects = projects or ProjectRepository(
            sqlite_path=str(projects_conf.get("sqlite_path", "data/projects/projects.db"))
        )
        expenses_conf = config.get("expenses", {})
        self.expenses = expenses or ExpenseRepository(
            sqlite_path=str(expenses_conf.get("sqlite_path", "data/expenses/expenses.db"))
        )
        self.flow_service = ConversationFlowService(
            manager=self.manager,
            projects=self.projects,
            expenses=self.expenses,
        )
        self.reply_client = reply_client or TelegramReplyClient(
            bot_token=str(self.telegram_conf.get("bot_token", "") or ""),
            api_base_url=str(self.telegram_conf.get("api_base_url", "https://api.telegram.org")),
            timeout_sec=float(self.telegram_conf.get("timeout_sec", 10)),
        )

    def handle(self, body: bytes, secret_token: str | None) -> tuple[int, dict[str, Any]]:
        if not self.enabled:
            return 503, {"ok": False, "error": "telegram.enabled is false"}
        if not verify_webhook_secret(self.webhook_secret, secret_token):
            return 401, {"ok": False, "error": "invalid secret token"}

        try:
            update = json.loads(body.decode("utf-8"))
        except Exception:
            return 400, {"ok": False, "error": "invalid json payload"}
        if not isinstance(update, dict):
            return 400, {"ok": False, "error": "update must be object"}

        try:
            handled = self._handle_update(update)
        except Exception as exc:  # noqa: BLE001
            print(f"telegram-update-failed update_id={update.get('update_id')} error={exc}")
            return 200, {"ok": False, "handled": 0, "skipped": 0, "errors": [str(exc)]}
        return 200, {"ok": True, "handled": 1 if handled else 0, "skipped": 0 if handled else 1, "errors": []}

    def _handle_update(self, update: dict[str, Any]) -> bool:
        message = update.get("message")
        if not isinstance(message, dict):
            return False

        chat = message.get("chat", {}) if isinstance(message.get("chat"), dict) else {}
        sender = message.get("from", {}) if isinstance(message.get("from"), dict) else {}
        chat_id = chat.get("id")
        user_id = str(sender.get("id", "") or "").strip()
        if chat_id in (None, "") or not user_id:
            return False

        if str(chat.get("type", "private") or "private") != "private":
            self._reply(chat_id, [text_message("Please message me directly in a private chat.")])
            return True

        if self.allowed_user_ids and user_id not in self.allowed_user_ids:
            self._reply(chat_id, [text_message("This account is not enabled for this bot.")])
            return True

        text = message.get("text")
        if not isinstance(text, str):
            self._reply(chat_id, message_templates.build_help_message())
            return True

        messages = self.flow_service.handle_text(user_id, text)
        self._reply(chat_id, messages)
        return True

    def _reply(self, chat_id: Any, messages: list[dict[str, Any]]) -> None:
        if not messages:
            return
        try:
            self.reply_client.send_messages(chat_id=chat_id, messages=messages)
        except Exception as exc:  # noqa: BLE001
            print(f"telegram-reply-failed chat_id={chat_id} error={exc}")
