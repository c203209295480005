from __future__ import annotations

import json
from typing import Any
from urllib import error, request


class TelegramApiError(RuntimeError):
    pass


class TelegramReplyClient:
    def __init__(
        self,
        bot_token: str,
        api_base_url: str = "https://api.telegram.org",
        timeout_sec: float = 10.0,
    ) -> None:
        self.bot_token = (bot_token or "").strip()
        self.api_base_url = (api_base_url or "https://api.telegram.org").rstrip("/")
        self.timeout_sec = float(timeout_sec)

    def send_messages(self, chat_id: str | int, messages: list[dict[str, Any]]) -> None:
        if not self.bot_token:
            raise TelegramApiError("telegram.bot_token is required")
        if chat_id in (None, ""):
            raise TelegramApiError("chat id is empty")

        for message in messages:
            payload = {"chat_id": chat_id, **message}
            self._post_json("sendMessage", payload)

    def _post_json(self, method: str, payload: dict[str, Any]) -> dict[str, Any]:
        data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
        url = f"{self.api_base_url}/bot{self.bot_token}/{method}"
        req = request.Request(url=url, data=data, method="POST")
        req.add_header("Content-Type", "application/json; charset=utf-8")
        try:
            with request.urlopen(req, timeout=self.timeout_sec) as resp:
                body = resp.read().decode("utf-8", errors="ignore")
        except error.HTTPError as exc:
            body = ""
            try:
                body = exc.read().decode("utf-8", errors="ignore")
            except Exception:
                pass
            raise TelegramApiError(f"telegram api error: status={exc.code} body={body}") from exc
        except error.URLError as exc:
            raise TelegramApiError(f"telegram api connection error: {exc}") from exc

        try:
            result = json.loads(body) if body else {}
        except json.JSONDecodeError as exc:
            raise TelegramApiError(f"telegram api returned invalid json: {body[:200]}") from exc
        if isinstance(result, dict) and result.get("ok") is False:
            raise TelegramApiError(f"telegram api error: {result.get('description', 'unknown')}")
        return result if isinstance(result, dict) else {}
