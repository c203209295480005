from __future__ import annotations

from typing import Any

MAX_KEYBOARD_BUTTONS = 12
MAX_TEXT_LENGTH = 4096


def text_message(text: str) -> dict[str, Any]:
    return {"text": text[:MAX_TEXT_LENGTH]}


def with_reply_keyboard(text: str, labels: list[str], columns: int = 3) -> dict[str, Any]:
    buttons = [{"text": label[:64]} for label in labels[:MAX_KEYBOARD_BUTTONS] if label]
    message = text_message(text)
    if not buttons:
        return message
    width = max(1, int(columns))
    rows = [buttons[i : i + width] for i in range(0, len(buttons), width)]
    message["reply_markup"] = {
        "keyboard": rows,
        "one_time_keyboard": True,
        "resize_keyboard": True,
    }
    return message


def with_keyboard_removed(text: str) -> dict[str, Any]:
    message = text_message(text)
    message["reply_markup"] = {"remove_keyboard": True}
    return message
