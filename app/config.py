from __future__ import annotations

from pathlib import Path
from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "conversation": {
        "backend": "memory",
        "ttl_minutes": 60,
        "sqlite_path": "data/conversation/states.db",
        "dynamodb": {
            "region": None,
            "table_prefix": "expensebot",
            "table": None,
        },
    },
    "projects": {
        "sqlite_path": "data/projects/projects.db",
    },
    "expenses": {
        "sqlite_path": "data/expenses/expenses.db",
    },
    "store_normalizer": {
        "strategy": "first_match",
        "group_threshold": 0.8,
        "top_stores_limit": 5,
        "extra_mappings": {},
    },
    "telegram": {
        "enabled": False,
        "bot_token": None,
        "webhook_secret": None,
        "webhook_path": "/webhook/telegram",
        "api_base_url": "https://api.telegram.org",
        "timeout_sec": 10,
        "allowed_user_ids": [],
    },
    "output": {
        "pretty_json": True,
    },
}


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def load_config(config_path: str | None = None) -> dict[str, Any]:
    if not config_path:
        return DEFAULT_CONFIG

    path = Path(config_path)
    if not path.exists():
        return DEFAULT_CONFIG

    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return DEFAULT_CONFIG

    data: dict[str, Any] | None = None
    if path.suffix.lower() == ".json":
        import json

        loaded = json.loads(text)
        data = loaded if isinstance(loaded, dict) else {}
    else:
        import yaml

        loaded = yaml.safe_load(text)
        data = loaded if isinstance(loaded, dict) else {}

    if data is None:
        data = {}
    return deep_merge(DEFAULT_CONFIG, data)
