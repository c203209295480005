from __future__ import annotations

from typing import Any

from stores.normalizer import StoreNormalizer


def top_stores_response(normalizer: StoreNormalizer, body: Any, default_limit: int = 5) -> tuple[int, dict[str, Any]]:
    if not isinstance(body, dict):
        return 400, {"ok": False, "error": "body must be object"}
    transactions = body.get("transactions", [])
    if not isinstance(transactions, list):
        return 400, {"ok": False, "error": "transactions must be list"}
    limit = _as_int(body.get("limit"), default_limit)
    stores = normalizer.top_stores(transactions, limit, **_field_overrides(body))
    return 200, {"ok": True, "stores": stores}


def store_groups_response(normalizer: StoreNormalizer, body: Any) -> tuple[int, dict[str, Any]]:
    if not isinstance(body, dict):
        return 400, {"ok": False, "error": "body must be object"}
    names = body.get("names", [])
    if not isinstance(names, list):
        return 400, {"ok": False, "error": "names must be list"}
    threshold = body.get("threshold")
    try:
        parsed_threshold = None if threshold is None else float(threshold)
    except (TypeError, ValueError):
        return 400, {"ok": False, "error": "threshold must be number"}
    return 200, {"ok": True, "groups": normalizer.detect_groups(names, parsed_threshold)}


def normalize_response(normalizer: StoreNormalizer, body: Any) -> tuple[int, dict[str, Any]]:
    if not isinstance(body, dict):
        return 400, {"ok": False, "error": "body must be object"}
    names = body.get("names")
    if isinstance(names, list):
        return 200, {"ok": True, "results": [{"raw": name, "store": normalizer.normalize(name)} for name in names]}
    name = body.get("name")
    return 200, {"ok": True, "results": [{"raw": name, "store": normalizer.normalize(name)}]}


def _field_overrides(body: dict[str, Any]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for key in ("store_field", "amount_field"):
        value = str(body.get(key, "") or "").strip()
        if value:
            fields[key] = value
    return fields


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
