from __future__ import annotations

import math
import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, Mapping

from core.enums import MatchStrategy, TransactionField
from core.models import StoreGroup
from stores.mappings import STORE_MAPPINGS
from stores.similarity import similarity

PARTIAL_MATCH_THRESHOLD = 0.7
DEFAULT_GROUP_THRESHOLD = 0.8

# Checked in order when the caller does not name the record fields.
STORE_FIELD_ALIASES = (TransactionField.STORE_NAME, TransactionField.STORE)
AMOUNT_FIELD_ALIASES = (TransactionField.TOTAL_AMOUNT, TransactionField.TOTAL, TransactionField.AMOUNT)

# Leading numeric prefix, read the way a lenient float parser reads "12.50 RM".
_LEADING_NUMBER_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def normalize_store_name(
    raw_name: Any,
    mappings: Mapping[str, str] = STORE_MAPPINGS,
    *,
    strategy: str = MatchStrategy.FIRST_MATCH.value,
) -> Any:
    if not raw_name or not isinstance(raw_name, str):
        return raw_name

    normalized = raw_name.lower().strip()
    exact = mappings.get(normalized)
    if exact:
        return exact

    partial = _partial_match(normalized, mappings, strategy)
    if partial is not None:
        return partial

    return _title_case(raw_name)


def group_expenses_by_normalized_store(
    transactions: Iterable[Any] | None,
    *,
    store_field: str | None = None,
    amount_field: str | None = None,
    mappings: Mapping[str, str] = STORE_MAPPINGS,
    strategy: str = MatchStrategy.FIRST_MATCH.value,
) -> dict[Any, StoreGroup]:
    groups: dict[Any, StoreGroup] = {}
    for transaction in transactions or []:
        raw_name = _field(transaction, store_field, STORE_FIELD_ALIASES)
        canonical = _hashable(normalize_store_name(raw_name, mappings, strategy=strategy))
        group = groups.get(canonical)
        if group is None:
            group = StoreGroup(canonical_name=canonical)
            groups[canonical] = group
        group.member_names.add(_hashable(raw_name))
        group.transactions.append(transaction)
        group.total_amount += parse_amount(_field(transaction, amount_field, AMOUNT_FIELD_ALIASES))
        group.visit_count += 1
    return groups


def get_top_stores_normalized(
    transactions: Iterable[Any] | None,
    limit: int = 5,
    *,
    store_field: str | None = None,
    amount_field: str | None = None,
    mappings: Mapping[str, str] = STORE_MAPPINGS,
    strategy: str = MatchStrategy.FIRST_MATCH.value,
) -> list[dict[str, Any]]:
    groups = group_expenses_by_normalized_store(
        transactions,
        store_field=store_field,
        amount_field=amount_field,
        mappings=mappings,
        strategy=strategy,
    )
    rows = [
        {
            "store": group.canonical_name,
            "total": round_amount(group.total_amount),
            "count": group.visit_count,
            "originalNames": _ordered_member_names(group, store_field),
        }
        for group in groups.values()
    ]
    rows.sort(key=lambda row: row["total"], reverse=True)
    return rows[: max(0, int(limit))]


def detect_store_groups(
    raw_names: Iterable[Any] | None,
    similarity_threshold: float = DEFAULT_GROUP_THRESHOLD,
) -> list[list[str]]:
    """Seed-based clustering of raw names for manual curation.

    Each unprocessed name seeds a group and pulls in later unprocessed names
    whose similarity to the seed reaches the threshold. Membership depends on
    input order and is not transitive. Singletons are dropped.
    """
    names = [name for name in (raw_names or []) if isinstance(name, str)]
    processed: set[str] = set()
    groups: list[list[str]] = []

    for index, seed in enumerate(names):
        if seed in processed:
            continue
        group = [seed]
        processed.add(seed)
        seed_key = seed.lower()

        for candidate in names[index + 1 :]:
            if candidate in processed:
                continue
            if similarity(seed_key, candidate.lower()) >= similarity_threshold:
                group.append(candidate)
                processed.add(candidate)

        if len(group) > 1:
            groups.append(group)
    return groups


def round_amount(value: Decimal) -> float:
    return float(value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def parse_amount(value: Any) -> Decimal:
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value if value.is_finite() else Decimal("0")
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return Decimal("0")
        return Decimal(str(value))

    match = _LEADING_NUMBER_RE.match(str(value).strip())
    if not match:
        return Decimal("0")
    try:
        parsed = Decimal(match.group(0))
    except InvalidOperation:
        return Decimal("0")
    return parsed if parsed.is_finite() else Decimal("0")


class StoreNormalizer:
    """Normalizer bound to a mapping table and match strategy from config."""

    def __init__(
        self,
        extra_mappings: Mapping[str, str] | None = None,
        strategy: str = MatchStrategy.FIRST_MATCH.value,
        group_threshold: float = DEFAULT_GROUP_THRESHOLD,
    ) -> None:
        self.mappings = build_mappings(extra_mappings)
        self.strategy = _as_strategy(strategy)
        self.group_threshold = float(group_threshold)

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "StoreNormalizer":
        conf = config.get("store_normalizer", {})
        extra = conf.get("extra_mappings", {})
        return cls(
            extra_mappings=extra if isinstance(extra, dict) else {},
            strategy=str(conf.get("strategy", MatchStrategy.FIRST_MATCH.value)),
            group_threshold=float(conf.get("group_threshold", DEFAULT_GROUP_THRESHOLD)),
        )

    def normalize(self, raw_name: Any) -> Any:
        return normalize_store_name(raw_name, self.mappings, strategy=self.strategy)

    def group(self, transactions: Iterable[Any] | None, **fields: str) -> dict[Any, StoreGroup]:
        return group_expenses_by_normalized_store(
            transactions,
            mappings=self.mappings,
            strategy=self.strategy,
            **fields,
        )

    def top_stores(self, transactions: Iterable[Any] | None, limit: int = 5, **fields: str) -> list[dict[str, Any]]:
        return get_top_stores_normalized(
            transactions,
            limit,
            mappings=self.mappings,
            strategy=self.strategy,
            **fields,
        )

    def detect_groups(self, raw_names: Iterable[Any] | None, similarity_threshold: float | None = None) -> list[list[str]]:
        threshold = self.group_threshold if similarity_threshold is None else float(similarity_threshold)
        return detect_store_groups(raw_names, threshold)


def build_mappings(extra_mappings: Mapping[str, str] | None = None) -> dict[str, str]:
    merged: dict[str, str] = {}
    for key, value in (extra_mappings or {}).items():
        lowered = str(key).lower().strip()
        display = str(value).strip()
        if lowered and display:
            merged[lowered] = display
    for key, value in STORE_MAPPINGS.items():
        merged.setdefault(key, value)
    return merged


def _partial_match(normalized: str, mappings: Mapping[str, str], strategy: str) -> str | None:
    best_key: str | None = None
    for key, value in mappings.items():
        if key not in normalized and normalized not in key:
            continue
        if similarity(normalized, key) < PARTIAL_MATCH_THRESHOLD:
            continue
        if strategy != MatchStrategy.LONGEST_MATCH.value:
            return value
        if best_key is None or len(key) > len(best_key):
            best_key = key
    if best_key is None:
        return None
    return mappings[best_key]


def _title_case(text: str) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in text.split(" "))


def _as_strategy(value: str) -> str:
    lowered = str(value or "").strip().lower()
    allowed = {strategy.value for strategy in MatchStrategy}
    return lowered if lowered in allowed else MatchStrategy.FIRST_MATCH.value


def _field(record: Any, name: str | None, aliases: tuple[str, ...]) -> Any:
    for key in (name,) if name else aliases:
        if isinstance(record, Mapping):
            if key in record:
                return record[key]
        elif hasattr(record, key):
            return getattr(record, key)
    return None


def _hashable(value: Any) -> Any:
    try:
        hash(value)
    except TypeError:
        return str(value)
    return value


def _ordered_member_names(group: StoreGroup, store_field: str | None) -> list[Any]:
    seen: dict[Any, None] = {}
    for transaction in group.transactions:
        seen.setdefault(_hashable(_field(transaction, store_field, STORE_FIELD_ALIASES)), None)
    return list(seen)
