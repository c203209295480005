from __future__ import annotations

import json
from datetime import timedelta
from decimal import Decimal
from typing import Any

from core.models import ConversationState, utc_now_iso
from conversation.store_interface import ConversationStoreProtocol

try:
    import boto3  # type: ignore
except Exception as exc:  # pragma: no cover - import guard for local envs
    boto3 = None
    _BOTO3_IMPORT_ERROR = exc
else:
    _BOTO3_IMPORT_ERROR = None


class DynamoConversationStore(ConversationStoreProtocol):
    """Keyed store shared by every worker; one item per user_id.

    ``expires_at_epoch`` is written for DynamoDB's native TTL. Native TTL
    deletion lags by hours, so the state manager still checks expiry on read.
    """

    def __init__(
        self,
        *,
        region_name: str | None = None,
        table_prefix: str = "expensebot",
        table_name: str | None = None,
        ttl: timedelta = timedelta(hours=1),
        dynamodb_resource: Any | None = None,
    ) -> None:
        if dynamodb_resource is None and boto3 is None:
            raise RuntimeError(f"boto3 is required for DynamoConversationStore: {_BOTO3_IMPORT_ERROR}")

        normalized_prefix = (table_prefix or "expensebot").strip()
        self.ttl = ttl
        self._ddb = dynamodb_resource or boto3.resource("dynamodb", region_name=region_name)
        self._table = self._ddb.Table(table_name or f"{normalized_prefix}-conversations")

    def get(self, user_id: str) -> ConversationState | None:
        item = self._table.get_item(Key={"user_id": user_id}, ConsistentRead=True).get("Item")
        if not item:
            return None
        payload = _load_json(item.get("payload_json"))
        if not isinstance(payload, dict):
            return None
        return ConversationState.from_dict(payload)

    def put(self, state: ConversationState) -> None:
        payload = state.to_dict()
        expires_at = state.last_activity_at + self.ttl
        self._table.put_item(
            Item={
                "user_id": state.user_id,
                "conversation_type": state.conversation_type,
                "payload_json": json.dumps(payload, ensure_ascii=False, default=_json_default),
                "last_activity_at": payload["last_activity_at"],
                "expires_at_epoch": int(expires_at.timestamp()),
                "updated_at": utc_now_iso(),
            }
        )

    def delete(self, user_id: str) -> None:
        self._table.delete_item(Key={"user_id": user_id})

    def list_user_ids(self) -> list[str]:
        kwargs: dict[str, Any] = {"ProjectionExpression": "user_id"}
        user_ids: list[str] = []
        while True:
            response = self._table.scan(**kwargs)
            for item in response.get("Items", []):
                user_id = str(item.get("user_id", "") or "").strip()
                if user_id:
                    user_ids.append(user_id)
            if "LastEvaluatedKey" not in response:
                break
            kwargs["ExclusiveStartKey"] = response["LastEvaluatedKey"]
        return user_ids


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return str(value)


def _load_json(text: Any) -> Any:
    if not text:
        return None
    try:
        return json.loads(str(text))
    except json.JSONDecodeError:
        return None
