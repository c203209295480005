from __future__ import annotations

import json
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest import mock

from conversation.dynamo_store import DynamoConversationStore
from conversation.memory_store import InMemoryConversationStore
from conversation.sqlite_store import SqliteConversationStore
from conversation.state_manager import ConversationStateManager
from conversation.store_factory import (
    conversation_ttl_minutes,
    create_conversation_manager,
    create_conversation_store,
)
from core.models import ConversationState

_NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _state(user_id: str = "u1", **data: object) -> ConversationState:
    return ConversationState(
        user_id=user_id,
        conversation_type="create_project",
        step=1,
        data=dict(data),
        started_at=_NOW,
        last_activity_at=_NOW + timedelta(minutes=5),
    )


class InMemoryConversationStoreTest(unittest.TestCase):
    def test_put_get_delete(self) -> None:
        store = InMemoryConversationStore()
        store.put(_state(name="Trip"))
        loaded = store.get("u1")
        self.assertEqual(loaded.data, {"name": "Trip"})
        self.assertEqual(store.list_user_ids(), ["u1"])
        store.delete("u1")
        store.delete("u1")
        self.assertIsNone(store.get("u1"))


class SqliteConversationStoreTest(unittest.TestCase):
    def test_round_trip_and_overwrite(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = str(Path(tmp) / "states.db")
            store = SqliteConversationStore(path)
            store.put(_state(name="Trip", projects=[{"project_id": "p1"}]))
            store.put(_state("u2"))

            reopened = SqliteConversationStore(path)
            loaded = reopened.get("u1")
            self.assertEqual(loaded.conversation_type, "create_project")
            self.assertEqual(loaded.step, 1)
            self.assertEqual(loaded.data, {"name": "Trip", "projects": [{"project_id": "p1"}]})
            self.assertEqual(loaded.started_at, _NOW)
            self.assertEqual(loaded.last_activity_at, _NOW + timedelta(minutes=5))
            self.assertEqual(reopened.list_user_ids(), ["u1", "u2"])

            reopened.put(_state(name="Renamed"))
            self.assertEqual(store.get("u1").data, {"name": "Renamed"})
            store.delete("u1")
            self.assertIsNone(reopened.get("u1"))
            self.assertEqual(reopened.list_user_ids(), ["u2"])

    def test_manager_on_sqlite_store(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            store = SqliteConversationStore(str(Path(tmp) / "states.db"))
            clock = {"now": _NOW}
            manager = ConversationStateManager(store=store, now_fn=lambda: clock["now"])
            manager.start_conversation("u1", "create_project")
            manager.update_step("u1", 1, {"name": "Trip"})
            self.assertEqual(manager.get_conversation("u1").data, {"name": "Trip"})
            clock["now"] = _NOW + timedelta(hours=2)
            self.assertEqual(manager.cleanup_expired_conversations(), 1)
            self.assertEqual(store.list_user_ids(), [])


class DynamoConversationStoreTest(unittest.TestCase):
    def _store(self) -> tuple[DynamoConversationStore, mock.Mock]:
        resource = mock.Mock()
        table = resource.Table.return_value
        store = DynamoConversationStore(table_prefix="test", ttl=timedelta(hours=1), dynamodb_resource=resource)
        resource.Table.assert_called_once_with("test-conversations")
        return store, table

    def test_put_writes_ttl_attribute(self) -> None:
        store, table = self._store()
        state = _state(name="Trip")
        store.put(state)
        item = table.put_item.call_args.kwargs["Item"]
        self.assertEqual(item["user_id"], "u1")
        self.assertEqual(item["conversation_type"], "create_project")
        self.assertEqual(item["expires_at_epoch"], int((state.last_activity_at + timedelta(hours=1)).timestamp()))
        self.assertEqual(json.loads(item["payload_json"])["data"], {"name": "Trip"})

    def test_get_parses_payload(self) -> None:
        store, table = self._store()
        table.get_item.return_value = {"Item": {"user_id": "u1", "payload_json": json.dumps(_state(name="Trip").to_dict())}}
        loaded = store.get("u1")
        self.assertEqual(loaded.data, {"name": "Trip"})
        table.get_item.assert_called_once_with(Key={"user_id": "u1"}, ConsistentRead=True)

        table.get_item.return_value = {}
        self.assertIsNone(store.get("u1"))
        table.get_item.return_value = {"Item": {"user_id": "u1", "payload_json": "{broken"}}
        self.assertIsNone(store.get("u1"))

    def test_delete_and_paginated_listing(self) -> None:
        store, table = self._store()
        store.delete("u1")
        table.delete_item.assert_called_once_with(Key={"user_id": "u1"})

        table.scan.side_effect = [
            {"Items": [{"user_id": "u1"}, {"user_id": ""}], "LastEvaluatedKey": {"user_id": "u1"}},
            {"Items": [{"user_id": "u2"}]},
        ]
        self.assertEqual(store.list_user_ids(), ["u1", "u2"])
        second_call = table.scan.call_args_list[1]
        self.assertEqual(second_call.kwargs["ExclusiveStartKey"], {"user_id": "u1"})


class StoreFactoryTest(unittest.TestCase):
    def test_memory_by_default(self) -> None:
        self.assertIsInstance(create_conversation_store({}), InMemoryConversationStore)

    def test_sqlite_backend(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            config = {"conversation": {"backend": "sqlite", "sqlite_path": str(Path(tmp) / "s.db")}}
            self.assertIsInstance(create_conversation_store(config), SqliteConversationStore)

    def test_dynamodb_backend(self) -> None:
        config = {
            "conversation": {
                "backend": "dynamodb",
                "ttl_minutes": 30,
                "dynamodb": {"region": "ap-southeast-1", "table_prefix": "expensebot", "table": "conv"},
            }
        }
        with mock.patch("conversation.store_factory.DynamoConversationStore") as constructor:
            _ = create_conversation_store(config)
        constructor.assert_called_once_with(
            region_name="ap-southeast-1",
            table_prefix="expensebot",
            table_name="conv",
            ttl=timedelta(minutes=30),
        )

    def test_manager_uses_configured_ttl(self) -> None:
        manager = create_conversation_manager({"conversation": {"ttl_minutes": 15}})
        self.assertEqual(manager.ttl, timedelta(minutes=15))
        self.assertEqual(conversation_ttl_minutes({"conversation": {"ttl_minutes": "bad"}}), 60)
        self.assertEqual(conversation_ttl_minutes({"conversation": {"ttl_minutes": 0}}), 1)


if __name__ == "__main__":
    unittest.main()
