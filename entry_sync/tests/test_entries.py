import threading
import unittest

from entry_sync.auth import AuthContext
from entry_sync.db import InMemoryEntryStore
from entry_sync.entries import EntryService
from entry_sync.errors import StoreUnavailable, ValidationError

ALICE = AuthContext(user_id="alice")
BOB = AuthContext(user_id="bob")


class EntryServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryEntryStore()
        self.store.initialize()
        self.service = EntryService(self.store)

    def test_list_is_empty_for_new_owner(self):
        self.assertEqual(self.service.list_entries(ALICE), [])

    def test_list_only_returns_callers_entries(self):
        self.service.upsert_entry(ALICE, {"id": "a1", "text": "mine"})
        self.service.upsert_entry(BOB, {"id": "b1", "text": "theirs"})
        self.service.upsert_entry(BOB, {"id": "a1", "text": "same id, other owner"})

        alice_entries = self.service.list_entries(ALICE)
        self.assertEqual(len(alice_entries), 1)
        self.assertEqual(alice_entries[0]["text"], "mine")
        self.assertTrue(all(e["uid"] == "bob" for e in self.service.list_entries(BOB)))

    def test_resent_upsert_keeps_one_record(self):
        payload = {"id": "e1", "text": "hello"}
        self.service.upsert_entry(ALICE, payload)
        first_storage_id = self.service.list_entries(ALICE)[0]["_id"]
        self.service.upsert_entry(ALICE, dict(payload, text="hello again"))

        entries = self.service.list_entries(ALICE)
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0]["text"], "hello again")
        self.assertEqual(entries[0]["_id"], first_storage_id)

    def test_upsert_replaces_whole_document(self):
        self.service.upsert_entry(ALICE, {"id": "e1", "text": "hello", "mood": 3})
        self.service.upsert_entry(ALICE, {"id": "e1", "text": "edited"})

        entry = self.service.list_entries(ALICE)[0]
        self.assertNotIn("mood", entry)
        self.assertEqual(entry["text"], "edited")

    def test_upsert_forces_owner_and_drops_storage_id(self):
        self.service.upsert_entry(ALICE, {"id": "e1", "uid": "bob", "_id": "abc"})

        self.assertEqual(self.service.list_entries(BOB), [])
        entry = self.service.list_entries(ALICE)[0]
        self.assertEqual(entry["uid"], "alice")
        self.assertNotEqual(entry["_id"], "abc")

    def test_upsert_does_not_mutate_payload(self):
        payload = {"id": "e1", "_id": "abc"}
        self.service.upsert_entry(ALICE, payload)
        self.assertEqual(payload, {"id": "e1", "_id": "abc"})

    def test_upsert_without_client_id_leaves_store_unchanged(self):
        for payload in [{}, {"text": "x"}, {"id": ""}, {"id": None}]:
            with self.assertRaises(ValidationError) as ctx:
                self.service.upsert_entry(ALICE, payload)
            self.assertEqual(ctx.exception.message, "Entry id required")
        self.assertEqual(self.store.records, {})
        self.assertEqual(self.store.operations, 0)

    def test_upsert_rejects_non_string_client_id(self):
        with self.assertRaises(ValidationError):
            self.service.upsert_entry(ALICE, {"id": 42})
        self.assertEqual(self.store.records, {})

    def test_upsert_rejects_non_object_payload(self):
        with self.assertRaises(ValidationError):
            self.service.upsert_entry(ALICE, ["id", "e1"])

    def test_upsert_rejects_non_finite_numbers(self):
        for payload in [
            {"id": "e1", "score": float("nan")},
            {"id": "e1", "nested": {"values": [1, float("inf")]}},
            {"id": "e1", "timestamp": float("-inf")},
        ]:
            with self.assertRaises(ValidationError):
                self.service.upsert_entry(ALICE, payload)
        self.assertEqual(self.store.records, {})

    def test_upsert_accepts_oversized_integer_timestamp(self):
        self.service.upsert_entry(ALICE, {"id": "huge", "timestamp": 10**400})
        self.service.upsert_entry(ALICE, {"id": "timed", "timestamp": 1})
        ids = [e["id"] for e in self.service.list_entries(ALICE)]
        self.assertEqual(ids, ["timed", "huge"])

    def test_delete_is_idempotent(self):
        self.service.upsert_entry(ALICE, {"id": "e1"})
        self.service.delete_entry(ALICE, "e1")
        self.assertEqual(self.service.list_entries(ALICE), [])
        self.service.delete_entry(ALICE, "e1")
        self.assertEqual(self.service.list_entries(ALICE), [])

    def test_delete_is_scoped_to_owner(self):
        self.service.upsert_entry(ALICE, {"id": "e1"})
        self.service.delete_entry(BOB, "e1")
        self.assertEqual(len(self.service.list_entries(ALICE)), 1)

    def test_list_orders_by_timestamp_desc_with_untimed_last(self):
        self.service.upsert_entry(ALICE, {"id": "untimed"})
        self.service.upsert_entry(ALICE, {"id": "iso", "timestamp": "2024-01-02T00:00:00Z"})
        self.service.upsert_entry(ALICE, {"id": "epoch", "timestamp": 1.0})
        self.service.upsert_entry(ALICE, {"id": "latest", "timestamp": 2_000_000_000})

        ids = [e["id"] for e in self.service.list_entries(ALICE)]
        self.assertEqual(ids, ["latest", "iso", "epoch", "untimed"])

    def test_concurrent_upserts_leave_one_unmerged_record(self):
        payloads = [
            {"id": "race", "writer": "first", "only_first": True},
            {"id": "race", "writer": "second", "only_second": True},
        ]
        barrier = threading.Barrier(len(payloads))

        def write(payload):
            barrier.wait()
            for _ in range(50):
                self.service.upsert_entry(ALICE, payload)

        threads = [threading.Thread(target=write, args=(p,)) for p in payloads]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        entries = self.service.list_entries(ALICE)
        self.assertEqual(len(entries), 1)
        stored = {k: v for k, v in entries[0].items() if k not in ("_id", "uid")}
        self.assertIn(stored, payloads)

    def test_store_not_ready_raises(self):
        service = EntryService(InMemoryEntryStore())
        with self.assertRaises(StoreUnavailable):
            service.list_entries(ALICE)
        with self.assertRaises(StoreUnavailable):
            service.upsert_entry(ALICE, {"id": "e1"})
        with self.assertRaises(StoreUnavailable):
            service.delete_entry(ALICE, "e1")


if __name__ == "__main__":
    unittest.main()
