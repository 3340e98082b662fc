from datetime import datetime, timezone
from unittest.mock import MagicMock

from db.document_store import FirestoreDocumentStore, decode_value, encode_value


class TestSqlDocumentStore:
    def test_get_missing(self, store):
        assert store.get("users", "nobody") is None

    def test_set_then_overwrite(self, store):
        store.set("users", "u1", {"name": "Mona", "role": "patient"})
        store.set("users", "u1", {"name": "Mona Adel", "role": "doctor"})
        assert store.get("users", "u1") == {"name": "Mona Adel", "role": "doctor"}

    def test_add_returns_distinct_ids(self, store):
        a = store.add("diagnoses", {"patientId": "p1"})
        b = store.add("diagnoses", {"patientId": "p1"})
        assert a != b
        assert len(a) == 20

    def test_timestamps_come_back_as_datetimes(self, store):
        when = datetime(2024, 7, 20, 9, 30, tzinfo=timezone.utc)
        doc_id = store.add("appointments", {"start_time": when, "history": [{"at": when}]})

        data = store.get("appointments", doc_id)

        assert data["start_time"] == when
        assert data["history"][0]["at"] == when

    def test_query_filters_and_orders(self, store):
        store.add("appointments", {"patientId": "p1", "start_time": datetime(2024, 7, 1)})
        store.add("appointments", {"patientId": "p1", "start_time": datetime(2024, 7, 20)})
        store.add("appointments", {"patientId": "p1"})
        store.add("appointments", {"patientId": "p2", "start_time": datetime(2024, 7, 5)})

        ordered = store.query("appointments", [("patientId", "p1")], order_by="start_time", descending=True)
        unordered = store.query("appointments", [("patientId", "p1")])

        assert [d.data["start_time"].day for d in ordered] == [20, 1]
        assert len(unordered) == 3

    def test_collections_are_separate(self, store):
        store.set("users", "x", {"a": 1})
        assert store.query("diagnoses") == []


class TestTimestampCodec:
    def test_plain_values_untouched(self):
        value = {"a": 1, "b": [1, "x"], "c": None}
        assert encode_value(value) == value
        assert decode_value(value) == value

    def test_datetime_marker(self):
        encoded = encode_value({"t": datetime(2024, 1, 2, 3, 4)})
        assert encoded == {"t": {"__timestamp__": "2024-01-02T03:04:00"}}


class TestFirestoreDocumentStore:
    def test_get_missing_document(self):
        client = MagicMock()
        client.collection.return_value.document.return_value.get.return_value.exists = False

        assert FirestoreDocumentStore(client).get("users", "u1") is None
        client.collection.assert_called_with("users")
        client.collection.return_value.document.assert_called_with("u1")

    def test_add_returns_new_id(self):
        client = MagicMock()
        ref = MagicMock()
        ref.id = "abc"
        client.collection.return_value.add.return_value = (None, ref)

        assert FirestoreDocumentStore(client).add("appointments", {"x": 1}) == "abc"

    def test_query_chains_filters_and_order(self):
        client = MagicMock()
        collection = client.collection.return_value
        filtered = collection.where.return_value
        ordered = filtered.order_by.return_value
        snap = MagicMock()
        snap.id = "a1"
        snap.to_dict.return_value = {"patientId": "p1"}
        ordered.stream.return_value = [snap]

        docs = FirestoreDocumentStore(client).query(
            "appointments", [("patientId", "p1")], order_by="start_time", descending=True
        )

        assert [(d.id, d.data) for d in docs] == [("a1", {"patientId": "p1"})]
        field_filter = collection.where.call_args.kwargs["filter"]
        assert (field_filter.field_path, field_filter.op_string, field_filter.value) == ("patientId", "==", "p1")
        assert filtered.order_by.call_args.args == ("start_time",)
