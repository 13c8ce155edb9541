"""Tests for the memory and SQLAlchemy-backed key-value stores."""
import threading

import pytest

from app.models.storage_entry import StorageEntry
from app.services.document_service import DocumentService
from app.services.storage import KeyValueStore


class TestMemoryStore:
    def test_missing_key_is_none(self, store):
        assert store.get("documents") is None

    def test_values_are_copied(self, store):
        records = [{"id": 1}]
        store.set("documents", records)
        records.append({"id": 2})

        loaded = store.get("documents")
        loaded[0]["id"] = 99

        assert store.get("documents") == [{"id": 1}]

    def test_ensure_collections_only_fills_missing(self, store):
        store.set("documents", [{"id": 1}])

        store.ensure_collections(["documents", "skills"])

        assert store.get("documents") == [{"id": 1}]
        assert store.get("skills") == []

    def test_transaction_rolls_back_on_error(self, store):
        store.set("documents", [{"id": 1}])

        with pytest.raises(ValueError):
            with store.transaction():
                store.set("documents", [])
                store.set("skills", [{"id": 2}])
                raise ValueError("boom")

        assert store.get("documents") == [{"id": 1}]
        assert store.get("skills") is None

    def test_rollback_only_restores_keys_written_in_transaction(self, store):
        store.set("documents", [{"id": 1}])

        with pytest.raises(ValueError):
            with store.transaction():
                store.set("documents", [])
                other = threading.Thread(target=store.set, args=("skills", [{"id": 7}]))
                other.start()
                other.join()
                raise ValueError("boom")

        assert store.get("documents") == [{"id": 1}]
        assert store.get("skills") == [{"id": 7}]

    def test_partial_adapter_cannot_be_constructed(self):
        class GetOnlyStore(KeyValueStore):
            def get(self, key):
                return None

        with pytest.raises(TypeError):
            GetOnlyStore()

    def test_clear(self, store):
        store.set("documents", [])
        store.clear()

        assert store.get("documents") is None


class TestDatabaseStore:
    def test_set_then_get(self, db_store, db_session):
        db_store.set("documents", [{"id": 1, "title": "CV"}])

        assert db_store.get("documents") == [{"id": 1, "title": "CV"}]
        assert db_session.get(StorageEntry, "documents") is not None

    def test_overwrite_existing_key(self, db_store):
        db_store.set("skills", [{"id": 1}])
        db_store.set("skills", [{"id": 1}, {"id": 2}])

        assert db_store.get("skills") == [{"id": 1}, {"id": 2}]

    def test_transaction_commits_once(self, db_store):
        with db_store.transaction():
            db_store.set("documents", [{"id": 1}])
            db_store.set("documents", [{"id": 1}, {"id": 2}])
            assert db_store.get("documents") == [{"id": 1}, {"id": 2}]

        assert db_store.get("documents") == [{"id": 1}, {"id": 2}]

    def test_transaction_rolls_back(self, db_store):
        db_store.set("documents", [{"id": 1}])

        with pytest.raises(RuntimeError):
            with db_store.transaction():
                db_store.set("documents", [])
                db_store.set("education", [{"id": 3}])
                raise RuntimeError("fail")

        assert db_store.get("documents") == [{"id": 1}]
        assert db_store.get("education") is None

    def test_document_service_over_database(self, db_store, clock, alice):
        service = DocumentService(db_store, clock=clock)
        document = service.create("Persisted", alice)

        service.update(document["documentId"], alice.id, {
            "title": "Persisted CV",
            "personalInfo": {"firstName": "Alice"},
            "experience": [{"title": "Dev"}],
        })

        result = service.get_by_id(document["documentId"], alice.id)
        assert result["title"] == "Persisted CV"
        assert result["personalInfo"]["firstName"] == "Alice"
        assert result["experiences"][0]["docId"] == document["id"]
