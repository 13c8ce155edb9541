"""Document store service.

Create, update, restore and fetch resume documents kept in a key-value
store. Each collection is a flat list of records; child records point at
their document through ``docId == document["id"]``.
"""
from typing import Any, Callable, Dict, List, Optional
import logging
from datetime import datetime

from app.core.errors import InvalidStateError, NotFoundError, UnauthorizedError, ValidationError
from app.core.security import AuthUser
from app.services.storage import KeyValueStore
from app.utils.helpers import (
    RecordIdGenerator,
    format_timestamp,
    generate_doc_uuid,
    parse_timestamp,
    utc_now,
)

logger = logging.getLogger(__name__)

DOCUMENTS = "documents"
PERSONAL_INFO = "personalInfo"
EXPERIENCE = "experience"
EDUCATION = "education"
SKILLS = "skills"

COLLECTIONS = (DOCUMENTS, PERSONAL_INFO, EXPERIENCE, EDUCATION, SKILLS)

STATUS_PRIVATE = "private"
STATUS_PUBLIC = "public"
STATUS_ARCHIVED = "archived"

# Overwritten only when the incoming value is truthy
SCALAR_FIELDS = ("title", "thumbnail", "summary", "themeColor", "status", "currentPosition")

# Update payload key -> storage key
CHILD_COLLECTIONS = (
    ("experience", EXPERIENCE),
    ("education", EDUCATION),
    ("skills", SKILLS),
)

Record = Dict[str, Any]

# Shared across service instances so ids stay unique between requests
default_id_factory = RecordIdGenerator()

# Set by the service only; never taken from an update payload
LINK_FIELDS = ("id", "docId")


def _strip_link_fields(fields: Record) -> Record:
    return {name: value for name, value in fields.items() if name not in LINK_FIELDS}


class DocumentService:
    def __init__(
        self,
        store: KeyValueStore,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], int]] = None,
    ):
        self.store = store
        self.clock = clock or utc_now
        self.new_id = id_factory or default_id_factory
        self.store.ensure_collections(COLLECTIONS)

    def _collection(self, key: str) -> List[Record]:
        return self.store.get(key) or []

    def _now(self) -> str:
        return format_timestamp(self.clock())

    def _touch(self, document: Record) -> None:
        """Refresh updatedAt without ever moving it backwards."""
        now = self.clock()
        previous = document.get("updatedAt")
        if previous and parse_timestamp(previous) > now:
            return
        document["updatedAt"] = format_timestamp(now)

    @staticmethod
    def _find_index(records: List[Record], predicate: Callable[[Record], bool]) -> int:
        for index, record in enumerate(records):
            if predicate(record):
                return index
        return -1

    def create(self, title: str, user: AuthUser) -> Record:
        """Create a private document owned by ``user``."""
        timestamp = self._now()
        document = {
            "id": self.new_id(),
            "title": title,
            "userId": user.id,
            "documentId": generate_doc_uuid(),
            "authorName": user.display_name,
            "authorEmail": user.email or "",
            "status": STATUS_PRIVATE,
            "createdAt": timestamp,
            "updatedAt": timestamp,
        }

        documents = self._collection(DOCUMENTS)
        documents.append(document)
        self.store.set(DOCUMENTS, documents)

        logger.info("Created document %s for user %s", document["documentId"], user.id)
        return document

    def update(self, document_id: str, user_id: str, changes: Record) -> None:
        """
        Apply a partial update to an owned document and its child records.

        Scalar fields are overwritten only by truthy values. ``personalInfo``
        is upserted with a shallow merge. Items in ``experience``,
        ``education`` and ``skills`` carrying an ``id`` are merged into the
        matching record of this document and dropped when there is none;
        items without an ``id`` are inserted.

        Raises:
            ValidationError: document_id is empty
            NotFoundError: no document with this id owned by user_id
        """
        if not document_id:
            raise ValidationError("DocumentId is required")

        with self.store.transaction():
            documents = self._collection(DOCUMENTS)
            index = self._find_index(
                documents,
                lambda doc: doc.get("documentId") == document_id and doc.get("userId") == user_id,
            )
            if index == -1:
                raise NotFoundError("Document not found")

            document = documents[index]
            for field in SCALAR_FIELDS:
                value = changes.get(field)
                if value:
                    document[field] = value
            self._touch(document)
            self.store.set(DOCUMENTS, documents)

            personal_info = changes.get("personalInfo")
            if personal_info is not None:
                self._upsert_personal_info(document["id"], personal_info)

            for payload_key, storage_key in CHILD_COLLECTIONS:
                items = changes.get(payload_key)
                if items and isinstance(items, list):
                    self._merge_children(storage_key, document["id"], items)

        logger.info("Updated document %s", document_id)

    def _upsert_personal_info(self, doc_id: int, fields: Record) -> None:
        data = _strip_link_fields(fields)
        items = self._collection(PERSONAL_INFO)
        index = self._find_index(items, lambda info: info.get("docId") == doc_id)
        if index != -1:
            items[index] = {**items[index], **data}
        else:
            items.append({"id": self.new_id(), "docId": doc_id, **data})
        self.store.set(PERSONAL_INFO, items)

    def _merge_children(self, key: str, doc_id: int, incoming: List[Record]) -> None:
        items = self._collection(key)
        for entry in incoming:
            data = _strip_link_fields(entry)

            if "id" in entry:
                item_id = entry["id"]
                index = self._find_index(
                    items,
                    lambda item: item.get("id") == item_id and item.get("docId") == doc_id,
                )
                if index != -1:
                    items[index] = {**items[index], **data}
                else:
                    logger.debug("Dropping %s item %s: not part of document %s", key, item_id, doc_id)
            else:
                items.append({"id": self.new_id(), "docId": doc_id, **data})
        self.store.set(key, items)

    def restore_from_archive(self, document_id: str, user_id: str, expected_status: Optional[str]) -> Record:
        """Move an archived document back to private."""
        if not document_id:
            raise ValidationError("DocumentId must be provided")

        if expected_status != STATUS_ARCHIVED:
            raise InvalidStateError("Status must be archived before restore")

        documents = self._collection(DOCUMENTS)
        index = self._find_index(
            documents,
            lambda doc: (
                doc.get("documentId") == document_id
                and doc.get("userId") == user_id
                and doc.get("status") == STATUS_ARCHIVED
            ),
        )
        if index == -1:
            raise NotFoundError("Document not found")

        document = documents[index]
        document["status"] = STATUS_PRIVATE
        self._touch(document)
        self.store.set(DOCUMENTS, documents)

        logger.info("Restored document %s from archive", document_id)
        return document

    def list_active(self, user_id: str) -> List[Record]:
        """Owned documents that are not archived, most recently updated first."""
        documents = [
            doc for doc in self._collection(DOCUMENTS)
            if doc.get("userId") == user_id and doc.get("status") != STATUS_ARCHIVED
        ]
        return sorted(documents, key=lambda doc: parse_timestamp(doc["updatedAt"]), reverse=True)

    def list_archived(self, user_id: str) -> List[Record]:
        return [
            doc for doc in self._collection(DOCUMENTS)
            if doc.get("userId") == user_id and doc.get("status") == STATUS_ARCHIVED
        ]

    def get_by_id(self, document_id: str, user_id: str) -> Record:
        document = self._find_document(
            lambda doc: doc.get("documentId") == document_id and doc.get("userId") == user_id
        )
        if document is None:
            raise NotFoundError("Document not found")
        return self._aggregate(document)

    def get_public(self, document_id: str) -> Record:
        """Fetch a public document for anonymous readers."""
        document = self._find_document(
            lambda doc: doc.get("documentId") == document_id and doc.get("status") == STATUS_PUBLIC
        )
        if document is None:
            raise UnauthorizedError("unauthorized")
        return self._aggregate(document)

    def _find_document(self, predicate: Callable[[Record], bool]) -> Optional[Record]:
        for document in self._collection(DOCUMENTS):
            if predicate(document):
                return document
        return None

    def _aggregate(self, document: Record) -> Record:
        doc_id = document["id"]
        personal_info = next(
            (info for info in self._collection(PERSONAL_INFO) if info.get("docId") == doc_id),
            None,
        )
        return {
            **document,
            "personalInfo": personal_info,
            "experiences": [item for item in self._collection(EXPERIENCE) if item.get("docId") == doc_id],
            "educations": [item for item in self._collection(EDUCATION) if item.get("docId") == doc_id],
            "skills": [item for item in self._collection(SKILLS) if item.get("docId") == doc_id],
        }
