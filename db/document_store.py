# db/document_store.py
from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from db.models import Document

logger = logging.getLogger(__name__)

Filter = Tuple[str, Any]

TIMESTAMP_KEY = "__timestamp__"


@dataclass
class StoredDocument:
    id: str
    data: Dict[str, Any] = field(default_factory=dict)


class DocumentStore(ABC):
    """
    Schemaless documents grouped in collections.

    Filters are equality filters: [("patientId", "abc")] means patientId == "abc".
    When order_by is given, documents without that field are left out of the
    result (the hosted database behaves the same way).
    """

    @abstractmethod
    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    def set(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        ...

    @abstractmethod
    def add(self, collection: str, fields: Mapping[str, Any]) -> str:
        ...

    @abstractmethod
    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[StoredDocument]:
        ...


# ============================================================
# Timestamps inside JSON
# ============================================================

def encode_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return {TIMESTAMP_KEY: value.isoformat()}
    if isinstance(value, Mapping):
        return {str(k): encode_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    return value


def decode_value(value: Any) -> Any:
    if isinstance(value, dict):
        if set(value) == {TIMESTAMP_KEY}:
            return datetime.fromisoformat(value[TIMESTAMP_KEY])
        return {k: decode_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v) for v in value]
    return value


def new_document_id() -> str:
    # same length as the hosted database's auto ids
    return uuid.uuid4().hex[:20]


# ============================================================
# Local backend: SQLAlchemy
# ============================================================

class SqlDocumentStore(DocumentStore):
    """
    Documents stored as JSON rows (see db/models.py).

    Filtering and ordering happen in Python over one collection; the local
    backend is meant for development and tests, not for large collections.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        with self._session_factory() as session:
            row = session.execute(
                select(Document).where(Document.collection == collection, Document.doc_id == doc_id)
            ).scalar_one_or_none()
            if row is None:
                return None
            return decode_value(row.data)

    def set(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        payload = encode_value(dict(fields))
        with self._session_factory() as session:
            row = session.execute(
                select(Document).where(Document.collection == collection, Document.doc_id == doc_id)
            ).scalar_one_or_none()
            if row is None:
                session.add(Document(collection=collection, doc_id=doc_id, data=payload))
            else:
                row.data = payload
            session.commit()

    def add(self, collection: str, fields: Mapping[str, Any]) -> str:
        doc_id = new_document_id()
        with self._session_factory() as session:
            session.add(Document(collection=collection, doc_id=doc_id, data=encode_value(dict(fields))))
            session.commit()
        logger.debug("Added %s/%s", collection, doc_id)
        return doc_id

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[StoredDocument]:
        with self._session_factory() as session:
            rows = session.execute(
                select(Document).where(Document.collection == collection).order_by(Document.id)
            ).scalars().all()
            docs = [StoredDocument(id=r.doc_id, data=decode_value(r.data)) for r in rows]

        for key, value in filters:
            docs = [d for d in docs if key in d.data and d.data[key] == value]

        if order_by:
            docs = [d for d in docs if d.data.get(order_by) is not None]
            docs.sort(key=lambda d: d.data[order_by], reverse=descending)

        return docs


# ============================================================
# Hosted backend: Cloud Firestore
# ============================================================

class FirestoreDocumentStore(DocumentStore):
    def __init__(self, client) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "FirestoreDocumentStore":
        import firebase_admin
        from firebase_admin import credentials, firestore

        settings.require_firebase()
        try:
            app = firebase_admin.get_app()
        except ValueError:
            cred = credentials.Certificate(settings.FIREBASE_CREDENTIAL_PATH)
            options = {"projectId": settings.FIREBASE_PROJECT_ID} if settings.FIREBASE_PROJECT_ID else None
            app = firebase_admin.initialize_app(cred, options)
            logger.info("Firebase admin initialized")
        return cls(firestore.client(app=app))

    def get(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        snap = self._client.collection(collection).document(doc_id).get()
        if not snap.exists:
            return None
        return snap.to_dict() or {}

    def set(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        self._client.collection(collection).document(doc_id).set(dict(fields))

    def add(self, collection: str, fields: Mapping[str, Any]) -> str:
        _, ref = self._client.collection(collection).add(dict(fields))
        return ref.id

    def query(
        self,
        collection: str,
        filters: Sequence[Filter] = (),
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> List[StoredDocument]:
        from google.cloud.firestore import FieldFilter, Query

        q = self._client.collection(collection)
        for key, value in filters:
            q = q.where(filter=FieldFilter(key, "==", value))
        if order_by:
            q = q.order_by(order_by, direction=Query.DESCENDING if descending else Query.ASCENDING)
        return [StoredDocument(id=snap.id, data=snap.to_dict() or {}) for snap in q.stream()]
