"""
db/models.py

Tables backing the local (SQLite) backend.

- documents: one row per document. A document is addressed by
  (collection, doc_id), exactly like a path in the hosted document database,
  and its fields live in one JSON column.
- local_accounts: the local identity provider's accounts.
"""

from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, UniqueConstraint, func
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Document(Base):
    """
    Schemaless record.

    id:         internal primary key, never shown to callers.
    doc_id:     the document id callers see (auto-generated on add, chosen on set).
    collection: "users" / "appointments" / "diagnoses" / "treatments" ...
    """
    __tablename__ = "documents"
    __table_args__ = (UniqueConstraint("collection", "doc_id", name="uq_documents_collection_doc_id"),)

    id = Column(Integer, primary_key=True, index=True)
    collection = Column(String, nullable=False, index=True)
    doc_id = Column(String, nullable=False, index=True)
    data = Column(JSON, nullable=False, default=dict)

    # insertion order, used as a stable tie-break when listing a collection
    created_at = Column(DateTime, nullable=False, server_default=func.now())


class LocalAccount(Base):
    __tablename__ = "local_accounts"

    id = Column(Integer, primary_key=True, index=True)
    uid = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    display_name = Column(String, nullable=True)
    disabled = Column(Boolean, nullable=False, default=False)
