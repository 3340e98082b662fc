# app/backend.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from auth.identity import FirebaseIdentityProvider, IdentityProvider, LocalIdentityProvider
from config.settings import Settings
from db.document_store import DocumentStore, FirestoreDocumentStore, SqlDocumentStore
from db.relational import init_db, make_engine, make_session_factory

logger = logging.getLogger(__name__)


@dataclass
class Backend:
    """
    Shared document store plus a factory for per-session identity providers.

    Each browser session needs its own provider: the provider remembers who
    is signed in. Firebase providers share one HTTP connection pool, owned
    here and closed by close().
    """
    store: DocumentStore
    new_identity_provider: Callable[[], IdentityProvider]
    http_client: Optional[httpx.Client] = None

    def close(self) -> None:
        if self.http_client is not None:
            self.http_client.close()


def build_backend(settings: Settings) -> Backend:
    if settings.BACKEND == "firebase":
        store = FirestoreDocumentStore.from_settings(settings)
        client = httpx.Client(timeout=settings.HTTP_TIMEOUT_SECONDS)
        logger.info("Using Firestore + Firebase Authentication")
        return Backend(
            store=store,
            new_identity_provider=lambda: FirebaseIdentityProvider.from_settings(settings, client=client),
            http_client=client,
        )

    engine = make_engine(settings.DATABASE_URL, settings.DB_ECHO)
    init_db(engine)
    factory = make_session_factory(engine)
    logger.info("Using local backend at %s", settings.DATABASE_URL)
    return Backend(store=SqlDocumentStore(factory), new_identity_provider=lambda: LocalIdentityProvider(factory))
