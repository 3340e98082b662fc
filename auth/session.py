# auth/session.py
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from auth.auth_service import USERS
from auth.identity import Identity, IdentityProvider
from db.document_store import DocumentStore
from db.entities import DEFAULT_ROLE, Profile

logger = logging.getLogger(__name__)

Listener = Callable[["SessionStore"], None]


class SessionStore:
    """
    Current identity, its role, and whether the first identity event has
    arrived yet.

    One store per client session; the Streamlit app keeps it in
    st.session_state. Profile lookup failures never leave the store: the
    role falls back to "patient".
    """

    def __init__(self, provider: IdentityProvider, store: DocumentStore) -> None:
        self.identity: Optional[Identity] = None
        self.role: Optional[str] = None
        self.loading = True
        self._store = store
        self._listeners: List[Listener] = []
        self._unsubscribe: Optional[Callable[[], None]] = provider.on_identity_changed(self._on_identity_changed)

    def _on_identity_changed(self, identity: Optional[Identity]) -> None:
        if identity is not None:
            self.set_identity(identity)
            self.set_role(self._resolve_role(identity))
        else:
            self.set_identity(None)
            self.set_role(None)
        self.loading = False
        self._notify()

    def _resolve_role(self, identity: Identity) -> str:
        try:
            profile = self._store.get(USERS, identity.uid)
        except Exception:
            logger.exception("Error fetching user role for %s", identity.uid)
            return DEFAULT_ROLE
        if not profile:
            return DEFAULT_ROLE
        return Profile.from_document(identity.uid, profile).role or DEFAULT_ROLE

    def set_identity(self, identity: Optional[Identity]) -> None:
        self.identity = identity
        self._notify()

    def set_role(self, role: Optional[str]) -> None:
        self.role = role
        self._notify()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    @property
    def signed_in(self) -> bool:
        return self.identity is not None

    def dispose(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()
