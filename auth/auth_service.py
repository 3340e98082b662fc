# auth/auth_service.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Mapping

from auth.identity import Identity, IdentityProvider
from db.document_store import DocumentStore
from db.entities import DEFAULT_ROLE

logger = logging.getLogger(__name__)

USERS = "users"

PROFILE_FIELDS = ("name", "email", "phone", "dob", "gender")


class AuthGateway:
    """
    Sign-up / sign-in / sign-out pass-through.

    sign_up is two writes (account, then users/{uid}) and is not
    transactional: when the profile write fails the account stays behind
    without a profile, and the error still reaches the caller.
    """

    def __init__(self, provider: IdentityProvider, store: DocumentStore) -> None:
        self.provider = provider
        self.store = store

    def sign_up(self, email: str, password: str, profile_fields: Mapping[str, Any]) -> Identity:
        identity = self.provider.create_identity(email, password)
        identity = self.provider.update_display_name(profile_fields.get("name", ""))

        profile = {key: profile_fields.get(key) for key in PROFILE_FIELDS}
        profile["role"] = DEFAULT_ROLE
        profile["createdAt"] = datetime.now(timezone.utc)
        try:
            self.store.set(USERS, identity.uid, profile)
        except Exception:
            logger.exception("Profile write failed for %s; account has no profile", identity.uid)
            raise
        return identity

    def sign_in(self, email: str, password: str) -> Identity:
        return self.provider.authenticate(email, password)

    def sign_out(self) -> None:
        self.provider.end_session()
