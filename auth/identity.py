# auth/identity.py
"""
Identity providers.

Both providers keep "who is signed in" for one client session and notify
observers whenever that changes, the way the hosted auth SDK does:

    unsubscribe = provider.on_identity_changed(callback)

The callback receives the current identity right away (None when signed out)
and then on every sign-up, sign-in and sign-out.

Failures are raised as AuthError carrying the SDK-style code
("auth/email-already-in-use", "auth/wrong-password", ...).
"""
from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import httpx
from email_validator import EmailNotValidError, validate_email
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from db.models import LocalAccount

logger = logging.getLogger(__name__)

IdentityCallback = Callable[[Optional["Identity"]], None]

MIN_PROVIDER_PASSWORD_LENGTH = 6


@dataclass(frozen=True)
class Identity:
    uid: str
    email: str
    display_name: Optional[str] = None


class AuthError(Exception):
    """
    Identity provider failure.

    Attributes:
        code: provider error code, e.g. "auth/user-not-found"
        message: human-readable detail from the provider
    """

    def __init__(self, code: str, message: str = ""):
        self.code = code
        self.message = message or code
        super().__init__(f"{code}: {self.message}")


class IdentityProvider(ABC):
    def __init__(self) -> None:
        self._current: Optional[Identity] = None
        self._observers: List[IdentityCallback] = []

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._current

    def on_identity_changed(self, callback: IdentityCallback) -> Callable[[], None]:
        self._observers.append(callback)
        callback(self._current)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def _publish(self, identity: Optional[Identity]) -> None:
        self._current = identity
        for callback in list(self._observers):
            callback(identity)

    @abstractmethod
    def create_identity(self, email: str, password: str) -> Identity:
        """Create the account and sign it in."""

    @abstractmethod
    def authenticate(self, email: str, password: str) -> Identity:
        ...

    @abstractmethod
    def update_display_name(self, name: str) -> Identity:
        ...

    @abstractmethod
    def end_session(self) -> None:
        ...


def _check_email(email: str) -> None:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError as e:
        raise AuthError("auth/invalid-email", str(e)) from e


# ============================================================
# Local accounts (SQLAlchemy)
# ============================================================

class LocalIdentityProvider(IdentityProvider):
    """Accounts in the local_accounts table; passwords hashed with passlib."""

    pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

    def __init__(self, session_factory: sessionmaker) -> None:
        super().__init__()
        self._session_factory = session_factory

    def create_identity(self, email: str, password: str) -> Identity:
        _check_email(email)
        if len(password or "") < MIN_PROVIDER_PASSWORD_LENGTH:
            raise AuthError("auth/weak-password", "Password should be at least 6 characters")

        email = email.strip().lower()
        account = LocalAccount(
            uid=uuid.uuid4().hex[:28],
            email=email,
            password_hash=self.pwd_context.hash(password),
        )
        with self._session_factory() as session:
            session.add(account)
            try:
                session.commit()
            except IntegrityError as e:
                session.rollback()
                raise AuthError("auth/email-already-in-use", "The email address is already in use") from e
            identity = Identity(uid=account.uid, email=account.email)

        logger.info("Created local account %s", identity.uid)
        self._publish(identity)
        return identity

    def authenticate(self, email: str, password: str) -> Identity:
        _check_email(email)
        with self._session_factory() as session:
            account = session.execute(
                select(LocalAccount).where(LocalAccount.email == email.strip().lower())
            ).scalar_one_or_none()
            if account is None:
                raise AuthError("auth/user-not-found", "No account for this email")
            if not self.pwd_context.verify(password, account.password_hash):
                raise AuthError("auth/wrong-password", "Wrong password")
            if account.disabled:
                raise AuthError("auth/user-disabled", "The account is disabled")
            identity = Identity(uid=account.uid, email=account.email, display_name=account.display_name)

        self._publish(identity)
        return identity

    def update_display_name(self, name: str) -> Identity:
        if self._current is None:
            raise AuthError("auth/no-current-user", "No signed-in user")
        with self._session_factory() as session:
            account = session.execute(
                select(LocalAccount).where(LocalAccount.uid == self._current.uid)
            ).scalar_one_or_none()
            if account is None:
                raise AuthError("auth/user-not-found", "Signed-in account no longer exists")
            account.display_name = name
            session.commit()

        # a profile update does not count as an identity change
        self._current = Identity(uid=self._current.uid, email=self._current.email, display_name=name)
        return self._current

    def end_session(self) -> None:
        self._publish(None)


# ============================================================
# Firebase Authentication REST API (httpx)
# ============================================================

REST_ERROR_CODES: Dict[str, str] = {
    "EMAIL_EXISTS": "auth/email-already-in-use",
    "INVALID_EMAIL": "auth/invalid-email",
    "WEAK_PASSWORD": "auth/weak-password",
    "MISSING_PASSWORD": "auth/missing-password",
    "EMAIL_NOT_FOUND": "auth/user-not-found",
    "INVALID_PASSWORD": "auth/wrong-password",
    "INVALID_LOGIN_CREDENTIALS": "auth/invalid-credential",
    "USER_DISABLED": "auth/user-disabled",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "auth/too-many-requests",
    "OPERATION_NOT_ALLOWED": "auth/operation-not-allowed",
    "INVALID_ID_TOKEN": "auth/invalid-user-token",
    "TOKEN_EXPIRED": "auth/user-token-expired",
    "USER_NOT_FOUND": "auth/user-not-found",
}


def error_from_response(response: httpx.Response) -> AuthError:
    """
    Turn an error body like {"error": {"message": "WEAK_PASSWORD : Password
    should be at least 6 characters"}} into AuthError("auth/weak-password", ...).
    """
    try:
        raw = response.json()["error"]["message"]
    except (ValueError, KeyError, TypeError):
        return AuthError("auth/internal-error", f"HTTP {response.status_code}")

    key, _, detail = str(raw).partition(" : ")
    key = key.strip()
    code = REST_ERROR_CODES.get(key)
    if code is None:
        if response.status_code >= 500:
            code = "auth/internal-error"
        else:
            code = "auth/" + key.lower().replace("_", "-")
    return AuthError(code, detail.strip() or key)


class FirebaseIdentityProvider(IdentityProvider):
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://identitytoolkit.googleapis.com/v1",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        super().__init__()
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(timeout=timeout)
        self._id_token: Optional[str] = None

    @classmethod
    def from_settings(cls, settings, client: Optional[httpx.Client] = None) -> "FirebaseIdentityProvider":
        settings.require_firebase()
        return cls(
            api_key=settings.FIREBASE_API_KEY,
            base_url=settings.AUTH_BASE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            client=client,
        )

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/accounts:{endpoint}"
        try:
            response = self._client.post(url, params={"key": self.api_key}, json=payload)
        except httpx.TransportError as e:
            raise AuthError("auth/network-request-failed", str(e)) from e

        if response.is_success:
            return response.json()
        error = error_from_response(response)
        logger.warning("accounts:%s failed with %s", endpoint, error.code)
        raise error

    def _signed_in(self, data: Dict[str, Any]) -> Identity:
        self._id_token = data.get("idToken")
        identity = Identity(
            uid=data["localId"],
            email=data.get("email", ""),
            display_name=data.get("displayName") or None,
        )
        self._publish(identity)
        return identity

    def create_identity(self, email: str, password: str) -> Identity:
        data = self._post("signUp", {"email": email, "password": password, "returnSecureToken": True})
        return self._signed_in(data)

    def authenticate(self, email: str, password: str) -> Identity:
        data = self._post("signInWithPassword", {"email": email, "password": password, "returnSecureToken": True})
        return self._signed_in(data)

    def update_display_name(self, name: str) -> Identity:
        if self._current is None or not self._id_token:
            raise AuthError("auth/no-current-user", "No signed-in user")
        self._post("update", {"idToken": self._id_token, "displayName": name, "returnSecureToken": False})
        self._current = Identity(uid=self._current.uid, email=self._current.email, display_name=name)
        return self._current

    def end_session(self) -> None:
        # the REST API keeps no server-side session; dropping the token is the sign-out
        self._id_token = None
        self._publish(None)
