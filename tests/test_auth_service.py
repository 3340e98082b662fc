from datetime import datetime

import pytest

from auth.identity import AuthError
from auth.session import SessionStore
from fakes import FlakyStore


class TestSignUp:
    def test_creates_account_and_profile(self, auth_gateway, store, profile_fields):
        identity = auth_gateway.sign_up("mona@clinic.org", "Secret@123", profile_fields)

        assert identity.display_name == "Mona Adel"
        profile = store.get("users", identity.uid)
        assert profile["role"] == "patient"
        assert profile["phone"] == "01012345678"
        assert profile["dob"] == "16-07-1990"
        assert isinstance(profile["createdAt"], datetime)
        assert "password" not in profile

    def test_duplicate_email(self, auth_gateway, profile_fields):
        auth_gateway.sign_up("mona@clinic.org", "Secret@123", profile_fields)
        with pytest.raises(AuthError) as exc_info:
            auth_gateway.sign_up("mona@clinic.org", "Secret@123", profile_fields)
        assert exc_info.value.code == "auth/email-already-in-use"

    def test_weak_password_reaches_caller(self, auth_gateway, profile_fields):
        with pytest.raises(AuthError) as exc_info:
            auth_gateway.sign_up("mona@clinic.org", "abc", profile_fields)
        assert exc_info.value.code == "auth/weak-password"

    def test_profile_write_failure_is_not_swallowed(self, provider, store, profile_fields):
        from auth.auth_service import AuthGateway

        flaky = FlakyStore(store, lambda op, collection, detail: op == "set" and collection == "users")
        gateway = AuthGateway(provider, flaky)

        with pytest.raises(RuntimeError):
            gateway.sign_up("mona@clinic.org", "Secret@123", profile_fields)

        # the account exists without a profile and still signs in as a patient
        session = SessionStore(provider, store)
        identity = gateway.sign_in("mona@clinic.org", "Secret@123")
        assert store.get("users", identity.uid) is None
        assert session.role == "patient"


class TestSignIn:
    def test_sign_in_and_out(self, auth_gateway, provider, store, profile_fields):
        auth_gateway.sign_up("mona@clinic.org", "Secret@123", profile_fields)
        auth_gateway.sign_out()
        session = SessionStore(provider, store)
        assert session.identity is None

        identity = auth_gateway.sign_in("Mona@Clinic.org", "Secret@123")

        assert session.identity == identity
        assert session.role == "patient"

        auth_gateway.sign_out()
        assert session.identity is None
        assert session.role is None

    @pytest.mark.parametrize("email,password,code", [
        ("nobody@clinic.org", "Secret@123", "auth/user-not-found"),
        ("mona@clinic.org", "Wrong@1234", "auth/wrong-password"),
        ("not-an-email", "Secret@123", "auth/invalid-email"),
    ])
    def test_provider_codes_propagate(self, auth_gateway, profile_fields, email, password, code):
        auth_gateway.sign_up("mona@clinic.org", "Secret@123", profile_fields)
        with pytest.raises(AuthError) as exc_info:
            auth_gateway.sign_in(email, password)
        assert exc_info.value.code == code

    def test_disabled_account(self, auth_gateway, session_factory, profile_fields):
        from db.models import LocalAccount

        auth_gateway.sign_up("mona@clinic.org", "Secret@123", profile_fields)
        with session_factory() as s:
            s.query(LocalAccount).filter(LocalAccount.email == "mona@clinic.org").update({"disabled": True})
            s.commit()

        with pytest.raises(AuthError) as exc_info:
            auth_gateway.sign_in("mona@clinic.org", "Secret@123")
        assert exc_info.value.code == "auth/user-disabled"
