from auth.identity import Identity, IdentityProvider
from auth.session import SessionStore
from db.entities import ROLES
from fakes import FlakyStore


class StubProvider(IdentityProvider):
    """Provider whose identity changes are driven by the test."""

    def __init__(self, initial=None):
        super().__init__()
        self._current = initial
        self.unsubscribe_calls = 0

    def on_identity_changed(self, callback):
        inner = super().on_identity_changed(callback)

        def unsubscribe():
            self.unsubscribe_calls += 1
            inner()

        return unsubscribe

    def emit(self, identity):
        self._publish(identity)

    def create_identity(self, email, password):
        raise NotImplementedError

    def authenticate(self, email, password):
        raise NotImplementedError

    def update_display_name(self, name):
        raise NotImplementedError

    def end_session(self):
        self._publish(None)


JANE = Identity(uid="u-jane", email="jane@clinic.org")


class TestSessionStore:
    def test_signed_out_at_start(self, store):
        session = SessionStore(StubProvider(), store)
        assert session.identity is None
        assert session.role is None
        assert session.loading is False

    def test_role_read_from_profile(self, store):
        store.set("users", JANE.uid, {"name": "Jane", "role": "doctor"})
        provider = StubProvider()
        session = SessionStore(provider, store)

        provider.emit(JANE)

        assert session.identity == JANE
        assert session.role == "doctor"
        assert session.loading is False

    def test_missing_profile_defaults_to_patient(self, store):
        session = SessionStore(StubProvider(initial=JANE), store)
        assert session.role == "patient"
        assert session.loading is False

    def test_profile_without_role_defaults_to_patient(self, store):
        store.set("users", JANE.uid, {"name": "Jane"})
        session = SessionStore(StubProvider(initial=JANE), store)
        assert session.role == "patient"

    def test_empty_role_defaults_to_patient(self, store):
        store.set("users", JANE.uid, {"name": "Jane", "role": ""})
        session = SessionStore(StubProvider(initial=JANE), store)
        assert session.role == "patient"

    def test_every_profile_role_is_known(self, store):
        for role in ROLES:
            store.set("users", JANE.uid, {"name": "Jane", "role": role})
            assert SessionStore(StubProvider(initial=JANE), store).role == role

    def test_profile_read_failure_defaults_to_patient(self, store):
        flaky = FlakyStore(store, lambda op, collection, detail: op == "get")
        session = SessionStore(StubProvider(initial=JANE), flaky)

        assert session.identity == JANE
        assert session.role == "patient"
        assert session.loading is False

    def test_sign_out_clears_identity_and_role(self, store):
        provider = StubProvider(initial=JANE)
        session = SessionStore(provider, store)

        provider.end_session()

        assert session.identity is None
        assert session.role is None

    def test_listeners_see_updates(self, store):
        provider = StubProvider()
        session = SessionStore(provider, store)
        seen = []
        session.subscribe(lambda s: seen.append((s.identity, s.role)))

        provider.emit(JANE)

        assert seen[-1] == (JANE, "patient")

    def test_setters_are_available_to_views(self, store):
        session = SessionStore(StubProvider(initial=JANE), store)
        session.set_role("admin")
        assert session.role == "admin"

    def test_dispose_unsubscribes_once(self, store):
        provider = StubProvider()
        session = SessionStore(provider, store)

        session.dispose()
        session.dispose()
        provider.emit(JANE)

        assert provider.unsubscribe_calls == 1
        assert session.identity is None
