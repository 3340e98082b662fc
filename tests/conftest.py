"""
Shared pytest fixtures.

Every test gets a fresh in-memory SQLite database, the local document store
on top of it, and a local identity provider.
"""

from typing import Dict

import pytest

from auth.auth_service import AuthGateway
from auth.identity import LocalIdentityProvider
from db.document_store import SqlDocumentStore
from db.patient_service import PatientDataGateway
from db.relational import init_db, make_engine, make_session_factory


@pytest.fixture
def session_factory():
    engine = make_engine("sqlite://", echo=False)
    init_db(engine)
    yield make_session_factory(engine)
    engine.dispose()


@pytest.fixture
def store(session_factory) -> SqlDocumentStore:
    return SqlDocumentStore(session_factory)


@pytest.fixture
def provider(session_factory) -> LocalIdentityProvider:
    return LocalIdentityProvider(session_factory)


@pytest.fixture
def auth_gateway(provider, store) -> AuthGateway:
    return AuthGateway(provider, store)


@pytest.fixture
def patients(store) -> PatientDataGateway:
    return PatientDataGateway(store)


@pytest.fixture
def profile_fields() -> Dict[str, str]:
    return {
        "name": "Mona Adel",
        "email": "mona@clinic.org",
        "phone": "01012345678",
        "dob": "16-07-1990",
        "gender": "female",
    }
