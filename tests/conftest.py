from __future__ import annotations

import pytest

from adapters.memory_store import InMemoryBlobStore, InMemoryDocumentStore
from adapters.static_auth import StaticAuthProvider
from core.domain.models import User
from core.services.entity_cache import CacheContext
from core.services.session import open_session


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def blobs() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def auth() -> StaticAuthProvider:
    return StaticAuthProvider("admin-1")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def context(clock: FakeClock) -> CacheContext:
    return CacheContext(clock=clock)


@pytest.fixture
def session(documents, blobs, auth, context):
    return open_session(documents=documents, blobs=blobs, auth=auth, context=context)


@pytest.fixture
def admin() -> User:
    return User(id="admin-1", name="Ada", email="ada@example.com", role="admin")


@pytest.fixture
def member() -> User:
    return User(id="user-1", name="Bo", email="bo@example.com", role="user")


@pytest.fixture
def lead_data() -> dict:
    return {
        "companyName": "Acme",
        "contactName": "Jo",
        "email": "jo@acme.com",
        "status": "new",
        "source": "Website",
    }
