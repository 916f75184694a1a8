import pytest
from fastapi.testclient import TestClient

from app.core.security import create_access_token
from app.db.memory import InMemoryExpenseStore
from app.db.repository import get_expense_store
from app.main import app
from app.routers.expenses import get_enrichment_provider
from app.utils.enrichment import LocalEnrichment


def auth_headers(user_id: str) -> dict:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture
def store():
    return InMemoryExpenseStore()


@pytest.fixture
def enrichment():
    return LocalEnrichment()


@pytest.fixture
def client(store, enrichment):
    app.dependency_overrides[get_expense_store] = lambda: store
    app.dependency_overrides[get_enrichment_provider] = lambda: enrichment
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def alice():
    return auth_headers("alice")


@pytest.fixture
def bob():
    return auth_headers("bob")
