import os

# Avant tout import de l'application: pas de Redis ni de webhook en tests
os.environ.setdefault("DISABLE_FASTAPI_LIMITER_INIT_FOR_TESTS", "1")
os.environ["NOTIFY_WEBHOOK_URL"] = ""
os.environ["N8N_WEBHOOK_URL"] = ""

import pytest
from typing import Any, Dict, Generator
from fastapi.testclient import TestClient
from unittest.mock import MagicMock

from marketplace.app import app as fastapi_app
from marketplace.utils.security import require_admin, require_user
from fakes import InMemoryStore

TEST_USER: Dict[str, Any] = {"id": "user-1", "email": "user@example.com", "role": "user"}
TEST_ADMIN: Dict[str, Any] = {"id": "admin-1", "email": "admin@example.com", "role": "admin"}


# Marquage automatique selon le dossier
def pytest_collection_modifyitems(config, items):
    for item in items:
        nodeid = item.nodeid.replace("\\", "/")
        if "tests/unit/" in nodeid:
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in nodeid:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(scope="session")
def app():
    return fastapi_app


@pytest.fixture()
def client(app) -> Generator[TestClient, None, None]:
    with TestClient(app) as c:
        yield c


# Simuler un utilisateur authentifié pour les endpoints protégés
@pytest.fixture(autouse=True)
def _override_require_user(app):
    app.dependency_overrides[require_user] = lambda: TEST_USER
    try:
        yield
    finally:
        app.dependency_overrides.pop(require_user, None)


@pytest.fixture
def admin_client(app, client):
    app.dependency_overrides[require_admin] = lambda: TEST_ADMIN
    try:
        yield client
    finally:
        app.dependency_overrides.pop(require_admin, None)


# Aucun test ne doit atteindre Supabase
@pytest.fixture(autouse=True)
def mock_supabase(monkeypatch):
    monkeypatch.setattr("marketplace.infra.supabase_client.get_supabase", lambda: MagicMock())
    monkeypatch.setattr("marketplace.infra.supabase_client.get_service_supabase", lambda: MagicMock())


@pytest.fixture
def store(monkeypatch) -> InMemoryStore:
    """Stockage en mémoire branché à la place de tous les repositories."""
    return InMemoryStore().install(monkeypatch)


@pytest.fixture
def notifications(monkeypatch):
    """Capture les événements envoyés au notifier (aucun envoi réel)."""
    sent = []
    monkeypatch.setattr("marketplace.infra.notifier.send", lambda event, data: sent.append((event, data)))
    return sent
