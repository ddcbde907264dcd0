"""Pytest configuration and fixtures for fanreader tests.

Test isolation strategy:
- Every test gets a fresh environment and an empty settings cache
- Apps use an in-memory store and a fake page acquirer (no browser)
- Archive HTTP traffic goes to a respx router through a mock transport,
  so no test ever reaches the network
"""

import sys
from collections.abc import Generator
from pathlib import Path

# Add repo root to sys.path for importing top-level packages (e.g., apps)
_repo_root = Path(__file__).parent.parent.parent
if str(_repo_root) not in sys.path:
    sys.path.insert(0, str(_repo_root))

import httpx
import pytest
import respx
from fastapi import FastAPI
from fastapi.testclient import TestClient

from fanreader.app import add_request_id_middleware, create_app
from fanreader.config import clear_settings_cache
from fanreader.storage import MemoryStore
from tests.helpers import FakeAcquirer


@pytest.fixture(autouse=True)
def test_env(monkeypatch, tmp_path) -> Generator[None, None, None]:
    """Pin the environment to test values and reset the settings cache."""
    monkeypatch.setenv("FANREADER_ENV", "test")
    monkeypatch.setenv("LOG_JSON", "false")
    monkeypatch.setenv("STORE_PATH", str(tmp_path / "store.json"))
    monkeypatch.setenv("BROWSER_FALLBACK_ENABLED", "false")
    monkeypatch.delenv("ARCHIVE_BASE_URL", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("COMMENTS_PAGE_SIZE", raising=False)
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def store() -> MemoryStore:
    """Provide an empty in-memory key-value store."""
    return MemoryStore()


@pytest.fixture
def acquirer() -> FakeAcquirer:
    """Provide a page acquirer that fails with E_CONTENT_NOT_FOUND by default."""
    return FakeAcquirer()


@pytest.fixture
def archive() -> respx.Router:
    """Provide a respx router standing in for every outbound HTTP host.

    Routes must use absolute URLs.
    """
    return respx.Router(assert_all_called=False)


@pytest.fixture
def app(store: MemoryStore, acquirer: FakeAcquirer, archive: respx.Router) -> FastAPI:
    """Provide an app wired to the test store, acquirer and router."""
    app = create_app(
        store=store,
        acquirer=acquirer,
        http_transport=httpx.MockTransport(archive.handler),
    )
    add_request_id_middleware(app, log_requests=False)
    return app


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Provide a FastAPI test client with the lifespan running."""
    with TestClient(app) as client:
        yield client
