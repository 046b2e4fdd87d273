"""Shared test fixtures and configuration.

Sets up fake environment variables so src.config doesn't sys.exit(),
and provides common fixtures like a temp state DB and per-user store.
"""

import os
import tempfile

# Patch env vars BEFORE any src imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("LLM_API_KEY", "fake-llm-key-for-tests")
os.environ.setdefault("LLM_PROVIDER", "gemini")
os.environ.setdefault("ALLOWED_USER_IDS", "12345")
os.environ.setdefault("DATABASE_PATH", os.path.join(tempfile.mkdtemp(), "companion.db"))
os.environ.setdefault("VIDEO_POLL_INTERVAL_SECONDS", "0")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_state.db")


@pytest.fixture
def state_db(tmp_db_path):
    """Return a StateDB instance backed by a temp file."""
    from src.data.db import StateDB
    return StateDB(db_path=tmp_db_path)


@pytest.fixture
def registry(state_db):
    """Return a StoreRegistry sharing the temp StateDB."""
    from src.data.store import StoreRegistry
    return StoreRegistry(db=state_db)


@pytest.fixture
def store(registry):
    """Return the AppStore of the authorized test user."""
    return registry.get(12345)


@pytest.fixture(autouse=True)
def online():
    """Every test starts online; tests that go offline are restored afterwards."""
    from src.core.connectivity import connectivity
    connectivity.set_online(True)
    yield connectivity
    connectivity.set_online(True)
