"""Shared fixtures: a throwaway SQLite store and an API client bound to it."""

import pytest
from fastapi.testclient import TestClient

from dashboard.config import DEFAULTS, _merge, get_settings
from tracker.store import get_store, reset_store

ENV_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_API_URL",
    "OPENCLAW_GATEWAY_URL",
    "OPENCLAW_GATEWAY_TOKEN",
    "DB_HOST",
    "DASHBOARD_DB_PATH",
    "DASHBOARD_HOST",
    "DASHBOARD_PORT",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db_config(tmp_path):
    return {"type": "sqlite", "path": str(tmp_path / "mission_control.db")}


@pytest.fixture
def store(db_config):
    reset_store()
    yield get_store(config={"database": db_config})
    reset_store()


@pytest.fixture
def settings(db_config):
    return _merge(DEFAULTS, {"database": db_config})


@pytest.fixture
def client(store, settings):
    from dashboard.server import app

    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def gateway_settings(settings):
    settings["gateway"]["url"] = "http://gateway.test"
    settings["gateway"]["token"] = "gw-secret"
    return settings
