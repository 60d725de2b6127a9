"""Shared test fixtures for Compose Pilot tests."""
import textwrap
from pathlib import Path

import pytest

from composepilot.core.config import PilotSettings, set_settings


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    """Deterministic settings; no leakage from the developer's environment."""
    for var in (
        "COMPOSEPILOT_MAX_DEPTH",
        "COMPOSEPILOT_WORKERS",
        "COMPOSEPILOT_DISCOVERY_TIMEOUT",
        "COMPOSEPILOT_LOCK_TIMEOUT",
        "COMPOSEPILOT_CONFIG",
    ):
        monkeypatch.delenv(var, raising=False)
    set_settings(PilotSettings(max_depth=6, workers=2, discovery_timeout=30, lock_timeout=0))
    yield
    set_settings(None)


@pytest.fixture
def write_file(tmp_path):
    """Write dedented content to a path below tmp_path, creating parents."""
    def _write(relative: str, content: str = "") -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content).lstrip("\n"))
        return path
    return _write


# Common compose documents
WEB_DB_COMPOSE = """
services:
  web:
    image: nginx:latest
    ports:
      - "8080:80"
    depends_on:
      - db
  db:
    image: postgres:16
"""

SINGLE_SERVICE_COMPOSE = """
services:
  api:
    build: ./api
    ports:
      - "3000:3000"
"""

THREE_SERVICE_COMPOSE = """
services:
  api:
    build: .
  worker:
    build: .
  cache:
    image: redis:7
"""


@pytest.fixture
def scenario_a(write_file, tmp_path):
    """Single docker-compose.yml at the root with web (8080:80) and db."""
    write_file("docker-compose.yml", WEB_DB_COMPOSE)
    return tmp_path


@pytest.fixture
def scenario_b(write_file, tmp_path):
    """Root compose file plus a nested dev variant with more services."""
    write_file("docker-compose.yml", SINGLE_SERVICE_COMPOSE)
    write_file("backend/docker-compose.dev.yml", THREE_SERVICE_COMPOSE)
    return tmp_path
