"""Tests for locked configuration refresh and edits."""
import threading

import pytest
import yaml

from composepilot.config.manager import ProjectConfigManager
from composepilot.core.config import PilotSettings, set_settings
from composepilot.core.lock import ConfigLock, LockError
from composepilot.discovery.engine import NoCandidatesFound


@pytest.fixture
def manager(tmp_path):
    return ProjectConfigManager(tmp_path / "composepilot.yml")


def test_first_refresh_writes_config(manager, scenario_a):
    outcome = manager.refresh(scenario_a)

    assert outcome.saved is True
    assert outcome.report.created is True
    assert outcome.winner.relative_path == "docker-compose.yml"
    assert manager.config_path.exists()

    config = manager.load()
    assert config.services["web"].port == 8080
    assert config.services["db"].port is None
    assert config.compose_invocation == "docker compose"
    assert config.project_name == scenario_a.name


def test_second_refresh_is_a_no_op(manager, scenario_a):
    manager.refresh(scenario_a)
    before = manager.config_path.read_text()

    outcome = manager.refresh(scenario_a)

    assert outcome.saved is False
    assert outcome.report.changed is False
    assert manager.config_path.read_text() == before


def test_refresh_picks_root_file(manager, scenario_b):
    outcome = manager.refresh(scenario_b)

    assert outcome.winner.relative_path == "docker-compose.yml"
    assert set(outcome.config.services) == {"api"}
    assert outcome.config.services["api"].port == 3000


def test_refresh_names_winner_docker_would_not_pick(manager, write_file, tmp_path):
    write_file("compose.yaml", "services:\n  web:\n    image: nginx\n")
    write_file("docker-compose.yml", "services:\n  web:\n    image: nginx\n  db:\n    image: postgres\n")

    outcome = manager.refresh(tmp_path)

    assert outcome.winner.relative_path == "docker-compose.yml"
    config = manager.load()
    assert config.compose_invocation == "docker compose -f docker-compose.yml"
    assert config.compose_file == "docker-compose.yml"


def test_refresh_keeps_user_edits(manager, scenario_a):
    manager.refresh(scenario_a)
    manager.set_service("web", port=9000, description="frontend")

    outcome = manager.refresh(scenario_a)

    assert outcome.config.services["web"].port == 9000
    assert outcome.report.preserved == ["web"]


def test_refresh_discard_existing(manager, scenario_a):
    manager.refresh(scenario_a)
    manager.set_service("web", port=9000)

    outcome = manager.refresh(scenario_a, discard_existing=True)

    assert outcome.report.created is True
    assert outcome.config.services["web"].port == 8080


def test_refresh_without_compose_files(manager, tmp_path):
    (tmp_path / "src").mkdir()

    with pytest.raises(NoCandidatesFound):
        manager.refresh(tmp_path)
    assert not manager.config_path.exists()


def test_refresh_fails_while_locked(manager, scenario_a):
    with ConfigLock(manager.config_path):
        with pytest.raises(LockError):
            manager.refresh(scenario_a)


def test_concurrent_refreshes_lose_nothing(tmp_path, write_file):
    write_file("docker-compose.yml", """
        services:
          web:
            image: nginx
            ports: ["8080:80"]
          db:
            image: postgres
    """)
    config_path = tmp_path / "composepilot.yml"
    errors = []

    def run():
        try:
            ProjectConfigManager(config_path).refresh(tmp_path)
        except LockError as e:
            errors.append(e)

    set_settings(PilotSettings(workers=2, lock_timeout=10))

    threads = [threading.Thread(target=run) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert errors == []
    data = yaml.safe_load(config_path.read_text())
    assert set(data["services"]) == {"web", "db"}


def test_set_service_creates_user_entry(manager, scenario_a):
    manager.refresh(scenario_a)

    config = manager.set_service("proxy", port=443, restart="always")

    entry = config.services["proxy"]
    assert entry.port == 443
    assert entry.restart == "always"
    assert entry.detected is False
    assert manager.load().services["proxy"].port == 443


def test_set_service_merges_fields(manager, scenario_a):
    manager.refresh(scenario_a)

    manager.set_service("db", description="primary database", port=None)
    entry = manager.load().services["db"]

    assert entry.description == "primary database"
    assert entry.detected is False
    assert entry.backup_enabled is True


def test_set_service_requires_config(manager):
    with pytest.raises(FileNotFoundError):
        manager.set_service("web", port=80)


def test_remove_service(manager, scenario_a):
    manager.refresh(scenario_a)

    config = manager.remove_service("db")

    assert "db" not in config.services
    assert "db" not in manager.load().services


def test_remove_unknown_service(manager, scenario_a):
    manager.refresh(scenario_a)

    with pytest.raises(KeyError):
        manager.remove_service("nope")
