"""Tests for the discovery pipeline."""
import threading
import time
from concurrent.futures import wait as wait_for_futures

import pytest

from composepilot.core.config import PilotSettings
from composepilot.discovery.engine import ComposeDiscovery, NoCandidatesFound, summaries_for
from composepilot.models.compose import ComposeDocument, FailureKind, ParseFailure
from composepilot.services.docker_compose.parser import ComposeFileParser
from composepilot.models.discovery import Environment


@pytest.fixture
def discovery():
    return ComposeDiscovery()


def test_single_root_file(discovery, scenario_a):
    result = discovery.discover(scenario_a)

    assert len(result.files) == 1
    winner = result.winner
    assert winner.relative_path == "docker-compose.yml"
    assert winner.is_root_candidate
    assert winner.depth == 0
    assert winner.services == ("web", "db")
    assert winner.priority_score > 0
    assert not result.timed_out

    summaries = summaries_for(result, winner)
    assert [s.name for s in summaries] == ["web", "db"]
    assert summaries[0].host_ports == [8080]


def test_root_file_wins_over_nested_variant(discovery, scenario_b):
    result = discovery.discover(scenario_b)

    assert [f.relative_path for f in result.files] == [
        "docker-compose.yml",
        "backend/docker-compose.dev.yml",
    ]
    nested = result.files[1]
    assert nested.environment is Environment.DEVELOPMENT
    assert nested.service_count == 3
    assert nested.depth == 1
    assert result.files[0].priority_score > nested.priority_score


def test_exclude_variants(discovery, scenario_b):
    result = discovery.discover(scenario_b, include_variants=False)
    assert [f.relative_path for f in result.files] == ["docker-compose.yml"]


@pytest.mark.parametrize("content, kind", [
    ("- just\n- a list\n", FailureKind.NOT_MAPPING),
    ("# nothing here\n", FailureKind.EMPTY),
    ("services:\n  web: [unclosed\n", FailureKind.SYNTAX),
])
def test_unparseable_file_contributes_no_services(discovery, write_file, tmp_path, content, kind):
    write_file("docker-compose.yml", content)
    write_file("app/compose.yml", "services:\n  api:\n    image: x\n")

    result = discovery.discover(tmp_path)

    broken = next(f for f in result.files if f.relative_path == "docker-compose.yml")
    assert broken.services == ()
    assert broken.parse_error
    assert isinstance(result.documents[broken.path], ParseFailure)
    assert result.documents[broken.path].kind is kind
    assert summaries_for(result, broken) == []

    # The broken root file still ranks first; the caller decides what to do with it
    assert result.winner is broken
    assert len(result.files) == 2


def test_zero_byte_files_skipped_by_default(discovery, write_file, tmp_path):
    write_file("docker-compose.yml", "")
    write_file("sub/compose.yml", "services:\n  a:\n    image: x\n")

    assert [f.relative_path for f in discovery.discover(tmp_path).files] == ["sub/compose.yml"]

    with_empty = discovery.discover(tmp_path, include_empty=True)
    assert [f.relative_path for f in with_empty.files] == ["docker-compose.yml", "sub/compose.yml"]
    assert with_empty.files[0].size_bytes == 0


def test_depth_limit(discovery, write_file, tmp_path):
    write_file("a/b/c/docker-compose.yml", "services:\n  a:\n    image: x\n")

    assert discovery.discover(tmp_path, max_depth=2).files == []
    assert len(discovery.discover(tmp_path, max_depth=3).files) == 1


def test_settings_depth_used_by_default(write_file, tmp_path):
    write_file("a/b/docker-compose.yml", "services:\n  a:\n    image: x\n")

    shallow = ComposeDiscovery(settings=PilotSettings(max_depth=1, workers=1))
    assert shallow.discover(tmp_path).files == []


def test_excluded_directories(discovery, write_file, tmp_path):
    write_file("node_modules/pkg/docker-compose.yml", "services:\n  a:\n    image: x\n")
    write_file("ops/docker-compose.yml", "services:\n  a:\n    image: x\n")

    assert [f.relative_path for f in discovery.discover(tmp_path).files] == ["ops/docker-compose.yml"]
    assert [
        f.relative_path for f in discovery.discover(tmp_path, exclude_patterns=["ops"]).files
    ] == ["node_modules/pkg/docker-compose.yml"]


def test_empty_tree(discovery, tmp_path):
    result = discovery.discover(tmp_path)

    assert result.files == []
    assert result.winner is None


def test_require_candidates_raises(discovery, tmp_path):
    with pytest.raises(NoCandidatesFound) as excinfo:
        discovery.discover(tmp_path, max_depth=4, require_candidates=True)

    assert excinfo.value.root == tmp_path.resolve()
    assert "4 levels" in str(excinfo.value)


def test_missing_root(discovery, tmp_path):
    with pytest.raises(FileNotFoundError):
        discovery.discover(tmp_path / "missing")


def test_deterministic_across_runs(write_file, tmp_path):
    for name in ("svc-a", "svc-b", "svc-c", "svc-d"):
        write_file(f"{name}/docker-compose.yml", "services:\n  a:\n    image: x\n")
        write_file(f"{name}/docker-compose.prod.yml", "services:\n  a:\n    image: x\n")

    runs = [
        [f.relative_path for f in ComposeDiscovery(settings=PilotSettings(workers=w)).discover(tmp_path).files]
        for w in (1, 4, 8)
    ]
    assert runs[0] == runs[1] == runs[2]
    assert runs[0][0] == "svc-a/docker-compose.yml"


def test_documents_keyed_by_path(discovery, scenario_b):
    result = discovery.discover(scenario_b)

    for discovered in result.files:
        assert isinstance(result.documents[discovered.path], ComposeDocument)
        assert discovered.path.is_absolute()


class BlockingParser(ComposeFileParser):
    """Parser that stalls on files under a ``slow`` directory until released."""

    def __init__(self):
        super().__init__()
        self.release = threading.Event()

    def parse(self, path):
        if "slow" in path.parts:
            self.release.wait(timeout=10)
        return super().parse(path)


class TestTimeout:
    """Discovery stops waiting at discovery_timeout and keeps what it found."""

    def test_slow_parse_is_listed_unparsed(self, write_file, tmp_path):
        write_file("docker-compose.yml", "services:\n  web:\n    image: nginx\n")
        write_file("slow/docker-compose.yml", "services:\n  api:\n    image: x\n")
        parser = BlockingParser()
        discovery = ComposeDiscovery(
            settings=PilotSettings(workers=2, discovery_timeout=0.3),
            parser=parser,
        )

        started = time.monotonic()
        try:
            result = discovery.discover(tmp_path)
        finally:
            parser.release.set()

        assert time.monotonic() - started < 5
        assert result.timed_out is True
        assert [f.relative_path for f in result.files] == ["docker-compose.yml", "slow/docker-compose.yml"]
        assert result.winner.services == ("web",)

        slow = result.files[1]
        assert slow.services == ()
        assert slow.parse_error
        assert result.documents[slow.path].kind is FailureKind.NOT_PARSED

    def test_zero_timeout_reads_nothing(self, write_file, tmp_path):
        write_file("docker-compose.yml", "services:\n  web:\n    image: nginx\n")
        discovery = ComposeDiscovery(settings=PilotSettings(discovery_timeout=0))

        result = discovery.discover(tmp_path)

        assert result.timed_out is True
        assert result.files == []

    def test_parse_finished_at_deadline_is_kept(self, monkeypatch, write_file, tmp_path):
        write_file("docker-compose.yml", "services:\n  web:\n    image: nginx\n")
        write_file("app/compose.yml", "services:\n  api:\n    image: x\n")

        def wait_past_deadline(futures, timeout=None, return_when=None):
            # Every parse completes, but the wait reports nothing before time runs out
            wait_for_futures(futures)
            time.sleep(timeout)
            return set(), set(futures)

        monkeypatch.setattr("composepilot.discovery.engine.wait", wait_past_deadline)
        discovery = ComposeDiscovery(settings=PilotSettings(discovery_timeout=0.2))

        result = discovery.discover(tmp_path)

        assert result.timed_out is False
        assert [f.relative_path for f in result.files] == ["docker-compose.yml", "app/compose.yml"]
        assert all(isinstance(doc, ComposeDocument) for doc in result.documents.values())
