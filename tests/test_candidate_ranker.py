"""Tests for candidate ranking."""
import itertools
import random
from datetime import datetime
from pathlib import Path

import pytest

from composepilot.discovery.ranker import CandidateRanker, priority_score
from composepilot.models.discovery import DiscoveredFile, Environment

ROOT = Path("/project")


def candidate(relative: str, services: int = 1, environment: Environment = Environment.NONE) -> DiscoveredFile:
    path = ROOT / relative
    depth = len(Path(relative).parts) - 1
    return DiscoveredFile(
        path=path,
        relative_path=relative,
        directory=path.parent,
        depth=depth,
        size_bytes=100,
        modified_at=datetime(2024, 1, 1),
        environment=environment,
        is_root_candidate=depth == 0,
        services=tuple(f"svc{i}" for i in range(services)),
    )


@pytest.fixture
def ranker():
    return CandidateRanker()


def order(ranked):
    return [c.relative_path for c in ranked]


def test_root_beats_nested_regardless_of_services(ranker):
    root = candidate("docker-compose.yml", services=1)
    nested = candidate("backend/docker-compose.dev.yml", services=12, environment=Environment.DEVELOPMENT)
    nested_main = candidate("backend/docker-compose.yml", services=12)

    assert order(ranker.rank([nested, nested_main, root]))[0] == "docker-compose.yml"


def test_root_variant_beats_nested_main(ranker):
    root_variant = candidate("docker-compose.prod.yml", environment=Environment.PRODUCTION)
    nested_main = candidate("app/docker-compose.yml", services=5)

    assert order(ranker.rank([nested_main, root_variant])) == [
        "docker-compose.prod.yml",
        "app/docker-compose.yml",
    ]


def test_main_file_beats_variant_at_same_level(ranker):
    main = candidate("compose.yml", services=1)
    dev = candidate("compose.dev.yml", services=9, environment=Environment.DEVELOPMENT)

    assert order(ranker.rank([dev, main])) == ["compose.yml", "compose.dev.yml"]


def test_shallower_beats_deeper(ranker):
    deep = candidate("a/b/docker-compose.yml", services=9)
    shallow = candidate("a/docker-compose.yml", services=1)

    assert order(ranker.rank([deep, shallow])) == ["a/docker-compose.yml", "a/b/docker-compose.yml"]


def test_more_services_breaks_ties(ranker):
    small = candidate("x/docker-compose.yml", services=1)
    big = candidate("y/docker-compose.yml", services=4)

    assert order(ranker.rank([small, big])) == ["y/docker-compose.yml", "x/docker-compose.yml"]


def test_path_is_final_tie_break(ranker):
    files = [candidate(f"{name}/compose.yml", services=2) for name in ("web", "api", "db")]

    assert order(ranker.rank(files)) == ["api/compose.yml", "db/compose.yml", "web/compose.yml"]


def test_scores_are_descending(ranker):
    files = [
        candidate("docker-compose.yml"),
        candidate("docker-compose.test.yml", environment=Environment.TEST),
        candidate("a/docker-compose.yml", services=3),
        candidate("a/b/compose.prod.yml", environment=Environment.PRODUCTION),
    ]
    ranked = ranker.rank(files)
    scores = [c.priority_score for c in ranked]

    assert scores == sorted(scores, reverse=True)
    assert len(set(scores)) == len(scores)
    assert ranked[0].priority_score == priority_score(ranked[0])


def test_rank_does_not_mutate_input(ranker):
    original = candidate("docker-compose.yml")
    ranked = ranker.rank([original])

    assert original.priority_score == 0
    assert ranked[0].priority_score > 0


def test_order_independent_of_input_order(ranker):
    files = [
        candidate("docker-compose.yml", services=2),
        candidate("docker-compose.dev.yml", services=3, environment=Environment.DEVELOPMENT),
        candidate("svc/a/compose.yml", services=1),
        candidate("svc/b/compose.yml", services=1),
        candidate("svc/compose.prod.yml", services=5, environment=Environment.PRODUCTION),
        candidate("tools/compose.yml", services=5),
    ]
    expected = order(ranker.rank(files))

    for permutation in itertools.islice(itertools.permutations(files), 200):
        assert order(ranker.rank(list(permutation))) == expected

    shuffled = files[:]
    random.Random(7).shuffle(shuffled)
    assert ranker.rank(shuffled) == ranker.rank(files)


def test_empty_input(ranker):
    assert ranker.rank([]) == []


@pytest.mark.parametrize("relative, expected", [
    ("docker-compose.override.yml", True),
    ("compose.override.yaml", True),
    ("api/docker-compose.override.yml", True),
    ("docker-compose.yml", False),
    ("docker-compose.overrides.yml", False),
    ("override/docker-compose.yml", False),
])
def test_override_flag(relative, expected):
    discovered = candidate(relative)

    assert discovered.is_override is expected
    assert discovered.to_dict()["is_override"] is expected
