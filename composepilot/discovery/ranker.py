"""Deterministic prioritization of compose candidates."""
from dataclasses import replace
from typing import Iterable, List, Tuple

from composepilot.models.discovery import DiscoveredFile

# Score layout, most significant first. Each band is wider than everything
# below it, so the score orders candidates exactly like the sort key does.
ROOT_WEIGHT = 10_000_000
MAIN_FILE_WEIGHT = 1_000_000
DEPTH_WEIGHT = 10_000
DEPTH_SLOTS = 99
MAX_COUNTED_SERVICES = 9_999


def priority_score(candidate: DiscoveredFile) -> int:
    """Integer priority for display and JSON output; higher wins."""
    score = 0
    if candidate.is_root_candidate:
        score += ROOT_WEIGHT
    if candidate.is_main_file:
        score += MAIN_FILE_WEIGHT
    score += max(0, DEPTH_SLOTS - candidate.depth) * DEPTH_WEIGHT
    score += min(candidate.service_count, MAX_COUNTED_SERVICES)
    return score


def sort_key(candidate: DiscoveredFile) -> Tuple:
    """Total order: root, main file, shallower, more services, then path."""
    return (
        not candidate.is_root_candidate,
        not candidate.is_main_file,
        candidate.depth,
        -candidate.service_count,
        candidate.path.as_posix(),
    )


class CandidateRanker:
    """Order discovered files so the best compose file comes first.

    Rubric, strongest first:
    1. Files at the scan root beat nested files at any depth.
    2. Files without an environment token beat variants.
    3. Shallower beats deeper.
    4. More services beats fewer.
    5. Lexicographic path order, so re-runs pick the same winner.

    The result does not depend on the input order.
    """

    def rank(self, candidates: Iterable[DiscoveredFile]) -> List[DiscoveredFile]:
        scored = [replace(c, priority_score=priority_score(c)) for c in candidates]
        return sorted(scored, key=sort_key)
