"""Bounded breadth-first search for Docker Compose files."""
import fnmatch
import os
import re
import time
from collections import deque
from pathlib import Path
from typing import Iterable, Iterator, List, NamedTuple, Optional

from composepilot.core.logger import get_logger
from composepilot.models.discovery import TraversalWarning

logger = get_logger(__name__)

DEFAULT_MAX_DEPTH = 6

# Directory names never descended into
DEFAULT_EXCLUDES = (
    'node_modules',
    'bower_components',
    'vendor',
    '.venv',
    'venv',
    '__pycache__',
    '.tox',
    '.git',
    '.hg',
    '.svn',
    'dist',
    'build',
    'target',
    'out',
    '.next',
    '.cache',
)

# docker-compose.yml, compose.yaml, docker-compose.prod.yml, compose.override.dev.yaml ...
COMPOSE_FILE_RE = re.compile(
    r'^(?:docker-compose|compose)(?:\.[A-Za-z0-9_-]+)*\.ya?ml$',
    re.IGNORECASE,
)


# Names `docker compose` picks up without -f, in its lookup order
DEFAULT_COMPOSE_NAMES = (
    'compose.yaml',
    'compose.yml',
    'docker-compose.yaml',
    'docker-compose.yml',
)

FALLBACK_COMPOSE_NAME = 'docker-compose.yml'


class Candidate(NamedTuple):
    path: Path
    depth: int


def is_compose_filename(name: str) -> bool:
    """Return True if ``name`` follows the compose naming convention."""
    return bool(COMPOSE_FILE_RE.match(name))


def resolve_compose_file(directory: Path) -> Optional[Path]:
    """The file `docker compose` would load from ``directory`` without -f."""
    directory = Path(directory)
    for name in DEFAULT_COMPOSE_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def find_default_compose_file(directory: Path) -> Path:
    """Compose file used when none is given on the command line.

    Same choice as `docker compose`; ``docker-compose.yml`` when none exists.
    """
    return resolve_compose_file(directory) or Path(directory) / FALLBACK_COMPOSE_NAME


class PathScanner:
    """Walk a directory tree and collect compose file candidates.

    Breadth-first, so shallower files are always emitted before deeper ones.
    Entries of each directory are visited in sorted order, which makes the
    output order stable for an unchanged tree.
    """

    def __init__(self, exclude_patterns: Optional[Iterable[str]] = None):
        self.exclude_patterns = list(
            DEFAULT_EXCLUDES if exclude_patterns is None else exclude_patterns
        )
        self.warnings: List[TraversalWarning] = []
        self.timed_out = False

    def scan(
        self,
        root: Path,
        max_depth: int = DEFAULT_MAX_DEPTH,
        exclude_patterns: Optional[Iterable[str]] = None,
    ) -> List[Path]:
        """Return every compose candidate below ``root`` up to ``max_depth``.

        Args:
            root: Directory to start from (depth 0)
            max_depth: Deepest directory level to inspect
            exclude_patterns: Overrides the scanner's exclusion list

        Returns:
            Candidate paths, shallowest first

        Raises:
            FileNotFoundError: If root does not exist
            NotADirectoryError: If root is not a directory
        """
        return [c.path for c in self.iter_candidates(root, max_depth, exclude_patterns)]

    def iter_candidates(
        self,
        root: Path,
        max_depth: int = DEFAULT_MAX_DEPTH,
        exclude_patterns: Optional[Iterable[str]] = None,
        deadline: Optional[float] = None,
    ) -> Iterator[Candidate]:
        """Yield candidates incrementally as the walk proceeds.

        Args:
            deadline: ``time.monotonic()`` value after which no further
                directory is read; ``timed_out`` is set when it cuts the walk short
        """
        root = Path(root).resolve()
        if not root.exists():
            raise FileNotFoundError(f"Scan root not found: {root}")
        if not root.is_dir():
            raise NotADirectoryError(f"Scan root is not a directory: {root}")

        patterns = self.exclude_patterns if exclude_patterns is None else list(exclude_patterns)
        self.warnings = []
        self.timed_out = False

        queue = deque([(root, 0)])
        while queue:
            if deadline is not None and time.monotonic() >= deadline:
                self.timed_out = True
                logger.warning(f"Scan deadline reached; {len(queue)} director(ies) under {root} not read")
                return
            directory, depth = queue.popleft()

            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except PermissionError as e:
                self._warn(directory, f"permission denied: {e.strerror or e}")
                continue
            except OSError as e:
                self._warn(directory, f"unreadable: {e.strerror or e}")
                continue

            for entry in entries:
                try:
                    if entry.is_dir(follow_symlinks=False):
                        if depth + 1 > max_depth:
                            continue
                        child = Path(entry.path)
                        if self._is_excluded(child, root, patterns):
                            logger.debug(f"Skipping excluded directory: {child}")
                            continue
                        queue.append((child, depth + 1))
                    elif entry.is_file() and is_compose_filename(entry.name):
                        yield Candidate(Path(entry.path), depth)
                except OSError as e:
                    self._warn(Path(entry.path), f"cannot stat: {e.strerror or e}")

    def _is_excluded(self, directory: Path, root: Path, patterns: List[str]) -> bool:
        name = directory.name
        relative = directory.relative_to(root).as_posix()
        for pattern in patterns:
            target = relative if '/' in pattern else name
            if fnmatch.fnmatch(target, pattern):
                return True
        return False

    def _warn(self, path: Path, message: str) -> None:
        warning = TraversalWarning(path=path, message=message)
        self.warnings.append(warning)
        logger.warning(f"Skipping {path}: {message}")
