"""Compose discovery pipeline: scan, parse and classify in parallel, then rank."""
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime
from pathlib import Path
from typing import Dict, Iterable, Optional, Tuple

from composepilot.core.config import PilotSettings, get_settings
from composepilot.core.logger import get_logger
from composepilot.discovery.path_scanner import Candidate, PathScanner
from composepilot.discovery.ranker import CandidateRanker
from composepilot.discovery.variants import VariantClassifier
from composepilot.models.compose import ComposeDocument, FailureKind, ParseFailure, ParseResult
from composepilot.models.discovery import DiscoveredFile, DiscoveryResult, Environment
from composepilot.services.docker_compose.parser import ComposeFileParser

logger = get_logger(__name__)


class NoCandidatesFound(Exception):
    """Raised when a full traversal found no compose file to work with."""

    def __init__(self, root: Path, max_depth: Optional[int] = None):
        self.root = Path(root)
        self.max_depth = max_depth
        depth = f" (searched {max_depth} levels deep)" if max_depth is not None else ""
        super().__init__(f"No docker-compose files found in {self.root} or its subdirectories{depth}")


class ComposeDiscovery:
    """Find, parse and rank compose files below a project root.

    Parsing runs on a bounded thread pool. Each candidate is built on its own,
    so completion order does not matter: the ranker imposes the final order.
    """

    def __init__(
        self,
        settings: Optional[PilotSettings] = None,
        scanner: Optional[PathScanner] = None,
        parser: Optional[ComposeFileParser] = None,
        classifier: Optional[VariantClassifier] = None,
        ranker: Optional[CandidateRanker] = None,
    ):
        self.settings = settings or get_settings()
        self.scanner = scanner or PathScanner()
        self.parser = parser or ComposeFileParser()
        self.classifier = classifier or VariantClassifier()
        self.ranker = ranker or CandidateRanker()

    def discover(
        self,
        root: Path,
        max_depth: Optional[int] = None,
        exclude_patterns: Optional[Iterable[str]] = None,
        include_variants: bool = True,
        include_empty: bool = False,
        require_candidates: bool = False,
    ) -> DiscoveryResult:
        """
        Run a full discovery over ``root``.

        Args:
            root: Project directory to search
            max_depth: Traversal depth limit (defaults to settings.max_depth)
            exclude_patterns: Directory patterns to skip (defaults to the scanner's)
            include_variants: Keep files carrying an environment token
            include_empty: Keep zero-byte files
            require_candidates: Raise NoCandidatesFound when nothing is left

        Returns:
            DiscoveryResult with files ranked best-first

        Raises:
            NoCandidatesFound: Only when require_candidates is set
        """
        root = Path(root).resolve()
        depth_limit = self.settings.max_depth if max_depth is None else max_depth
        result = DiscoveryResult(root=root)
        deadline = time.monotonic() + self.settings.discovery_timeout

        executor = ThreadPoolExecutor(
            max_workers=max(1, self.settings.workers),
            thread_name_prefix="compose-parse",
        )
        futures: Dict[Future, Candidate] = {}
        try:
            candidates = self.scanner.iter_candidates(
                root, depth_limit, exclude_patterns, deadline=deadline
            )
            for candidate in candidates:
                futures[executor.submit(self._inspect, candidate, root, include_empty)] = candidate
            result.timed_out = self.scanner.timed_out

            pending = set(futures)
            while pending:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                done, pending = wait(pending, timeout=remaining, return_when=FIRST_COMPLETED)
                for future in done:
                    self._collect(future, futures[future].path, result)

            finished = {future for future in pending if future.done()}
            for future in finished:
                self._collect(future, futures[future].path, result)
            pending -= finished

            if pending:
                result.timed_out = True
                logger.warning(
                    f"Discovery timed out after {self.settings.discovery_timeout}s; "
                    f"{len(pending)} candidate(s) listed without parsing"
                )
                for future in sorted(pending, key=lambda f: futures[f].path):
                    future.cancel()
                    inspected = self._inspect(futures[future], root, include_empty, parse=False)
                    if inspected is not None:
                        self._record(inspected, result)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        result.warnings = list(self.scanner.warnings)

        if not include_variants:
            result.files = [f for f in result.files if f.environment is Environment.NONE]

        result.files = self.ranker.rank(result.files)
        logger.debug(f"Discovered {len(result.files)} compose file(s) under {root}")

        if require_candidates and not result.files:
            raise NoCandidatesFound(root, depth_limit)

        return result

    def _collect(self, future: Future, path: Path, result: DiscoveryResult) -> None:
        try:
            inspected = future.result()
        except Exception as e:
            logger.warning(f"Failed to inspect {path}: {e}")
            return
        if inspected is not None:
            self._record(inspected, result)

    def _record(self, inspected: Tuple[DiscoveredFile, ParseResult], result: DiscoveryResult) -> None:
        discovered, parsed = inspected
        result.files.append(discovered)
        result.documents[discovered.path] = parsed

    def _inspect(
        self,
        candidate: Candidate,
        root: Path,
        include_empty: bool,
        parse: bool = True,
    ) -> Optional[Tuple[DiscoveredFile, ParseResult]]:
        """Build the DiscoveredFile for one candidate (runs on a worker).

        With ``parse=False`` the file is only stat'ed and recorded as not parsed.
        """
        path = candidate.path
        try:
            stat = path.stat()
        except OSError as e:
            logger.warning(f"Skipping {path}: {e.strerror or e}")
            return None

        if stat.st_size == 0 and not include_empty:
            logger.debug(f"Skipping empty compose file: {path}")
            return None

        relative = path.relative_to(root)
        environment, is_root = self.classifier.classify(path, relative)
        if parse:
            parsed = self.parser.parse(path)
        else:
            parsed = ParseFailure(path, FailureKind.NOT_PARSED, "not parsed before the discovery timeout")

        if isinstance(parsed, ParseFailure):
            if parsed.kind is not FailureKind.NOT_PARSED:
                logger.warning(f"Could not parse {relative.as_posix()}: {parsed.message}")
            services: Tuple[str, ...] = ()
            parse_error = parsed.message
        else:
            services = tuple(parsed.service_names)
            parse_error = None

        discovered = DiscoveredFile(
            path=path,
            relative_path=relative.as_posix(),
            directory=path.parent,
            depth=candidate.depth,
            size_bytes=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime),
            environment=environment,
            is_root_candidate=is_root,
            services=services,
            parse_error=parse_error,
        )
        return discovered, parsed


def summaries_for(result: DiscoveryResult, discovered: DiscoveredFile):
    """Service summaries parsed for one discovered file (empty on failure)."""
    parsed = result.documents.get(discovered.path)
    if isinstance(parsed, ComposeDocument):
        return list(parsed.services)
    return []
