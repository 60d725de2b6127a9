"""Discovery models."""
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from composepilot.models.compose import ParseResult

_NAME_TOKEN_RE = re.compile(r'[.\-_]+')


class Environment(Enum):
    """Environment a compose variant targets."""
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"
    NONE = "none"


@dataclass(frozen=True)
class TraversalWarning:
    """A subtree the scanner could not enter."""
    path: Path
    message: str


@dataclass(frozen=True)
class DiscoveredFile:
    """One compose file candidate found during a scan."""
    path: Path                      # absolute, unique key
    relative_path: str              # relative to the scan root, display only
    directory: Path
    depth: int                      # 0 = scan root
    size_bytes: int
    modified_at: datetime
    environment: Environment = Environment.NONE
    is_root_candidate: bool = False
    services: Tuple[str, ...] = ()
    parse_error: Optional[str] = None
    priority_score: int = 0

    @property
    def service_count(self) -> int:
        return len(self.services)

    @property
    def is_main_file(self) -> bool:
        """True when the filename carries no environment token."""
        return self.environment is Environment.NONE

    @property
    def is_override(self) -> bool:
        """True for override files such as ``docker-compose.override.yml``.

        They usually extend a base file and are not complete on their own.
        """
        return 'override' in _NAME_TOKEN_RE.split(self.path.name.lower())

    @property
    def size_human(self) -> str:
        return format_size(self.size_bytes)

    def to_dict(self) -> dict:
        return {
            'path': str(self.path),
            'relative_path': self.relative_path,
            'directory': str(self.directory),
            'depth': self.depth,
            'size_bytes': self.size_bytes,
            'modified_at': self.modified_at.isoformat(),
            'environment': self.environment.value,
            'is_root_candidate': self.is_root_candidate,
            'is_main_file': self.is_main_file,
            'is_override': self.is_override,
            'service_count': self.service_count,
            'services': list(self.services),
            'parse_error': self.parse_error,
            'priority_score': self.priority_score,
        }


@dataclass
class DiscoveryResult:
    """Ranked outcome of one discovery run."""
    root: Path
    files: List[DiscoveredFile] = field(default_factory=list)
    warnings: List[TraversalWarning] = field(default_factory=list)
    documents: Dict[Path, ParseResult] = field(default_factory=dict)
    timed_out: bool = False

    @property
    def winner(self) -> Optional[DiscoveredFile]:
        return self.files[0] if self.files else None


def format_size(size_bytes: int) -> str:
    """Human-readable size."""
    if size_bytes == 0:
        return "0 B"
    size = float(size_bytes)
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == 'B' else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} TB"
