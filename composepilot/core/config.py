"""Compose Pilot runtime settings."""
import os
from dataclasses import dataclass, field
from typing import Optional


def _default_workers() -> int:
    return min(32, (os.cpu_count() or 1) * 2)


@dataclass
class PilotSettings:
    """Runtime settings for discovery and synthesis.

    Attributes:
        max_depth: Deepest directory level scanned below the root (default: 6)
        workers: Size of the parsing worker pool (default: 2x CPU cores, max 32)
        discovery_timeout: Seconds to wait for candidate parsing (default: 30)
        lock_timeout: Seconds to wait for the configuration write lock (default: 10)
    """

    max_depth: int = 6
    workers: int = field(default_factory=_default_workers)
    discovery_timeout: float = 30.0
    lock_timeout: int = 10

    @classmethod
    def from_env(cls) -> "PilotSettings":
        """Create settings from environment variables.

        Environment variables:
            COMPOSEPILOT_MAX_DEPTH: Maximum traversal depth
            COMPOSEPILOT_WORKERS: Parser pool size
            COMPOSEPILOT_DISCOVERY_TIMEOUT: Discovery timeout in seconds
            COMPOSEPILOT_LOCK_TIMEOUT: Config lock timeout in seconds

        Returns:
            PilotSettings instance with values from environment or defaults
        """
        return cls(
            max_depth=int(os.getenv("COMPOSEPILOT_MAX_DEPTH", cls.max_depth)),
            workers=max(1, int(os.getenv("COMPOSEPILOT_WORKERS", _default_workers()))),
            discovery_timeout=float(
                os.getenv("COMPOSEPILOT_DISCOVERY_TIMEOUT", cls.discovery_timeout)
            ),
            lock_timeout=int(os.getenv("COMPOSEPILOT_LOCK_TIMEOUT", cls.lock_timeout)),
        )


# Global settings instance (can be overridden)
_settings: Optional[PilotSettings] = None


def get_settings() -> PilotSettings:
    """Get the global Compose Pilot settings.

    Returns:
        PilotSettings instance (creates from environment if not set)
    """
    global _settings
    if _settings is None:
        _settings = PilotSettings.from_env()
    return _settings


def set_settings(settings: Optional[PilotSettings]):
    """Set the global Compose Pilot settings.

    Args:
        settings: PilotSettings instance to use globally, or None to
            re-read the environment on next access
    """
    global _settings
    _settings = settings
