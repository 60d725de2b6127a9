"""Locked read-merge-write cycles against a project configuration file."""
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from composepilot.core.config import PilotSettings, get_settings
from composepilot.core.lock import synthesis_lock
from composepilot.core.logger import get_logger
from composepilot.config.store import ConfigStore
from composepilot.discovery.engine import ComposeDiscovery, summaries_for
from composepilot.models.config import ProjectConfiguration, ServiceEntry
from composepilot.models.discovery import DiscoveredFile, DiscoveryResult
from composepilot.services.docker_compose.synthesizer import ConfigSynthesizer, SynthesisReport

logger = get_logger(__name__)


@dataclass
class RefreshOutcome:
    """Result of one discovery + synthesis run."""
    config: ProjectConfiguration
    report: SynthesisReport
    discovery: DiscoveryResult
    winner: DiscoveredFile
    saved: bool


class ProjectConfigManager:
    """Owns persistence of one project configuration file.

    Every mutation runs load -> merge -> save under the configuration's
    lock, so overlapping refreshes are applied one after the other.
    """

    def __init__(
        self,
        config_path: Path,
        discovery: Optional[ComposeDiscovery] = None,
        synthesizer: Optional[ConfigSynthesizer] = None,
        settings: Optional[PilotSettings] = None,
        store: Optional[ConfigStore] = None,
    ):
        self.config_path = Path(config_path)
        self.settings = settings or get_settings()
        self.discovery = discovery or ComposeDiscovery(settings=self.settings)
        self.synthesizer = synthesizer or ConfigSynthesizer()
        self.store = store or ConfigStore(self.config_path)

    def load(self) -> Optional[ProjectConfiguration]:
        return self.store.load()

    def refresh(
        self,
        root: Path,
        max_depth: Optional[int] = None,
        exclude_patterns: Optional[Iterable[str]] = None,
        discard_existing: bool = False,
    ) -> RefreshOutcome:
        """Scan ``root`` and merge the best compose file into the configuration.

        Args:
            root: Project directory to scan
            max_depth: Traversal depth limit
            exclude_patterns: Directory patterns to skip
            discard_existing: Start from an empty configuration

        Raises:
            NoCandidatesFound: If no compose file was found
            ConfigPersistenceError: If the configuration cannot be written
            LockError: If another update holds the lock for too long
        """
        result = self.discovery.discover(
            root,
            max_depth=max_depth,
            exclude_patterns=exclude_patterns,
            require_candidates=True,
        )
        winner = result.winner
        summaries = summaries_for(result, winner)
        logger.info(f"Using compose file: {winner.relative_path}")

        with synthesis_lock(self.config_path, timeout=self.settings.lock_timeout):
            existing = None if discard_existing else self.store.load()
            config, report = self.synthesizer.synthesize_with_report(winner, summaries, existing)

            saved = False
            if existing is None or config != existing:
                self.store.save(config)
                saved = True

        return RefreshOutcome(
            config=config,
            report=report,
            discovery=result,
            winner=winner,
            saved=saved,
        )

    def set_service(self, name: str, **fields) -> ProjectConfiguration:
        """Create or hand-edit a service entry.

        The entry is stored without the ``detected`` flag, so later scans
        leave it alone.

        Raises:
            FileNotFoundError: If there is no configuration yet
        """
        updates = {key: value for key, value in fields.items() if value is not None}

        with synthesis_lock(self.config_path, timeout=self.settings.lock_timeout):
            config = self._require_config()
            current = config.services.get(name)
            data = current.model_dump() if current is not None else {}
            data.update(updates)
            data['detected'] = False
            config.services[name] = ServiceEntry.model_validate(data)
            self.store.save(config)

        logger.debug(f"Service '{name}' saved as user-authored entry")
        return config

    def remove_service(self, name: str) -> ProjectConfiguration:
        """Delete a service entry.

        Raises:
            FileNotFoundError: If there is no configuration yet
            KeyError: If the service is not configured
        """
        with synthesis_lock(self.config_path, timeout=self.settings.lock_timeout):
            config = self._require_config()
            if name not in config.services:
                raise KeyError(f"Service not found: {name}")
            del config.services[name]
            self.store.save(config)
        return config

    def _require_config(self) -> ProjectConfiguration:
        config = self.store.load()
        if config is None:
            raise FileNotFoundError(
                f"Config file not found: {self.config_path}. Run 'dpilot config init' first."
            )
        return config
