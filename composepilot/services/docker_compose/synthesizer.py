"""
Project configuration synthesis from a discovered compose file.

Takes the winning compose candidate plus its service summaries and merges
them into a ProjectConfiguration:
- New services are added as detected entries
- Detected entries get their port and description refreshed
- User-authored entries (no ``detected`` flag) are never modified
"""

import shlex
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from composepilot.core.logger import get_logger
from composepilot.discovery.path_scanner import resolve_compose_file
from composepilot.models.compose import ServiceSummary
from composepilot.models.config import (
    DEFAULT_INVOCATION,
    RESTART_POLICIES,
    ProjectConfiguration,
    ServiceEntry,
)
from composepilot.models.discovery import DiscoveredFile

logger = get_logger(__name__)

# Service name fragments that suggest persistent data worth backing up
BACKUP_CANDIDATES = (
    'postgres', 'postgresql', 'mysql', 'mariadb', 'mongodb', 'mongo',
    'redis', 'elasticsearch', 'database', 'db',
)

FALLBACK_PROJECT_NAME = "compose-project"


@dataclass
class SynthesisReport:
    """What a synthesis run changed."""
    added: List[str] = field(default_factory=list)
    refreshed: List[str] = field(default_factory=list)
    preserved: List[str] = field(default_factory=list)  # user-authored, left alone
    created: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.created or self.added or self.refreshed)


def scan_root_of(candidate: DiscoveredFile) -> Path:
    """Directory the candidate's relative path is relative to."""
    depth = len(Path(candidate.relative_path).parts)
    return candidate.path.parents[depth - 1] if depth else candidate.directory


def compose_invocation_for(relative_path: str, scan_root: Optional[Path] = None) -> str:
    """Command prefix that targets the given compose file from the scan root.

    The bare invocation is only used when ``docker compose`` run in
    ``scan_root`` would pick that same file on its own.
    """
    if scan_root is not None and "/" not in relative_path:
        resolved = resolve_compose_file(scan_root)
        if resolved is not None and resolved.name == relative_path:
            return DEFAULT_INVOCATION
    return f"{DEFAULT_INVOCATION} -f {shlex.quote(relative_path)}"


def should_enable_backup(service_name: str) -> bool:
    lowered = service_name.lower()
    return any(candidate in lowered for candidate in BACKUP_CANDIDATES)


class ConfigSynthesizer:
    """
    Merges compose service summaries into a project configuration.

    Input:
    - The winning DiscoveredFile (for the -f path and project root)
    - ServiceSummary list parsed from it
    - The existing configuration, or None on first run

    Output:
    - A new ProjectConfiguration; the existing one is never mutated
    """

    def synthesize(
        self,
        winning_file: DiscoveredFile,
        summaries: Iterable[ServiceSummary],
        existing_config: Optional[ProjectConfiguration] = None,
    ) -> ProjectConfiguration:
        """
        Produce the merged configuration.

        Re-running against an unchanged compose file and the previous
        result returns an equal configuration.
        """
        config, _ = self.synthesize_with_report(winning_file, summaries, existing_config)
        return config

    def synthesize_with_report(
        self,
        winning_file: DiscoveredFile,
        summaries: Iterable[ServiceSummary],
        existing_config: Optional[ProjectConfiguration] = None,
    ) -> Tuple[ProjectConfiguration, SynthesisReport]:
        """Same as synthesize(), also returning which entries changed."""
        report = SynthesisReport()

        if existing_config is None:
            config = ProjectConfiguration(project_name=self._project_name(winning_file))
            report.created = True
            logger.debug(f"Creating configuration for project '{config.project_name}'")
        else:
            config = existing_config.model_copy(deep=True)

        for summary in summaries:
            entry = config.services.get(summary.name)

            if entry is None:
                config.services[summary.name] = self._new_entry(summary)
                report.added.append(summary.name)
            elif entry.detected:
                refreshed = entry.model_copy(update={
                    'port': self._first_host_port(summary),
                    'description': self._description(summary),
                })
                if refreshed != entry:
                    config.services[summary.name] = refreshed
                    report.refreshed.append(summary.name)
            else:
                logger.debug(f"Keeping user-authored entry for '{summary.name}'")
                report.preserved.append(summary.name)

        relative_path = Path(winning_file.relative_path).as_posix()
        invocation = compose_invocation_for(relative_path, scan_root_of(winning_file))
        if config.compose_invocation != invocation or config.compose_file != relative_path:
            config.compose_invocation = invocation
            config.compose_file = relative_path
            if not report.created:
                logger.info(f"Compose invocation set to: {invocation}")

        return config, report

    def _project_name(self, winning_file: DiscoveredFile) -> str:
        return scan_root_of(winning_file).name or FALLBACK_PROJECT_NAME

    def _new_entry(self, summary: ServiceSummary) -> ServiceEntry:
        restart = summary.restart if summary.restart in RESTART_POLICIES else "unless-stopped"
        return ServiceEntry(
            port=self._first_host_port(summary),
            description=self._description(summary),
            detected=True,
            health_check=summary.has_healthcheck,
            backup_enabled=should_enable_backup(summary.name),
            restart=restart,
        )

    def _first_host_port(self, summary: ServiceSummary) -> Optional[int]:
        ports = summary.host_ports
        return ports[0] if ports else None

    def _description(self, summary: ServiceSummary) -> str:
        return f"Auto-detected {summary.name} service"
