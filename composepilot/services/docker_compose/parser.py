"""
Docker Compose file parser.

Loads a compose file as a generic YAML tree and extracts a normalized
summary per service:
- Image or build context
- Port mappings (short and long syntax)
- depends_on (list or mapping with conditions)
- Referenced networks and volumes

Whole-file problems come back as a ParseFailure value. Broken individual
entries are skipped and recorded as ParseIssues so the rest of the file is
still read.
"""

from pathlib import Path
from typing import Any, List, Optional, Union

import yaml

from composepilot.core.logger import get_logger
from composepilot.models.compose import (
    ComposeDocument,
    Dependency,
    FailureKind,
    ParseFailure,
    ParseIssue,
    ParseResult,
    PortMapping,
    PortSpec,
    ServiceSummary,
    ShorthandPort,
    StructuredPort,
)

logger = get_logger(__name__)


class _EntryError(ValueError):
    """A service entry that cannot be normalized at all."""


class ComposeFileParser:
    """
    Parses Docker Compose files into ComposeDocument summaries.

    Supports:
    - Any compose schema version (the ``version`` key is informational)
    - Short (``"8080:80"``) and long (``target``/``published``) port syntax
    - List and mapping forms of depends_on, networks and volumes
    """

    def parse(self, path: Union[str, Path]) -> ParseResult:
        """
        Parse a compose file.

        Args:
            path: Compose file to read

        Returns:
            ComposeDocument on success, ParseFailure when the file contributes
            no services (unreadable, empty, invalid YAML, not a mapping, or
            without a services section)
        """
        path = Path(path)
        try:
            raw = path.read_bytes()
        except OSError as e:
            return self._failure(path, FailureKind.UNREADABLE, f"cannot read file: {e.strerror or e}")

        try:
            text = raw.decode('utf-8-sig')
        except UnicodeDecodeError as e:
            return self._failure(path, FailureKind.SYNTAX, f"not valid UTF-8: {e}")

        return self.parse_text(text, path)

    def parse_text(self, text: str, path: Union[str, Path] = "<string>") -> ParseResult:
        """Parse compose content that is already in memory."""
        path = Path(path)
        if not text.strip():
            return self._failure(path, FailureKind.EMPTY, "file is empty")

        try:
            compose = yaml.safe_load(text)
        except yaml.YAMLError as e:
            detail = str(e).splitlines()[0] if str(e) else type(e).__name__
            return self._failure(path, FailureKind.SYNTAX, f"invalid YAML: {detail}")

        return self.parse_dict(compose, path)

    def parse_dict(self, compose: Any, path: Union[str, Path] = "<string>") -> ParseResult:
        """
        Normalize an already-loaded compose tree.

        Args:
            compose: Result of yaml.safe_load / json.load
            path: Where the tree came from (for messages)
        """
        path = Path(path)
        if compose is None:
            return self._failure(path, FailureKind.EMPTY, "document is empty")
        if not isinstance(compose, dict):
            return self._failure(
                path,
                FailureKind.NOT_MAPPING,
                f"top-level document is a {type(compose).__name__}, expected a mapping",
            )

        services = compose.get('services')
        if services is None:
            return self._failure(path, FailureKind.NO_SERVICES, "no services section found")
        if not isinstance(services, dict):
            return self._failure(
                path,
                FailureKind.NO_SERVICES,
                f"services section is a {type(services).__name__}, expected a mapping",
            )

        document = ComposeDocument(
            path=path,
            version=str(compose['version']) if compose.get('version') is not None else None,
            networks=self._top_level_names(compose.get('networks')),
            volumes=self._top_level_names(compose.get('volumes')),
        )

        for name, config in services.items():
            name = str(name)
            try:
                document.services.append(self._parse_service(name, config, document.issues))
            except _EntryError as e:
                document.issues.append(ParseIssue(service=name, key='service', message=str(e)))
                logger.debug(f"{path}: skipped service '{name}': {e}")

        return document

    def _failure(self, path: Path, kind: FailureKind, message: str) -> ParseFailure:
        logger.debug(f"Parse failure for {path}: {message}")
        return ParseFailure(path=path, kind=kind, message=message)

    def _top_level_names(self, section: Any) -> List[str]:
        if isinstance(section, dict):
            return [str(key) for key in section]
        return []

    def _parse_service(self, name: str, config: Any, issues: List[ParseIssue]) -> ServiceSummary:
        """Extract a ServiceSummary from a single service entry."""
        if not isinstance(config, dict):
            raise _EntryError(
                f"service definition is a {type(config).__name__ if config is not None else 'null'}, "
                "expected a mapping"
            )

        def issue(key: str, message: str):
            issues.append(ParseIssue(service=name, key=key, message=message))

        summary = ServiceSummary(name=name)

        image = config.get('image')
        if image is not None:
            if isinstance(image, (dict, list)):
                issue('image', "image must be a string")
            else:
                summary.image = str(image)

        build = config.get('build')
        if build is not None:
            if isinstance(build, str):
                summary.build_context = build
            elif isinstance(build, dict):
                summary.build_context = str(build.get('context') or '.')
            else:
                issue('build', "build must be a string or a mapping")

        summary.ports = self._parse_ports(config.get('ports'), issue)
        summary.depends_on = self._parse_depends_on(config.get('depends_on'), issue)
        summary.networks = self._parse_names(config.get('networks'), 'networks', issue)
        summary.volumes = self._parse_volumes(config.get('volumes'), issue)

        healthcheck = config.get('healthcheck')
        summary.has_healthcheck = isinstance(healthcheck, dict) and not healthcheck.get('disable', False)

        restart = config.get('restart')
        if isinstance(restart, str):
            summary.restart = restart

        environment = config.get('environment')
        if isinstance(environment, (list, dict)):
            summary.environment_count = len(environment)

        return summary

    def _decode_port(self, entry: Any) -> PortSpec:
        """Map one raw ports entry onto the PortSpec union."""
        if isinstance(entry, bool):
            raise ValueError(f"invalid port entry {entry!r}")
        if isinstance(entry, (str, int)):
            return ShorthandPort(str(entry))
        if isinstance(entry, dict):
            return StructuredPort(
                target=entry.get('target'),
                published=entry.get('published'),
                protocol=entry.get('protocol'),
                host_ip=entry.get('host_ip'),
            )
        raise ValueError(f"unsupported port entry of type {type(entry).__name__}")

    def _parse_ports(self, ports: Any, issue) -> List[PortMapping]:
        if ports is None:
            return []
        if not isinstance(ports, list):
            issue('ports', "ports must be a list")
            return []

        mappings = []
        for entry in ports:
            try:
                mappings.append(self._decode_port(entry).normalize())
            except ValueError as e:
                issue('ports', f"{entry!r}: {e}")
        return mappings

    def _parse_depends_on(self, depends_on: Any, issue) -> List[Dependency]:
        if depends_on is None:
            return []

        dependencies: List[Dependency] = []
        seen = set()

        def add(name: Any, condition: Optional[str] = None):
            if not isinstance(name, str) or not name:
                issue('depends_on', f"invalid dependency name {name!r}")
                return
            if name not in seen:
                seen.add(name)
                dependencies.append(Dependency(name=name, condition=condition))

        if isinstance(depends_on, list):
            for name in depends_on:
                add(name)
        elif isinstance(depends_on, dict):
            for name, options in depends_on.items():
                condition = None
                if isinstance(options, dict) and options.get('condition') is not None:
                    condition = str(options['condition'])
                add(str(name), condition)
        else:
            issue('depends_on', "depends_on must be a list or a mapping")

        return dependencies

    def _parse_names(self, section: Any, key: str, issue) -> List[str]:
        """Names from a list-or-mapping section, order preserved, no duplicates."""
        if section is None:
            return []
        if isinstance(section, dict):
            raw = list(section.keys())
        elif isinstance(section, list):
            raw = section
        else:
            issue(key, f"{key} must be a list or a mapping")
            return []

        names: List[str] = []
        for item in raw:
            if isinstance(item, (dict, list)) or item is None:
                issue(key, f"invalid {key} entry {item!r}")
                continue
            if str(item) not in names:
                names.append(str(item))
        return names

    def _parse_volumes(self, volumes: Any, issue) -> List[str]:
        """Volume sources referenced by a service (named volumes or host paths)."""
        if volumes is None:
            return []
        if not isinstance(volumes, list):
            issue('volumes', "volumes must be a list")
            return []

        sources: List[str] = []
        for volume in volumes:
            source = None
            if isinstance(volume, str):
                # Short format: "name:/container[:mode]"; a bare path is anonymous
                if ':' in volume:
                    source = volume.split(':', 1)[0]
            elif isinstance(volume, dict):
                if volume.get('source'):
                    source = str(volume['source'])
            else:
                issue('volumes', f"invalid volume entry {volume!r}")
                continue

            if source and source not in sources:
                sources.append(source)
        return sources
