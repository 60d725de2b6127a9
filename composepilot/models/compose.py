"""Normalized view of a Docker Compose document."""
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union


_RANGE_RE = re.compile(r'^(\d+)(?:-(\d+))?$')


def _parse_port_number(value: str, what: str) -> int:
    """Parse a port or port range, returning the first port."""
    match = _RANGE_RE.match(value.strip())
    if not match:
        raise ValueError(f"invalid {what} port '{value}'")
    port = int(match.group(1))
    if not 0 < port <= 65535:
        raise ValueError(f"{what} port {port} out of range")
    return port


@dataclass(frozen=True)
class PortMapping:
    """One (host, container, protocol) binding of a service."""
    container_port: int
    host_port: Optional[int] = None  # None = dynamic host port
    protocol: str = "tcp"
    host_ip: Optional[str] = None

    def __str__(self) -> str:
        if self.host_port is None:
            return f"{self.container_port}/{self.protocol}"
        return f"{self.host_port}:{self.container_port}/{self.protocol}"


@dataclass(frozen=True)
class ShorthandPort:
    """Port given as a string or bare number, e.g. ``"127.0.0.1:8080:80/udp"``."""
    raw: str

    def normalize(self) -> PortMapping:
        spec = self.raw.strip()
        protocol = "tcp"
        if '/' in spec:
            spec, protocol = spec.rsplit('/', 1)
            protocol = protocol.lower() or "tcp"

        if not spec:
            raise ValueError(f"empty port mapping '{self.raw}'")

        parts = spec.split(':')
        if len(parts) == 1:
            return PortMapping(
                container_port=_parse_port_number(parts[0], "container"),
                protocol=protocol,
            )

        # host-ip:host-port:container-port -> rightmost two segments
        host_part, container_part = parts[-2], parts[-1]
        host_ip = ':'.join(parts[:-2]) or None
        if host_ip:
            host_ip = host_ip.strip('[]')

        return PortMapping(
            container_port=_parse_port_number(container_part, "container"),
            host_port=_parse_port_number(host_part, "host") if host_part else None,
            protocol=protocol,
            host_ip=host_ip,
        )


@dataclass(frozen=True)
class StructuredPort:
    """Long-syntax port entry (``target``/``published``/``protocol``)."""
    target: object
    published: object = None
    protocol: Optional[str] = None
    host_ip: Optional[str] = None

    def normalize(self) -> PortMapping:
        if self.target is None or isinstance(self.target, bool):
            raise ValueError("structured port without target")

        published = self.published
        if published is not None and str(published).strip() == '':
            published = None

        return PortMapping(
            container_port=_parse_port_number(str(self.target), "container"),
            host_port=_parse_port_number(str(published), "host") if published is not None else None,
            protocol=str(self.protocol or "tcp").lower(),
            host_ip=self.host_ip or None,
        )


PortSpec = Union[ShorthandPort, StructuredPort]


@dataclass(frozen=True)
class Dependency:
    """A ``depends_on`` reference; condition is kept verbatim."""
    name: str
    condition: Optional[str] = None


@dataclass
class ServiceSummary:
    """One service declared inside a compose document."""
    name: str
    image: Optional[str] = None
    build_context: Optional[str] = None
    ports: List[PortMapping] = field(default_factory=list)
    depends_on: List[Dependency] = field(default_factory=list)
    networks: List[str] = field(default_factory=list)
    volumes: List[str] = field(default_factory=list)
    has_healthcheck: bool = False
    restart: Optional[str] = None
    environment_count: int = 0

    @property
    def host_ports(self) -> List[int]:
        return [p.host_port for p in self.ports if p.host_port is not None]

    @property
    def dependency_names(self) -> List[str]:
        return [dep.name for dep in self.depends_on]

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'image': self.image,
            'build': self.build_context,
            'ports': [
                {
                    'host': p.host_port,
                    'container': p.container_port,
                    'protocol': p.protocol,
                    'host_ip': p.host_ip,
                }
                for p in self.ports
            ],
            'depends_on': {d.name: d.condition for d in self.depends_on},
            'networks': list(self.networks),
            'volumes': list(self.volumes),
            'healthcheck': self.has_healthcheck,
            'restart': self.restart,
        }


@dataclass(frozen=True)
class ParseIssue:
    """Something the parser skipped while still reading the rest of the file."""
    service: Optional[str]
    key: str
    message: str


@dataclass
class ComposeDocument:
    """Successful parse of one compose file."""
    path: Path
    services: List[ServiceSummary] = field(default_factory=list)
    networks: List[str] = field(default_factory=list)
    volumes: List[str] = field(default_factory=list)
    version: Optional[str] = None
    issues: List[ParseIssue] = field(default_factory=list)

    @property
    def service_names(self) -> List[str]:
        return [service.name for service in self.services]

    def get_service(self, name: str) -> Optional[ServiceSummary]:
        for service in self.services:
            if service.name == name:
                return service
        return None


class FailureKind(Enum):
    """Why a whole file contributed no services."""
    UNREADABLE = "unreadable"
    EMPTY = "empty"
    SYNTAX = "syntax"
    NOT_MAPPING = "not_mapping"
    NO_SERVICES = "no_services"
    NOT_PARSED = "not_parsed"  # discovery deadline passed first


@dataclass(frozen=True)
class ParseFailure:
    """A candidate that could not be read as a compose document."""
    path: Path
    kind: FailureKind
    message: str

    def __str__(self) -> str:
        return f"{self.path}: {self.message}"


ParseResult = Union[ComposeDocument, ParseFailure]
