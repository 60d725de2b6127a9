"""Structural validation of a single compose file."""
from collections import OrderedDict
from pathlib import Path
from typing import List, Optional, Tuple, Union

from composepilot.core.logger import get_logger
from composepilot.models.compose import ComposeDocument, ParseFailure
from composepilot.models.validation import FindingCode, Severity, ValidationFinding
from composepilot.services.docker_compose.parser import ComposeFileParser

logger = get_logger(__name__)


class ValidationReporter:
    """Re-parse a compose file and report what is wrong with it.

    Problems are returned as ValidationFinding values; nothing here raises
    for a broken compose file.
    """

    def __init__(self, parser: Optional[ComposeFileParser] = None):
        self.parser = parser or ComposeFileParser()

    def validate(self, path: Union[str, Path]) -> List[ValidationFinding]:
        """Validate the compose file at ``path``."""
        result = self.parser.parse(path)
        findings = self.check(result)
        logger.debug(f"Validated {path}: {len(findings)} finding(s)")
        return findings

    def check(self, result: Union[ComposeDocument, ParseFailure]) -> List[ValidationFinding]:
        """Validate an already-parsed document."""
        if isinstance(result, ParseFailure):
            return [ValidationFinding(
                severity=Severity.ERROR,
                code=FindingCode.PARSE_ERROR,
                message=result.message,
            )]

        findings: List[ValidationFinding] = []
        findings.extend(self._parser_issues(result))

        if not result.services and not result.issues:
            findings.append(ValidationFinding(
                severity=Severity.WARNING,
                code=FindingCode.NO_SERVICES,
                message="services section is empty",
            ))

        findings.extend(self._missing_images(result))
        findings.extend(self._dependencies(result))
        findings.extend(self._duplicate_ports(result))
        return findings

    def _parser_issues(self, document: ComposeDocument) -> List[ValidationFinding]:
        findings = []
        for issue in document.issues:
            code = FindingCode.INVALID_PORT if issue.key == 'ports' else FindingCode.INVALID_SERVICE
            message = issue.message if issue.key == 'service' else f"{issue.key}: {issue.message}"
            findings.append(ValidationFinding(
                severity=Severity.WARNING,
                code=code,
                service_name=issue.service,
                message=message,
            ))
        return findings

    def _missing_images(self, document: ComposeDocument) -> List[ValidationFinding]:
        return [
            ValidationFinding(
                severity=Severity.ERROR,
                code=FindingCode.MISSING_IMAGE,
                service_name=service.name,
                message=f"Service '{service.name}' specifies neither image nor build",
            )
            for service in document.services
            if not service.image and not service.build_context
        ]

    def _dependencies(self, document: ComposeDocument) -> List[ValidationFinding]:
        declared = set(document.service_names)
        findings = []
        for service in document.services:
            for dependency in service.depends_on:
                if dependency.name == service.name:
                    findings.append(ValidationFinding(
                        severity=Severity.ERROR,
                        code=FindingCode.SELF_DEPENDENCY,
                        service_name=service.name,
                        message=f"Service '{service.name}' depends on itself",
                    ))
                elif dependency.name not in declared:
                    findings.append(ValidationFinding(
                        severity=Severity.ERROR,
                        code=FindingCode.DANGLING_DEPENDENCY,
                        service_name=service.name,
                        message=(
                            f"Service '{service.name}' depends on '{dependency.name}', "
                            "which is not defined in this file"
                        ),
                    ))
        return findings

    def _duplicate_ports(self, document: ComposeDocument) -> List[ValidationFinding]:
        """One finding per (host port, protocol) claimed by two or more services.

        Bindings on different specific host addresses do not collide; a
        wildcard address collides with every other binding of that port.
        Port ranges are checked by their first port only.
        """
        bindings: "OrderedDict[tuple, List[Tuple[str, Optional[str]]]]" = OrderedDict()
        for service in document.services:
            for mapping in service.ports:
                if mapping.host_port is None:
                    continue
                key = (mapping.host_port, mapping.protocol)
                bindings.setdefault(key, []).append((service.name, _bind_address(mapping.host_ip)))

        findings = []
        for (port, protocol), claims in bindings.items():
            services = _colliding_services(claims)
            if len(services) < 2:
                continue
            findings.append(ValidationFinding(
                severity=Severity.ERROR,
                code=FindingCode.DUPLICATE_PORT,
                service_name=services[1],
                message=f"Host port {port}/{protocol} is bound by {', '.join(services)}",
            ))
        return findings


def _bind_address(host_ip: Optional[str]) -> Optional[str]:
    """Host address of a binding; None means all interfaces."""
    if host_ip in (None, '', '0.0.0.0', '::'):
        return None
    return host_ip


def _colliding_services(claims: List[Tuple[str, Optional[str]]]) -> List[str]:
    """Services, in declaration order, whose binding overlaps another service's."""
    colliding = []
    for name, address in claims:
        if name in colliding:
            continue
        for other_name, other_address in claims:
            if other_name == name:
                continue
            if address is None or other_address is None or address == other_address:
                colliding.append(name)
                break
    return colliding


def has_errors(findings: List[ValidationFinding]) -> bool:
    return any(finding.is_error for finding in findings)
