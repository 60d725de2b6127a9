"""Data models for Compose Pilot."""
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
from composepilot.models.config import (
    ConfigValidationError,
    ProjectConfiguration,
    ServiceEntry,
)
from composepilot.models.discovery import (
    DiscoveredFile,
    DiscoveryResult,
    Environment,
    TraversalWarning,
)
from composepilot.models.validation import FindingCode, Severity, ValidationFinding

__all__ = [
    'ComposeDocument',
    'Dependency',
    'FailureKind',
    'ParseFailure',
    'ParseIssue',
    'ParseResult',
    'PortMapping',
    'PortSpec',
    'ServiceSummary',
    'ShorthandPort',
    'StructuredPort',
    'ConfigValidationError',
    'ProjectConfiguration',
    'ServiceEntry',
    'DiscoveredFile',
    'DiscoveryResult',
    'Environment',
    'TraversalWarning',
    'FindingCode',
    'Severity',
    'ValidationFinding',
]
