"""Validation findings."""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"


class FindingCode(Enum):
    PARSE_ERROR = "PARSE_ERROR"
    MISSING_IMAGE = "MISSING_IMAGE"
    DANGLING_DEPENDENCY = "DANGLING_DEPENDENCY"
    DUPLICATE_PORT = "DUPLICATE_PORT"
    SELF_DEPENDENCY = "SELF_DEPENDENCY"
    INVALID_PORT = "INVALID_PORT"
    INVALID_SERVICE = "INVALID_SERVICE"
    NO_SERVICES = "NO_SERVICES"


@dataclass(frozen=True)
class ValidationFinding:
    """One structural problem in a compose file."""
    severity: Severity
    code: FindingCode
    message: str
    service_name: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def to_dict(self) -> dict:
        return {
            'severity': self.severity.value,
            'code': self.code.value,
            'service': self.service_name,
            'message': self.message,
        }
