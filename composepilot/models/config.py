"""Persisted project configuration models."""
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

RestartPolicy = Literal["no", "always", "on-failure", "unless-stopped"]
RESTART_POLICIES = ("no", "always", "on-failure", "unless-stopped")

DEFAULT_INVOCATION = "docker compose"


class ConfigValidationError(Exception):
    """Raised when a persisted configuration does not match the model."""
    pass


class ServiceEntry(BaseModel):
    """Per-service configuration entry.

    Entries with ``detected=True`` were written by a compose scan and may be
    refreshed by the next one; all others are user-authored and kept as-is.
    Unknown keys are preserved so hand-written extras survive a rewrite.
    """

    model_config = ConfigDict(extra='allow')

    port: Optional[int] = Field(None, ge=1, le=65535)
    description: Optional[str] = None
    detected: bool = False
    health_check: bool = False
    backup_enabled: bool = False
    restart: RestartPolicy = "unless-stopped"
    scale: int = Field(1, ge=1)


class ProjectConfiguration(BaseModel):
    """User-facing project state persisted between runs."""

    model_config = ConfigDict(
        extra='allow',
        json_schema_extra={
            "example": {
                "project_name": "shop",
                "compose_invocation": "docker compose -f deploy/compose.prod.yml",
                "compose_file": "deploy/compose.prod.yml",
                "services": {
                    "web": {
                        "port": 8080,
                        "description": "Auto-detected web service",
                        "detected": True,
                    }
                },
            }
        },
    )

    project_name: str
    services: Dict[str, ServiceEntry] = Field(default_factory=dict)
    compose_invocation: str = DEFAULT_INVOCATION
    compose_file: Optional[str] = None
    config_version: str = "1.0"

    @field_validator('project_name')
    @classmethod
    def validate_project_name(cls, v):
        """Project name must be non-empty."""
        if not v or not v.strip():
            raise ValueError("project_name must not be empty")
        return v

    @field_validator('compose_invocation')
    @classmethod
    def validate_compose_invocation(cls, v):
        """Invocation must start with a compose-capable command."""
        if not v.startswith(("docker compose", "docker-compose")):
            raise ValueError(
                f"compose_invocation must start with 'docker compose' or 'docker-compose'. Got: {v}"
            )
        return v

    def to_document(self) -> dict:
        """Plain dict ready for JSON/YAML serialization."""
        return self.model_dump(mode='json')
