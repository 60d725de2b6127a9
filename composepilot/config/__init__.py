"""Project configuration persistence."""
from composepilot.config.manager import ProjectConfigManager, RefreshOutcome
from composepilot.config.store import DEFAULT_CONFIG_NAME, ConfigPersistenceError, ConfigStore

__all__ = [
    'ConfigPersistenceError',
    'ConfigStore',
    'DEFAULT_CONFIG_NAME',
    'ProjectConfigManager',
    'RefreshOutcome',
]
