"""Load and atomically persist the project configuration file."""
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from composepilot.core.logger import get_logger
from composepilot.models.config import ConfigValidationError, ProjectConfiguration

logger = get_logger(__name__)

DEFAULT_CONFIG_NAME = "composepilot.yml"


class ConfigPersistenceError(Exception):
    """Raised when the configuration file cannot be read or written."""
    pass


class ConfigStore:
    """Reads and writes a ProjectConfiguration as YAML or JSON.

    The format follows the file suffix (``.json`` or ``.yml``/``.yaml``).
    Writes go to a temporary file in the same directory and are renamed
    into place, so readers never see a half-written file.
    """

    def __init__(self, config_path: Path, backup: bool = True):
        """Initialize the store.

        Args:
            config_path: Configuration file location
            backup: Copy the previous file to ``<name>.bak`` before replacing it
        """
        self.config_path = Path(config_path)
        self.backup = backup

    @property
    def is_json(self) -> bool:
        return self.config_path.suffix.lower() == '.json'

    @property
    def backup_path(self) -> Path:
        return self.config_path.with_name(self.config_path.name + '.bak')

    def exists(self) -> bool:
        return self.config_path.exists()

    def load(self) -> Optional[ProjectConfiguration]:
        """Load the configuration.

        Returns:
            The configuration, or None if the file does not exist or is empty

        Raises:
            ConfigPersistenceError: If the file cannot be read or decoded
            ConfigValidationError: If the content does not match the model
        """
        if not self.config_path.exists():
            return None

        try:
            text = self.config_path.read_text()
        except OSError as e:
            raise ConfigPersistenceError(f"Failed to read {self.config_path}: {e}") from e

        if not text.strip():
            logger.warning(f"Config file {self.config_path} is empty, starting fresh")
            return None

        try:
            data = json.loads(text) if self.is_json else yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigPersistenceError(f"Failed to decode {self.config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigValidationError(
                f"{self.config_path} must contain a mapping, got {type(data).__name__}"
            )

        try:
            config = ProjectConfiguration.model_validate(data)
        except ValidationError as e:
            raise ConfigValidationError(f"Invalid configuration in {self.config_path}:\n{e}") from e

        logger.debug(f"Loaded configuration from {self.config_path}")
        return config

    def dumps(self, config: ProjectConfiguration) -> str:
        document = config.to_document()
        if self.is_json:
            return json.dumps(document, indent=2) + "\n"
        return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)

    def save(self, config: ProjectConfiguration) -> Path:
        """Write the configuration atomically.

        Raises:
            ConfigPersistenceError: If the file cannot be written
        """
        content = self.dumps(config)
        directory = self.config_path.parent
        temp_name = None

        try:
            directory.mkdir(parents=True, exist_ok=True)

            if self.backup and self.config_path.exists():
                shutil.copy2(self.config_path, self.backup_path)
                logger.debug(f"Configuration backup created: {self.backup_path}")

            fd, temp_name = tempfile.mkstemp(
                dir=directory, prefix=f".{self.config_path.name}.", suffix=".tmp"
            )
            with os.fdopen(fd, 'w') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())

            os.replace(temp_name, self.config_path)
            temp_name = None
        except OSError as e:
            raise ConfigPersistenceError(f"Failed to save {self.config_path}: {e}") from e
        finally:
            if temp_name is not None and os.path.exists(temp_name):
                os.unlink(temp_name)

        logger.debug(f"Saved configuration to {self.config_path}")
        return self.config_path
