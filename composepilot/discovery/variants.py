"""Environment variant detection from compose filenames."""
import re
from pathlib import Path
from typing import Tuple, Union

from composepilot.models.discovery import Environment

# Checked in order; first token present in the filename suffix wins
ENVIRONMENT_TOKENS = (
    ('development', Environment.DEVELOPMENT),
    ('dev', Environment.DEVELOPMENT),
    ('production', Environment.PRODUCTION),
    ('prod', Environment.PRODUCTION),
    ('testing', Environment.TEST),
    ('test', Environment.TEST),
    ('staging', Environment.STAGING),
    ('stage', Environment.STAGING),
)

_BASE_RE = re.compile(r'^(?:docker-compose|compose)', re.IGNORECASE)
_SPLIT_RE = re.compile(r'[.\-_]+')


def suffix_tokens(filename: str) -> Tuple[str, ...]:
    """Tokens between the compose base name and the extension.

    ``docker-compose.prod.yml`` -> ``('prod',)``,
    ``compose.override-dev.yaml`` -> ``('override', 'dev')``
    """
    stem = filename.rsplit('.', 1)[0] if '.' in filename else filename
    remainder = _BASE_RE.sub('', stem, count=1)
    return tuple(t.lower() for t in _SPLIT_RE.split(remainder) if t)


class VariantClassifier:
    """Infer a candidate's environment tag and root flag. Pure, no I/O."""

    def __init__(self, tokens=ENVIRONMENT_TOKENS):
        self.tokens = tuple(tokens)

    def environment_for(self, filename: str) -> Environment:
        present = set(suffix_tokens(filename))
        for token, environment in self.tokens:
            if token in present:
                return environment
        return Environment.NONE

    def classify(
        self,
        path: Union[str, Path],
        relative_to_root: Union[str, Path],
    ) -> Tuple[Environment, bool]:
        """Return ``(environment, is_root_candidate)``.

        Args:
            path: Path of the compose file
            relative_to_root: The same file relative to the scan root; the
                file is a root candidate when it has no parent directory there
        """
        path = Path(path)
        relative = Path(relative_to_root)
        is_root = len(relative.parts) == 1
        return self.environment_for(path.name), is_root
