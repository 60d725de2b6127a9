"""
Docker Compose services.

Parsing compose files into service summaries, validating them, and
synthesizing project configuration from the selected file.
"""

from .parser import ComposeFileParser
from .reporter import ValidationReporter, has_errors
from .synthesizer import ConfigSynthesizer, SynthesisReport

__all__ = [
    "ComposeFileParser",
    "ValidationReporter",
    "has_errors",
    "ConfigSynthesizer",
    "SynthesisReport",
]
