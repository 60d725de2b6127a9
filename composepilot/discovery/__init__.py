"""Compose file discovery: traversal, variant detection and ranking."""
from composepilot.discovery.engine import ComposeDiscovery, NoCandidatesFound, summaries_for
from composepilot.discovery.path_scanner import PathScanner, is_compose_filename
from composepilot.discovery.ranker import CandidateRanker
from composepilot.discovery.variants import VariantClassifier

__all__ = [
    'CandidateRanker',
    'ComposeDiscovery',
    'NoCandidatesFound',
    'PathScanner',
    'VariantClassifier',
    'is_compose_filename',
    'summaries_for',
]
