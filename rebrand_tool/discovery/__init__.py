"""
Domain discovery and structure analysis for the Rebrand Tool.
"""

from rebrand_tool.discovery.batch_reader import BatchReader, ReaderStats
from rebrand_tool.discovery.domains import (
    DiscoveryStrategy,
    DomainDiscovery,
    StrategyOutcome,
    build_strategies,
    merge_outcomes,
    parse_ls_listing,
)
from rebrand_tool.discovery.analyzer import DomainAnalyzer, PLEX_CHECKS, detect_plex

__all__ = [
    "BatchReader",
    "ReaderStats",
    "DiscoveryStrategy",
    "DomainDiscovery",
    "StrategyOutcome",
    "build_strategies",
    "merge_outcomes",
    "parse_ls_listing",
    "DomainAnalyzer",
    "PLEX_CHECKS",
    "detect_plex",
]
