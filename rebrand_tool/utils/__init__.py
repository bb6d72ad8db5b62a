"""
Utilities module for the Rebrand Tool.

This module contains logging setup and helper functions used
throughout the application.
"""

from rebrand_tool.utils.helpers import (
    quote,
    join_remote,
    format_bytes,
    sanitize_dict,
    is_valid_label,
    extract_subdomain,
)
from rebrand_tool.utils.logging import (
    setup_logging,
    get_logger,
    get_audit_logger,
    get_log_history,
    clear_log_history,
    read_log_file,
)

__all__ = [
    # Helper functions
    "quote",
    "join_remote",
    "format_bytes",
    "sanitize_dict",
    "is_valid_label",
    "extract_subdomain",
    # Logging
    "setup_logging",
    "get_logger",
    "get_audit_logger",
    "get_log_history",
    "clear_log_history",
    "read_log_file",
]
