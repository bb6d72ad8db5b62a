"""
Helper utilities for the Rebrand Tool.

This module contains small functions shared by the remote layer, the
services and the CLI: shell quoting, remote path joins, secret masking
and domain name handling.
"""

import posixpath
import re
import shlex
from typing import Any, Dict, List, Optional


_LABEL_RE = re.compile(r'^[a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?$', re.IGNORECASE)

DEFAULT_SENSITIVE_KEYS = [
    'password', 'passwd', 'secret', 'key', 'token', 'credential', 'auth'
]


def quote(value: str) -> str:
    """Quote a value for safe interpolation into a remote shell command."""
    return shlex.quote(str(value))


def join_remote(base: str, *parts: str) -> str:
    """
    Join POSIX path segments for the remote host.

    Leading slashes on later segments are stripped so that a relative
    module path never escapes ``base``.
    """
    cleaned = [p.strip("/") for p in parts if p and p.strip("/")]
    if not cleaned:
        return base
    return posixpath.join(base, *cleaned)


def format_bytes(bytes_count: int) -> str:
    """Format bytes into human-readable string."""
    value = float(bytes_count)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if value < 1024.0:
            return f"{value:.1f} {unit}"
        value /= 1024.0
    return f"{value:.1f} PB"


def sanitize_dict(data: Dict[str, Any], sensitive_keys: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Mask sensitive values in a (nested) dictionary.

    Args:
        data: Dictionary to sanitize
        sensitive_keys: Key fragments to mask (default: common secret names)

    Returns:
        Sanitized copy of ``data``
    """
    if sensitive_keys is None:
        sensitive_keys = DEFAULT_SENSITIVE_KEYS

    def _sanitize_value(key: str, value: Any) -> Any:
        if isinstance(value, dict):
            return sanitize_dict(value, sensitive_keys)
        if isinstance(value, list):
            return [_sanitize_value(key, item) for item in value]
        if any(fragment in key.lower() for fragment in sensitive_keys):
            return "***MASKED***" if value else value
        return value

    return {key: _sanitize_value(key, value) for key, value in data.items()}


def is_valid_label(label: str) -> bool:
    """Check a single DNS label such as a subdomain name."""
    return bool(label) and _LABEL_RE.match(label) is not None


def extract_subdomain(domain: str, root_domain: Optional[str]) -> str:
    """
    Extract the subdomain label from a fully qualified domain name.

    Args:
        domain: Full domain name, e.g. ``demo.example.com``
        root_domain: Configured root domain, e.g. ``example.com``

    Returns:
        The first label left of ``root_domain``; for other names the first
        label of a name with at least three labels; otherwise an empty string.
    """
    if not domain or "." not in domain or not root_domain:
        return ""

    suffix = f".{root_domain}"
    if domain.endswith(suffix):
        prefix = domain[:-len(suffix)]
        return prefix.split(".")[0]

    parts = domain.split(".")
    if len(parts) >= 3:
        return parts[0]
    return ""
