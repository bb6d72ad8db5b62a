"""
Core module for the Rebrand Tool.

This module contains the exception hierarchy shared by every component.
"""

from rebrand_tool.core.exceptions import (
    RebrandToolError,
    ConfigurationError,
    ConnectivityError,
    ConnectTimeoutError,
    AuthenticationError,
    NetworkError,
    CommandError,
    CommandTimeoutError,
    NotFoundError,
    RemoteFileError,
    TransferError,
    DnsError,
    ProvisioningError,
)

__all__ = [
    "RebrandToolError",
    "ConfigurationError",
    "ConnectivityError",
    "ConnectTimeoutError",
    "AuthenticationError",
    "NetworkError",
    "CommandError",
    "CommandTimeoutError",
    "NotFoundError",
    "RemoteFileError",
    "TransferError",
    "DnsError",
    "ProvisioningError",
]
