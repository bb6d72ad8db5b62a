"""
Custom exceptions for the Rebrand Tool.

This module defines the exception hierarchy used by the remote layer and
the deployment services. Low-level primitives raise these; orchestrators
catch them per item and turn them into structured results.
"""

from typing import Any, Dict, Optional


class RebrandToolError(Exception):
    """Base exception class for Rebrand Tool errors."""

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}


class ConfigurationError(RebrandToolError):
    """Raised when required configuration is missing or invalid."""
    pass


class ConnectivityError(RebrandToolError):
    """Raised when a remote session cannot be opened."""
    pass


class ConnectTimeoutError(ConnectivityError):
    """Raised when the connection is not established in time."""
    pass


class AuthenticationError(ConnectivityError):
    """Raised when the remote host rejects the credentials."""
    pass


class NetworkError(ConnectivityError):
    """Raised on socket or SSH transport failures."""
    pass


class CommandError(RebrandToolError):
    """Raised when a remote command exits with a non-zero status."""

    def __init__(
        self,
        message: str,
        label: Optional[str] = None,
        exit_code: Optional[int] = None,
        stdout: str = "",
        stderr: str = "",
        **kwargs
    ):
        super().__init__(message, **kwargs)
        self.label = label
        self.exit_code = exit_code
        self.stdout = stdout
        self.stderr = stderr


class CommandTimeoutError(CommandError):
    """Raised when a remote command does not finish within its timeout."""
    pass


class NotFoundError(RebrandToolError):
    """Raised when a remote path does not exist."""

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.path = path


class RemoteFileError(RebrandToolError):
    """Raised when an SFTP operation fails for a reason other than not-found."""
    pass


class TransferError(RebrandToolError):
    """Raised when a transfer cannot start at all."""
    pass


class DnsError(RebrandToolError):
    """Raised when the DNS provider rejects a request."""
    pass


class ProvisioningError(RebrandToolError):
    """Raised when the control panel refuses to create a domain."""
    pass
