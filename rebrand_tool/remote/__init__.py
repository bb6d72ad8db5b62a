"""
Remote access layer for the Rebrand Tool.

This module contains the paramiko-backed session, the command executor
and SFTP file operations used by every deployment service.
"""

from rebrand_tool.remote.session import (
    PARAMIKO_AVAILABLE,
    RemoteSession,
    SessionFactory,
    remote_session,
)
from rebrand_tool.remote.executor import CommandExecutor
from rebrand_tool.remote.files import RemoteFileOperations
from rebrand_tool.remote.connection import list_destination_folders

__all__ = [
    "PARAMIKO_AVAILABLE",
    "RemoteSession",
    "SessionFactory",
    "remote_session",
    "CommandExecutor",
    "RemoteFileOperations",
    "list_destination_folders",
]
