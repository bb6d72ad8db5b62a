"""
Pytest configuration and fixtures for the Rebrand Tool tests.

This module provides an in-memory stand-in for a remote session (SFTP file
tree plus scripted shell commands), a session factory that records how
sessions are opened and closed, and sample configurations.
"""

import errno
import json
import posixpath
import stat
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

import pytest

from rebrand_tool.config import ConfigurationService
from rebrand_tool.models.config import (
    AnalyzerConfig,
    AppConfig,
    ConnectionConfig,
    DnsConfig,
    PathsConfig,
    ProvisioningConfig,
)


Response = Union[Tuple[str, str, int], Callable[[str], Tuple[str, str, int]], Exception]


class FakeSession:
    """
    In-memory remote session.

    Files and directories live in dictionaries keyed by absolute path.
    Shell commands are answered by the most recently registered matching
    response (substring match); unmatched commands succeed with no output.
    """

    def __init__(self, host: str = "test-host"):
        self.host = host
        self.command_timeout = 30.0
        self.dirs = {"/"}
        self.files: Dict[str, bytes] = {}
        self.commands: List[str] = []
        self.responses: List[Tuple[str, Response]] = []
        self.read_failures: Dict[str, int] = {}
        self.reads: List[str] = []
        self.downloads: List[Tuple[str, str]] = []
        self.opened = False
        self.closed = False

    # Setup helpers

    def add_dir(self, path: str) -> None:
        path = path.rstrip("/") or "/"
        while path not in self.dirs:
            self.dirs.add(path)
            path = posixpath.dirname(path) or "/"

    def add_file(self, path: str, content: Union[str, bytes, dict] = b"") -> None:
        if isinstance(content, dict):
            content = json.dumps(content)
        if isinstance(content, str):
            content = content.encode("utf-8")
        self.add_dir(posixpath.dirname(path))
        self.files[path] = content

    def on(self, pattern: str, stdout: str = "", stderr: str = "", exit_code: int = 0,
           handler: Optional[Response] = None) -> None:
        self.responses.append((pattern, handler if handler is not None else (stdout, stderr, exit_code)))

    def commands_matching(self, pattern: str) -> List[str]:
        return [c for c in self.commands if pattern in c]

    # Session interface

    async def open(self):
        self.opened = True
        return self

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self):
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def exec_command(self, command: str, timeout: Optional[float] = None):
        self.commands.append(command)
        for pattern, response in reversed(self.responses):
            if pattern in command:
                if isinstance(response, Exception):
                    raise response
                if callable(response):
                    return response(command)
                return response
        return "", "", 0

    def _attrs(self, path: str):
        if path in self.dirs:
            return SimpleNamespace(
                filename=posixpath.basename(path), st_mode=stat.S_IFDIR | 0o755,
                st_size=4096, st_mtime=0
            )
        if path in self.files:
            return SimpleNamespace(
                filename=posixpath.basename(path), st_mode=stat.S_IFREG | 0o644,
                st_size=len(self.files[path]), st_mtime=0
            )
        raise FileNotFoundError(errno.ENOENT, "No such file", path)

    async def stat(self, path: str):
        return self._attrs(path.rstrip("/") or "/")

    async def listdir_attr(self, path: str):
        path = path.rstrip("/") or "/"
        if path not in self.dirs:
            raise FileNotFoundError(errno.ENOENT, "No such file", path)
        children = sorted(
            p for p in list(self.dirs) + list(self.files)
            if p != path and posixpath.dirname(p) == path
        )
        return [self._attrs(child) for child in children]

    async def mkdir(self, path: str, mode: int = 0o755) -> None:
        path = path.rstrip("/")
        if path in self.dirs or path in self.files:
            raise OSError(errno.EEXIST, "File exists", path)
        if posixpath.dirname(path) not in self.dirs:
            raise FileNotFoundError(errno.ENOENT, "No such file", path)
        self.dirs.add(path)

    async def read_bytes(self, path: str) -> bytes:
        self.reads.append(path)
        remaining = self.read_failures.get(path, 0)
        if remaining:
            self.read_failures[path] = remaining - 1
            raise OSError(errno.EIO, "Transient failure", path)
        if path not in self.files:
            raise FileNotFoundError(errno.ENOENT, "No such file", path)
        return self.files[path]

    async def get(self, remote_path: str, local_path: str) -> None:
        if remote_path not in self.files:
            raise FileNotFoundError(errno.ENOENT, "No such file", remote_path)
        self.downloads.append((remote_path, local_path))
        with open(local_path, "wb") as handle:
            handle.write(self.files[remote_path])


class RecordingFactory:
    """Session factory handing out one ``FakeSession`` and recording calls."""

    def __init__(self, session: Optional[FakeSession] = None):
        self.session = session or FakeSession()
        self.calls: List[Dict[str, Any]] = []

    def __call__(self, config, connect_timeout=None):
        self.calls.append({'config': config, 'connect_timeout': connect_timeout})
        self.session.opened = False
        self.session.closed = False
        return self.session


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def session_factory(fake_session) -> RecordingFactory:
    return RecordingFactory(fake_session)


@pytest.fixture
def dns_config() -> DnsConfig:
    return DnsConfig(
        api_token="test-token",
        zone_id="zone123",
        root_domain="example.com",
        ipv4_address="203.0.113.10",
        ipv6_address="2001:db8::10",
    )


@pytest.fixture
def app_config(dns_config) -> AppConfig:
    return AppConfig(
        connection=ConnectionConfig(host="server.example.com", username="deploy", password="secret"),
        dns=dns_config,
        paths=PathsConfig(
            base_path="/home/source/",
            local_destination="/home/streamnet/domains/",
            domains_root="/home/streamnet/domains",
        ),
        provisioning=ProvisioningConfig(parent_domain="example.com"),
        analyzer=AnalyzerConfig(retry_delay=0),
    )


@pytest.fixture
def config_service(app_config) -> ConfigurationService:
    return ConfigurationService(config=app_config)
