"""
Remote session management using paramiko.

A ``RemoteSession`` owns exactly one authenticated SSH connection and its
SFTP channel. Blocking paramiko calls run in the default executor and are
bounded by ``asyncio.wait_for`` so a hung host never blocks the event loop
forever.
"""

import asyncio
import logging
import socket
import threading
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, List, Optional, Tuple

try:
    import paramiko
    from paramiko import AutoAddPolicy, SFTPClient, SSHClient
    PARAMIKO_AVAILABLE = True
except ImportError:
    PARAMIKO_AVAILABLE = False

from rebrand_tool.core.exceptions import (
    AuthenticationError,
    CommandTimeoutError,
    ConfigurationError,
    ConnectTimeoutError,
    NetworkError,
)
from rebrand_tool.models.config import ConnectionConfig

# Channel-level failures raised while a session is open. Plain ``IOError``
# from SFTP file calls is left alone so callers can map it by errno.
if PARAMIKO_AVAILABLE:
    CHANNEL_ERRORS = (paramiko.SSHException, EOFError, ConnectionError)
else:
    CHANNEL_ERRORS = (EOFError, ConnectionError)


class RemoteSession:
    """
    One live SSH + SFTP connection to a single remote host.

    Sessions are never shared between concurrent logical operations: each
    high-level operation opens its own and closes it on every exit path,
    which ``async with`` guarantees.
    """

    def __init__(
        self,
        config: ConnectionConfig,
        connect_timeout: Optional[float] = None,
        client_factory: Optional[Callable[[], Any]] = None
    ):
        """
        Initialize the session (does not connect).

        Args:
            config: Connection settings
            connect_timeout: Override for ``config.connect_timeout``
            client_factory: Callable returning an ``SSHClient``-like object
        """
        if client_factory is None and not PARAMIKO_AVAILABLE:
            raise ImportError(
                "paramiko is required for remote sessions. "
                "Install with: pip install paramiko"
            )

        self.config = config
        self.host = config.host
        self.port = config.port
        self.username = config.username
        self.connect_timeout = connect_timeout or config.connect_timeout
        self.command_timeout = config.command_timeout
        self._client_factory = client_factory or SSHClient
        self._ssh_client = None
        self._sftp_client = None
        self._connect_lock = threading.Lock()
        self._connect_abandoned = False
        self.logger = logging.getLogger(f"rebrand_tool.remote.{self.__class__.__name__}")

    @property
    def is_alive(self) -> bool:
        if self._ssh_client is None:
            return False
        transport = self._ssh_client.get_transport()
        return bool(transport and transport.is_active())

    @property
    def sftp(self):
        if self._sftp_client is None:
            raise NetworkError("SFTP channel is not open", details={'host': self.host})
        return self._sftp_client

    def _connect_blocking(self) -> None:
        client = self._client_factory()
        client.set_missing_host_key_policy(AutoAddPolicy())

        connect_params = {
            'hostname': self.host,
            'port': self.port,
            'username': self.username,
            'timeout': self.connect_timeout,
            'banner_timeout': self.connect_timeout,
            'auth_timeout': self.connect_timeout,
            'look_for_keys': False,
            'allow_agent': False,
        }
        if self.config.password:
            connect_params['password'] = self.config.password
        if self.config.key_filename:
            connect_params['key_filename'] = self.config.key_filename
            connect_params['look_for_keys'] = True

        try:
            client.connect(**connect_params)
            sftp = client.open_sftp()
        except BaseException:
            client.close()
            raise

        with self._connect_lock:
            if self._connect_abandoned:
                # open() already gave up on this attempt
                sftp.close()
                client.close()
                self.logger.warning(f"Discarded connection to {self.host} that completed after the timeout")
                return
            self._ssh_client = client
            self._sftp_client = sftp

    def _abandon_connect(self) -> None:
        with self._connect_lock:
            self._connect_abandoned = True
            sftp, client = self._sftp_client, self._ssh_client
            self._sftp_client = None
            self._ssh_client = None
        if sftp is not None:
            sftp.close()
        if client is not None:
            client.close()

    async def _run_connect(self) -> None:
        with self._connect_lock:
            self._connect_abandoned = False
        loop = asyncio.get_event_loop()
        try:
            await asyncio.wait_for(
                loop.run_in_executor(None, self._connect_blocking),
                timeout=self.connect_timeout + 1
            )
        except BaseException:
            # The worker thread keeps running after a timeout or cancellation
            self._abandon_connect()
            raise

    async def open(self) -> "RemoteSession":
        """
        Connect and open the SFTP channel.

        Raises:
            ConfigurationError: If host or username is missing
            ConnectTimeoutError: If the connection is not established in time
            AuthenticationError: If the host rejects the credentials
            NetworkError: On any other transport failure
        """
        if not self.config.is_configured:
            raise ConfigurationError(
                "SSH host and username must be configured",
                details={'host': self.host, 'username': self.username}
            )

        if self.is_alive:
            return self

        details = {'host': self.host, 'port': self.port}
        try:
            await self._run_connect()
        except (asyncio.TimeoutError, socket.timeout) as e:
            raise ConnectTimeoutError(
                f"Connection to {self.host}:{self.port} timed out after {self.connect_timeout}s",
                details=details
            ) from e
        except Exception as e:
            if PARAMIKO_AVAILABLE and isinstance(e, paramiko.AuthenticationException):
                raise AuthenticationError(
                    f"Authentication failed for {self.username}@{self.host}",
                    details=details
                ) from e
            raise NetworkError(
                f"Failed to connect to {self.host}:{self.port}: {e}",
                details=details
            ) from e

        self.logger.info(f"SSH connection established to {self.host}:{self.port}")
        return self

    async def close(self) -> None:
        """Close the SFTP channel and the SSH connection."""
        if self._sftp_client is not None:
            try:
                self._sftp_client.close()
            except Exception as e:
                self.logger.debug(f"Error closing SFTP channel: {e}")
            self._sftp_client = None

        if self._ssh_client is not None:
            self._ssh_client.close()
            self._ssh_client = None
            self.logger.debug(f"SSH connection to {self.host} closed")

    def _exec_blocking(self, command: str, timeout: float) -> Tuple[str, str, int]:
        stdin, stdout, stderr = self._ssh_client.exec_command(command, timeout=timeout)
        stdin.close()
        out = stdout.read().decode('utf-8', errors='replace')
        err = stderr.read().decode('utf-8', errors='replace')
        exit_code = stdout.channel.recv_exit_status()
        return out, err, exit_code

    async def exec_command(self, command: str, timeout: Optional[float] = None) -> Tuple[str, str, int]:
        """
        Run a shell command and wait for it to finish.

        Args:
            command: Shell command line
            timeout: Seconds before the command is treated as hung

        Returns:
            Tuple of (stdout, stderr, exit_code)

        Raises:
            CommandTimeoutError: If the command does not finish in time
            NetworkError: If the channel fails or the connection drops
        """
        if self._ssh_client is None:
            raise NetworkError("Session is not open", details={'host': self.host})

        timeout = timeout or self.command_timeout
        loop = asyncio.get_event_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, self._exec_blocking, command, timeout),
                timeout=timeout
            )
        except (asyncio.TimeoutError, socket.timeout) as e:
            raise CommandTimeoutError(
                f"Command timed out after {timeout}s",
                exit_code=None
            ) from e
        except CHANNEL_ERRORS + (OSError,) as e:
            raise NetworkError(
                f"Command failed on {self.host}: {str(e) or e.__class__.__name__}",
                details={'host': self.host}
            ) from e

    async def _sftp_call(self, func: Callable, *args):
        loop = asyncio.get_event_loop()
        try:
            return await asyncio.wait_for(
                loop.run_in_executor(None, func, *args),
                timeout=self.command_timeout
            )
        except asyncio.TimeoutError as e:
            raise NetworkError(
                f"SFTP operation timed out after {self.command_timeout}s",
                details={'host': self.host}
            ) from e
        except CHANNEL_ERRORS as e:
            raise NetworkError(
                f"SFTP channel failed on {self.host}: {str(e) or e.__class__.__name__}",
                details={'host': self.host}
            ) from e

    async def stat(self, path: str):
        return await self._sftp_call(self.sftp.stat, path)

    async def listdir_attr(self, path: str) -> List[Any]:
        return await self._sftp_call(self.sftp.listdir_attr, path)

    async def mkdir(self, path: str, mode: int = 0o755) -> None:
        await self._sftp_call(self.sftp.mkdir, path, mode)

    async def read_bytes(self, path: str) -> bytes:
        def _read():
            with self.sftp.open(path, 'rb') as handle:
                return handle.read()
        return await self._sftp_call(_read)

    async def get(self, remote_path: str, local_path: str) -> None:
        await self._sftp_call(self.sftp.get, remote_path, local_path)

    async def __aenter__(self):
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


SessionFactory = Callable[[ConnectionConfig], RemoteSession]


@asynccontextmanager
async def remote_session(
    config: ConnectionConfig,
    connect_timeout: Optional[float] = None,
    factory: Optional[Callable[..., RemoteSession]] = None
) -> AsyncIterator[RemoteSession]:
    """
    Open a session and guarantee it is closed afterwards.

    Args:
        config: Connection settings
        connect_timeout: Optional shorter timeout (used by connection tests)
        factory: Session constructor, ``RemoteSession`` by default
    """
    factory = factory or RemoteSession
    session = factory(config, connect_timeout=connect_timeout)
    try:
        await session.open()
        yield session
    finally:
        await session.close()
