"""
File and directory operations on the remote host.

SFTP errors are mapped to the tool's exception hierarchy: errno 2 becomes
``NotFoundError`` and an "already exists" failure on mkdir is treated as
success, so ``mkdir`` is idempotent.
"""

import errno
import json
import logging
import posixpath
import stat
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from rebrand_tool.core.exceptions import NotFoundError, RemoteFileError
from rebrand_tool.models.config import TransferConfig
from rebrand_tool.models.results import RemoteEntry
from rebrand_tool.utils.helpers import quote

# SFTP status codes surfaced by the server
SFTP_NO_SUCH_FILE = 2
SFTP_FAILURE = 4


def _is_not_found(error: Exception) -> bool:
    return isinstance(error, FileNotFoundError) or getattr(error, 'errno', None) in (
        errno.ENOENT, SFTP_NO_SUCH_FILE
    )


class RemoteFileOperations:
    """SFTP-backed file operations plus shell-backed bulk copies."""

    def __init__(
        self,
        session,
        executor=None,
        transfer_config: Optional[TransferConfig] = None
    ):
        self.session = session
        self.executor = executor
        self.transfer_config = transfer_config or TransferConfig()
        self.logger = logging.getLogger(f"rebrand_tool.remote.{self.__class__.__name__}")

    async def stat(self, path: str):
        """
        Stat a remote path.

        Raises:
            NotFoundError: If the path does not exist
            RemoteFileError: On any other SFTP failure
        """
        try:
            return await self.session.stat(path)
        except (IOError, OSError) as e:
            if _is_not_found(e):
                raise NotFoundError(f"Remote path not found: {path}", path=path) from e
            raise RemoteFileError(f"Failed to stat {path}: {e}", details={'path': path}) from e

    async def exists(self, path: str) -> bool:
        try:
            await self.stat(path)
            return True
        except NotFoundError:
            return False

    async def is_directory(self, path: str) -> bool:
        try:
            attrs = await self.stat(path)
        except NotFoundError:
            return False
        return stat.S_ISDIR(attrs.st_mode or 0)

    async def mkdir(self, path: str, mode: int = 0o755) -> bool:
        """
        Create a single directory.

        Returns:
            True if the directory was created, False if it already existed
        """
        try:
            await self.session.mkdir(path, mode)
            return True
        except (IOError, OSError) as e:
            if getattr(e, 'errno', None) in (errno.EEXIST, SFTP_FAILURE) or await self.is_directory(path):
                self.logger.debug(f"Directory already exists: {path}")
                return False
            if _is_not_found(e):
                raise NotFoundError(f"Parent directory missing for {path}", path=path) from e
            raise RemoteFileError(f"Failed to create {path}: {e}", details={'path': path}) from e

    async def makedirs(self, path: str, mode: int = 0o755) -> None:
        """Create a directory and any missing parents."""
        missing = []
        current = path.rstrip("/") or "/"
        while current not in ("", "/") and not await self.exists(current):
            missing.append(current)
            current = posixpath.dirname(current)
        for directory in reversed(missing):
            await self.mkdir(directory, mode)

    async def list_directory(self, path: str) -> List[RemoteEntry]:
        """
        List a remote directory, directories first then by name.

        Raises:
            NotFoundError: If the directory does not exist
        """
        try:
            attrs = await self.session.listdir_attr(path)
        except (IOError, OSError) as e:
            if _is_not_found(e):
                raise NotFoundError(f"Remote directory not found: {path}", path=path) from e
            raise RemoteFileError(f"Failed to list {path}: {e}", details={'path': path}) from e

        entries = [
            RemoteEntry(
                name=a.filename,
                path=posixpath.join(path, a.filename),
                is_directory=stat.S_ISDIR(a.st_mode or 0),
                size=a.st_size or 0,
                modify_time=a.st_mtime,
            )
            for a in attrs
            if a.filename not in (".", "..")
        ]
        entries.sort(key=lambda e: (not e.is_directory, e.name.lower()))
        return entries

    async def scan_tree(self, path: str, depth: int = 2) -> Dict[str, Any]:
        """
        Walk a directory up to ``depth`` levels below it.

        Never raises: a missing path or a non-directory yields
        ``{'path', 'error', 'items': []}``.
        """
        try:
            attrs = await self.stat(path)
        except (NotFoundError, RemoteFileError) as e:
            return {'path': path, 'error': e.message, 'items': []}

        if not stat.S_ISDIR(attrs.st_mode or 0):
            return {'path': path, 'error': f"Not a directory: {path}", 'items': []}

        try:
            items = await self._scan(path, depth)
        except (NotFoundError, RemoteFileError) as e:
            return {'path': path, 'error': e.message, 'items': []}
        return {'path': path, 'error': None, 'items': items}

    async def _scan(self, path: str, depth: int) -> List[RemoteEntry]:
        entries = await self.list_directory(path)
        if depth > 1:
            for entry in entries:
                if entry.is_directory:
                    try:
                        entry.children = await self._scan(entry.path, depth - 1)
                    except (NotFoundError, RemoteFileError) as e:
                        self.logger.debug(f"Skipping unreadable directory {entry.path}: {e.message}")
                        entry.children = []
        return entries

    async def read_text(self, path: str, max_bytes: int = 1024 * 1024) -> str:
        """
        Read a small text file.

        Raises:
            NotFoundError: If the file does not exist
            RemoteFileError: If it cannot be read or exceeds ``max_bytes``
        """
        try:
            data = await self.session.read_bytes(path)
        except (IOError, OSError) as e:
            if _is_not_found(e):
                raise NotFoundError(f"Remote file not found: {path}", path=path) from e
            raise RemoteFileError(f"Failed to read {path}: {e}", details={'path': path}) from e

        if len(data) > max_bytes:
            raise RemoteFileError(
                f"File too large to read: {path} ({len(data)} bytes)",
                details={'path': path, 'size': len(data)}
            )
        return data.decode('utf-8', errors='replace')

    async def read_json(self, path: str) -> Any:
        """
        Read and parse a JSON file.

        Raises:
            NotFoundError: If the file does not exist
            RemoteFileError: If it cannot be read or is not valid JSON
        """
        text = await self.read_text(path)
        try:
            return json.loads(text)
        except ValueError as e:
            raise RemoteFileError(f"Invalid JSON in {path}: {e}", details={'path': path}) from e

    async def download_file(self, remote_path: str, local_path: Union[str, Path]) -> Path:
        local_path = Path(local_path)
        local_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            await self.session.get(remote_path, str(local_path))
        except (IOError, OSError) as e:
            if _is_not_found(e):
                raise NotFoundError(f"Remote file not found: {remote_path}", path=remote_path) from e
            raise RemoteFileError(
                f"Failed to download {remote_path}: {e}", details={'path': remote_path}
            ) from e
        self.logger.debug(f"Downloaded {remote_path} -> {local_path}")
        return local_path

    async def download_directory(self, remote_path: str, local_path: Union[str, Path]) -> List[Path]:
        """
        Recursively download a remote directory.

        Returns:
            Local paths of all downloaded files

        Raises:
            NotFoundError: If ``remote_path`` does not exist
        """
        entries = await self.list_directory(remote_path)
        local_path = Path(local_path)
        local_path.mkdir(parents=True, exist_ok=True)
        downloaded = []
        for entry in entries:
            target = local_path / entry.name
            if entry.is_directory:
                downloaded.extend(await self.download_directory(entry.path, target))
            else:
                downloaded.append(await self.download_file(entry.path, target))
        return downloaded

    async def copy_folder_contents(self, source: str, destination: str) -> Dict[str, Any]:
        """
        Copy the contents of one remote folder into another.

        Creates ``destination`` if needed, copies recursively with overwrite
        and applies the configured ownership.

        Raises:
            NotFoundError: If ``source`` is not a directory
            CommandError: If a shell step fails
        """
        if self.executor is None:
            raise RemoteFileError("copy_folder_contents requires a command executor")
        if not await self.is_directory(source):
            raise NotFoundError(f"Source folder not found: {source}", path=source)

        owner = self.transfer_config.owner
        dir_mode = self.transfer_config.dir_mode
        await self.executor.check(
            f"mkdir -p {quote(destination)} && chmod {dir_mode} {quote(destination)}",
            label="Creating destination folder"
        )
        await self.executor.check(
            f"cp -rf {quote(source.rstrip('/') + '/.')} {quote(destination.rstrip('/') + '/')}",
            label="Copying folder contents"
        )
        await self.executor.check(
            f"chown -R {owner} {quote(destination)}",
            label="Setting folder ownership"
        )
        self.logger.info(f"Copied contents of {source} to {destination}")
        return {'success': True, 'source': source, 'destination': destination}
