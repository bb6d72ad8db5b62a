"""
Connection checks and destination listing built on a short-lived session.
"""

from typing import Any, Callable, Dict, List, Optional

from rebrand_tool.core.exceptions import NotFoundError, RebrandToolError
from rebrand_tool.models.config import AppConfig
from rebrand_tool.models.results import Domain
from rebrand_tool.remote.files import RemoteFileOperations
from rebrand_tool.remote.session import RemoteSession, remote_session
from rebrand_tool.utils.logging import get_logger

logger = get_logger("remote.connection")


async def test_connection(
    config: AppConfig,
    factory: Optional[Callable[..., RemoteSession]] = None
) -> Dict[str, Any]:
    """
    Open a session with the short test timeout and list the base path.

    Returns:
        ``{'success': True, 'directory_count', 'base_path'}`` or
        ``{'success': False, 'error', 'code'}``; never raises.
    """
    base_path = config.paths.base_path
    try:
        async with remote_session(
            config.connection,
            connect_timeout=config.connection.test_timeout,
            factory=factory
        ) as session:
            entries = await RemoteFileOperations(session).list_directory(base_path)
    except RebrandToolError as e:
        logger.error(f"Connection test failed: {e.message}")
        return {'success': False, 'error': e.message, 'code': e.code, 'base_path': base_path}

    directories = [e for e in entries if e.is_directory]
    logger.info(
        f"Connection test succeeded: {len(directories)} directories in {base_path}"
    )
    return {
        'success': True,
        'directory_count': len(directories),
        'base_path': base_path,
    }


async def list_destination_folders(files: RemoteFileOperations, destination: str) -> List[Domain]:
    """
    List directories directly below the transfer destination root.

    Raises:
        NotFoundError: If the destination root does not exist
    """
    try:
        entries = await files.list_directory(destination)
    except NotFoundError:
        logger.warning(f"Destination root not found: {destination}")
        raise
    return [
        Domain(name=entry.name, path=entry.path)
        for entry in entries
        if entry.is_directory and not entry.name.startswith(".")
    ]
