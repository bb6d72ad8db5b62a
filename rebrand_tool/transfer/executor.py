"""
Sequential execution of a transfer plan on the remote host.

Both source and destination live on the remote server, so every step is
a shell command run through the ``CommandExecutor``. Items are processed
one after another over a single session; a failing item is recorded and
the batch moves on.
"""

import asyncio
import logging
import posixpath
from typing import Callable, List, Optional

from rebrand_tool.core.exceptions import RebrandToolError, TransferError
from rebrand_tool.models.config import TransferConfig
from rebrand_tool.models.results import ItemStatus, TransferItemResult, TransferSummary
from rebrand_tool.transfer.planner import TransferPlanItem
from rebrand_tool.utils.helpers import quote

NOT_FOUND_MARKER = "NOT_FOUND"

ProgressCallback = Callable[[TransferPlanItem, TransferItemResult, int, int], None]


class TransferExecutor:
    """
    Executes ``TransferPlanItem`` lists over one command executor.

    Cancellation is cooperative: ``cancel()`` stops new items from starting
    while the command in flight runs to completion.
    """

    def __init__(
        self,
        executor,
        transfer_config: Optional[TransferConfig] = None,
        cancel_event: Optional[asyncio.Event] = None
    ):
        self.executor = executor
        self.config = transfer_config or TransferConfig()
        self._cancel_event = cancel_event or asyncio.Event()
        self._progress_callback: Optional[ProgressCallback] = None
        self.logger = logging.getLogger(f"rebrand_tool.transfer.{self.__class__.__name__}")

    def set_progress_callback(self, callback: ProgressCallback) -> None:
        self._progress_callback = callback

    def cancel(self) -> None:
        """Request cancellation of the running batch."""
        self.logger.info("Transfer cancellation requested")
        self._cancel_event.set()

    def is_cancelled(self) -> bool:
        return self._cancel_event.is_set()

    async def execute(self, plan: List[TransferPlanItem], target_root: str) -> TransferSummary:
        """
        Copy every planned item, then fix ownership of ``target_root``.

        Args:
            plan: Resolved items, executed in order
            target_root: The domain web root all destinations live under

        Returns:
            TransferSummary; ``success`` is true when at least one item succeeded

        Raises:
            TransferError: If the target root itself cannot be created
        """
        summary = TransferSummary(target_root=target_root)
        self.logger.info(f"Starting transfer of {len(plan)} items to {target_root}")

        try:
            await self._make_dir(target_root, "Creating base target directory")
        except RebrandToolError as e:
            raise TransferError(
                f"Cannot create target directory {target_root}: {e.message}",
                details={'target_root': target_root}
            ) from e

        total = len(plan)
        for index, item in enumerate(plan, start=1):
            if self.is_cancelled():
                summary.cancelled = True
                self.logger.warning(f"Transfer cancelled, skipping {total - index + 1} remaining items")
                for skipped in plan[index - 1:]:
                    summary.results.append(TransferItemResult(
                        name=skipped.name,
                        status=ItemStatus.SKIPPED,
                        source=skipped.source,
                        error="Cancelled",
                    ))
                break

            result = await self.execute_item(item)
            summary.results.append(result)
            if self._progress_callback:
                try:
                    self._progress_callback(item, result, index, total)
                except Exception as e:
                    self.logger.warning(f"Progress callback failed: {e}")

        try:
            await self.executor.check(
                f"chown -R {self.config.owner} {quote(target_root)}",
                label="Setting final ownership"
            )
        except RebrandToolError as e:
            summary.ownership_fixed = False
            self.logger.error(f"Error setting final ownership on {target_root}: {e.message}")

        self.logger.info(
            f"Transfer finished: {summary.success_count}/{summary.total_count} items transferred"
        )
        return summary

    async def execute_item(self, item: TransferPlanItem) -> TransferItemResult:
        """Copy one item; failures are returned, never raised."""
        self.logger.debug(f"Processing {item.name}: {item.source} -> {item.destination}")

        try:
            is_directory = await self.probe_source(item.source)
        except RebrandToolError as e:
            return self._failed(item, f"Error checking source: {e.message}")
        if is_directory is None:
            self.logger.error(f"Source path not found: {item.source}")
            return self._failed(item, "Source path not found")
        if item.is_directory is not None and item.is_directory != is_directory:
            kind = "directory" if item.is_directory else "file"
            return self._failed(item, f"Source is not a {kind}: {item.source}")

        parent = posixpath.dirname(item.destination.rstrip("/")) or "/"
        try:
            await self._make_dir(parent, "Creating parent directory")
            if item.create_destination:
                await self._make_dir(item.destination, "Creating destination directory")
        except RebrandToolError as e:
            return self._failed(item, f"Error creating parent directory: {e.message}")

        try:
            if is_directory:
                await self._copy_directory(item)
            else:
                await self._copy_file(item)
        except RebrandToolError as e:
            kind = "directory" if is_directory else "file"
            return self._failed(item, f"Error copying {kind}: {e.message}")

        self.logger.info(f"Transferred {item.name} -> {item.destination}")
        return TransferItemResult(
            name=item.name,
            status=ItemStatus.SUCCESS,
            path=item.destination,
            type="directory" if is_directory else "file",
            source=item.source,
        )

    async def probe_source(self, source: str) -> Optional[bool]:
        """
        Check a source path with a listing probe.

        Returns:
            True for a directory, False for a file, None if it does not exist

        Raises:
            CommandError: If the probe itself could not run
        """
        result = await self.executor.check(
            f"ls -ld {quote(source)} 2>/dev/null || echo {NOT_FOUND_MARKER}",
            label="Checking source path"
        )
        lines = result.lines()
        if not lines or lines[0] == NOT_FOUND_MARKER:
            return None
        return lines[0].startswith("d")

    async def _make_dir(self, path: str, label: str) -> None:
        await self.executor.check(
            f"mkdir -p {quote(path)} && chmod {self.config.dir_mode} {quote(path)}",
            label=label
        )

    async def _copy_directory(self, item: TransferPlanItem) -> None:
        await self._make_dir(item.destination, "Creating destination directory")
        await self.executor.check(
            f"cp -rf {quote(item.source.rstrip('/') + '/.')} {quote(item.destination.rstrip('/') + '/')}",
            label="Copying directory contents"
        )
        await self.executor.check(
            f"chown -R {self.config.owner} {quote(item.destination)}",
            label="Setting ownership for directory"
        )
        destination = quote(item.destination)
        await self.executor.check(
            f"find {destination} -type d -exec chmod {self.config.dir_mode} {{}} + && "
            f"find {destination} -type f -exec chmod {self.config.file_mode} {{}} +",
            label="Setting permissions for directory"
        )

    async def _copy_file(self, item: TransferPlanItem) -> None:
        destination = quote(item.destination)
        await self.executor.check(
            f"cp -f {quote(item.source)} {destination} && "
            f"chown {self.config.owner} {destination} && "
            f"chmod {self.config.file_mode} {destination}",
            label="Copying file"
        )

    def _failed(self, item: TransferPlanItem, error: str) -> TransferItemResult:
        self.logger.error(f"{item.name}: {error}")
        return TransferItemResult(
            name=item.name,
            status=ItemStatus.ERROR,
            error=error,
            source=item.source,
        )
