"""Throttled, retrying reader for many small remote files."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Hashable, Iterable, Optional

from rebrand_tool.core.exceptions import NotFoundError, RebrandToolError

logger = logging.getLogger("rebrand_tool.discovery.batch_reader")


@dataclass
class ReaderStats:
    """Counters for one ``read_all`` call."""
    requested: int = 0
    succeeded: int = 0
    missing: int = 0
    failed: int = 0
    retries: int = 0
    max_in_flight: int = 0


class BatchReader:
    """
    Reads keys through ``read_func`` in sequential batches.

    Reads inside a batch run concurrently but never more than
    ``concurrency`` at once. A failed read is retried ``retries`` times with
    a fixed ``retry_delay``; a key that is missing or keeps failing maps to
    ``None`` instead of raising.
    """

    def __init__(
        self,
        read_func: Callable[[Any], Awaitable[Any]],
        concurrency: int = 5,
        batch_size: int = 5,
        retries: int = 2,
        retry_delay: float = 0.5
    ):
        if concurrency < 1 or batch_size < 1 or retries < 0:
            raise ValueError("concurrency and batch_size must be >= 1, retries >= 0")
        self.read_func = read_func
        self.concurrency = concurrency
        self.batch_size = batch_size
        self.retries = retries
        self.retry_delay = retry_delay
        self.stats = ReaderStats()
        self._semaphore: Optional[asyncio.Semaphore] = None
        self._in_flight = 0

    async def read_all(self, keys: Iterable[Hashable]) -> Dict[Hashable, Any]:
        """
        Read every key.

        Returns:
            Mapping of key to value, ``None`` for missing or unreadable keys
        """
        keys = list(dict.fromkeys(keys))
        self.stats = ReaderStats(requested=len(keys))
        self._semaphore = asyncio.Semaphore(self.concurrency)
        results: Dict[Hashable, Any] = {}

        for start in range(0, len(keys), self.batch_size):
            batch = keys[start:start + self.batch_size]
            values = await asyncio.gather(*(self._read_with_retry(key) for key in batch))
            results.update(zip(batch, values))

        logger.debug(
            f"Batch read finished: {self.stats.succeeded} ok, {self.stats.missing} missing, "
            f"{self.stats.failed} failed, {self.stats.retries} retries"
        )
        return results

    async def _read_with_retry(self, key: Hashable) -> Any:
        last_error: Optional[Exception] = None
        for attempt in range(self.retries + 1):
            if attempt:
                self.stats.retries += 1
                await asyncio.sleep(self.retry_delay)

            async with self._semaphore:
                self._in_flight += 1
                self.stats.max_in_flight = max(self.stats.max_in_flight, self._in_flight)
                try:
                    value = await self.read_func(key)
                except NotFoundError:
                    self.stats.missing += 1
                    return None
                except (RebrandToolError, OSError, asyncio.TimeoutError) as e:
                    last_error = e
                    logger.debug(f"Read of {key} failed (attempt {attempt + 1}): {e}")
                    continue
                finally:
                    self._in_flight -= 1

            self.stats.succeeded += 1
            return value

        self.stats.failed += 1
        logger.warning(f"Giving up on {key} after {self.retries + 1} attempts: {last_error}")
        return None
