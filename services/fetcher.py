"""Fan record store scans out across a set of chip IDs."""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Executor
from enum import Enum
from functools import partial
from typing import Callable, List, Optional, Sequence, TypeVar

from models.records import DataRecord, Window
from services.contracts import MetadataIndex, RecordStore
from services.errors import DataAccessError, QueryError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _mark_started(started: asyncio.Future) -> None:
    if not started.done():
        started.set_result(None)


class FetchMode(str, Enum):
    range = "range"
    latest = "latest"
    all = "all"


class RecordFetcher:
    """Runs blocking store calls on an executor, one per chip ID.

    ``max_fanout`` caps the concurrent store calls of one fetch (``0`` means
    unbounded) and ``timeout_ms`` bounds every single call (``0`` means no
    timeout). The first failing call aborts the whole fetch and cancels the
    calls that have not started yet.
    """

    def __init__(
        self,
        store: RecordStore,
        index: MetadataIndex,
        executor: Executor,
        max_fanout: int = 0,
        timeout_ms: int = 0,
    ) -> None:
        self.store = store
        self.index = index
        self.executor = executor
        self.max_fanout = max_fanout
        self.timeout_ms = timeout_ms

    async def run_blocking(self, func: Callable[..., T], *args) -> T:
        """Run ``func`` on the executor under the per-call timeout.

        The timeout counts from the moment a worker thread picks the call up,
        so time spent queued behind a busy pool is not charged to the call.
        """
        loop = asyncio.get_running_loop()
        if self.timeout_ms <= 0:
            return await loop.run_in_executor(self.executor, partial(func, *args))

        started = loop.create_future()

        def timed() -> T:
            loop.call_soon_threadsafe(_mark_started, started)
            return func(*args)

        future = loop.run_in_executor(self.executor, timed)
        try:
            await asyncio.wait({started, future}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            future.cancel()
            started.cancel()
            raise
        started.cancel()
        return await asyncio.wait_for(future, self.timeout_ms / 1000)

    async def lookup(self, func: Callable[..., T], *args) -> T:
        """Run a metadata index call, reporting failures as data access errors."""
        try:
            return await self.run_blocking(func, *args)
        except QueryError:
            raise
        except Exception as exc:
            reason = "timed out" if isinstance(exc, asyncio.TimeoutError) else str(exc)
            logger.error("Metadata lookup failed", extra={"reason": reason})
            raise DataAccessError(reason=reason) from exc

    async def fetch(
        self,
        chip_ids: Sequence[int],
        window: Optional[Window] = None,
        mode: FetchMode = FetchMode.range,
        skip_unknown: bool = False,
    ) -> List[DataRecord]:
        """Concatenate the records of every chip in ``chip_ids``.

        With ``skip_unknown`` a failing chip that is not registered in the
        metadata index is left out instead of failing the fetch.
        """
        if mode is FetchMode.range and window is None:
            raise ValueError("Range fetches need a window.")
        if mode is FetchMode.all and len(chip_ids) != 1:
            raise ValueError("Full scans are limited to a single chip.")
        if not chip_ids:
            return []

        semaphore = asyncio.Semaphore(self.max_fanout) if self.max_fanout > 0 else None

        async def fetch_one(chip_id: int) -> List[DataRecord]:
            if semaphore is None:
                return await self._fetch_chip(chip_id, window, mode, skip_unknown)
            async with semaphore:
                return await self._fetch_chip(chip_id, window, mode, skip_unknown)

        tasks = [asyncio.ensure_future(fetch_one(chip_id)) for chip_id in chip_ids]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.wait(pending)

        first_error: Optional[BaseException] = None
        for task in tasks:
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None and first_error is None:
                first_error = error
        if first_error is not None:
            raise first_error

        records: List[DataRecord] = []
        for task in tasks:
            records.extend(task.result())
        return records

    async def _fetch_chip(
        self,
        chip_id: int,
        window: Optional[Window],
        mode: FetchMode,
        skip_unknown: bool,
    ) -> List[DataRecord]:
        try:
            return await self.run_blocking(self._scan, chip_id, window, mode)
        except QueryError:
            raise
        except Exception as exc:
            reason = "timed out" if isinstance(exc, asyncio.TimeoutError) else str(exc)
            if skip_unknown and not await self.lookup(self.index.sensor_exists, chip_id):
                logger.warning(
                    "Skipping unregistered chip",
                    extra={"chip_id": chip_id, "mode": mode.value, "reason": reason},
                )
                return []
            logger.error(
                "Record store call failed",
                extra={"chip_id": chip_id, "mode": mode.value, "reason": reason},
            )
            raise DataAccessError(chip_id, reason) from exc

    def _scan(self, chip_id: int, window: Optional[Window], mode: FetchMode) -> List[DataRecord]:
        if mode is FetchMode.latest:
            record = self.store.latest(chip_id)
            return [record] if record is not None else []
        if mode is FetchMode.all:
            return list(self.store.scan_all(chip_id))
        assert window is not None
        return list(self.store.scan_range(chip_id, window.from_ts, window.to_ts))
