"""Query façade over the metadata index and the record store."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import Any, Callable, Dict, Iterable, List, Optional

from datastore.sensor_index import SensorIndex, build_default_index
from models.records import ChartResult, CompressedRecord, DataRecord
from services.aggregator import Aggregator
from services.charts import ChartSeriesBuilder, chart_points
from services.contracts import MetadataIndex, RecordStore
from services.errors import (
    InvalidFieldIndexError,
    InvalidMergeCountError,
    NoDataRecordsError,
    SensorNotExistingError,
)
from services.fetcher import FetchMode, RecordFetcher
from services.window import normalize_window, now_ms
from settings import DAY_MS, get_settings
from storage.mock_documents import build_default_store

logger = logging.getLogger(__name__)


def compress(record: DataRecord) -> CompressedRecord:
    """Drop the labels of ``record``, keeping the values in record order."""
    return CompressedRecord(
        timestamp=record.timestamp,
        values=[item.value for item in record.sensor_data_values],
    )


def compress_all(records: Iterable[DataRecord]) -> List[CompressedRecord]:
    return [compress(record) for record in records]


def _check_chart_args(field_index: int, merge_count: int) -> None:
    if field_index < 0:
        raise InvalidFieldIndexError()
    if merge_count < 1:
        raise InvalidMergeCountError()


class DataService:
    """The named measurement queries, composed from fetcher and builders.

    Every query validates its input before touching a store. Store calls run
    on a thread pool owned by the service; call :meth:`shutdown` when done.
    """

    def __init__(
        self,
        index: MetadataIndex,
        store: RecordStore,
        aggregator: Optional[Aggregator] = None,
        default_window_ms: int = DAY_MS,
        max_fanout: int = 0,
        store_timeout_ms: int = 0,
        workers: int = 8,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.index = index
        self.store = store
        self.clock = clock
        self.default_window_ms = default_window_ms
        self.aggregator = aggregator or Aggregator(clock=clock)
        self.charts = ChartSeriesBuilder(self.aggregator)
        self.executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="store")
        self.fetcher = RecordFetcher(
            store=store,
            index=index,
            executor=self.executor,
            max_fanout=max_fanout,
            timeout_ms=store_timeout_ms,
        )

    def shutdown(self) -> None:
        """Clean up executor resources during application shutdown."""
        self.executor.shutdown(wait=False, cancel_futures=True)

    # Single sensor

    async def records(self, chip_id: int, from_raw: int = 0, to_raw: int = 0) -> List[DataRecord]:
        window = normalize_window(from_raw, to_raw, self.default_window_ms, self.clock)
        records = await self.fetcher.fetch([chip_id], window, FetchMode.range)
        logger.debug(
            "Fetched sensor records",
            extra={
                "chip_id": chip_id,
                "from_ts": window.from_ts,
                "to_ts": window.to_ts,
                "record_count": len(records),
            },
        )
        return records

    async def records_compressed(
        self, chip_id: int, from_raw: int = 0, to_raw: int = 0
    ) -> List[CompressedRecord]:
        return compress_all(await self.records(chip_id, from_raw, to_raw))

    async def latest(self, chip_id: int) -> DataRecord:
        records = await self.fetcher.fetch([chip_id], mode=FetchMode.latest)
        if records:
            return records[0]
        if not await self.fetcher.lookup(self.index.sensor_exists, chip_id):
            raise SensorNotExistingError(chip_id)
        return DataRecord(timestamp=self.clock())

    async def all_compressed(self, chip_id: int) -> List[CompressedRecord]:
        records = await self.fetcher.fetch([chip_id], mode=FetchMode.all)
        return compress_all(records)

    # Multiple sensors

    async def average_multi(self, chip_ids: Iterable[int]) -> DataRecord:
        unique_ids = list(dict.fromkeys(chip_ids))
        latest = await self.fetcher.fetch(unique_ids, mode=FetchMode.latest, skip_unknown=True)
        return self.aggregator.average(latest)

    async def country(
        self, country: str, from_raw: int = 0, to_raw: int = 0
    ) -> List[CompressedRecord]:
        window = normalize_window(from_raw, to_raw, self.default_window_ms, self.clock)
        chip_ids = await self.fetcher.lookup(self.index.chip_ids_in_country, country)
        records = await self.fetcher.fetch(chip_ids, window, FetchMode.range, skip_unknown=True)
        logger.debug(
            "Fetched country records",
            extra={"country": country, "sensor_count": len(chip_ids), "record_count": len(records)},
        )
        return compress_all(records)

    async def country_latest(self, country: str) -> DataRecord:
        chip_ids = await self.fetcher.lookup(self.index.chip_ids_in_country, country)
        latest = await self.fetcher.fetch(chip_ids, mode=FetchMode.latest, skip_unknown=True)
        return self.aggregator.average(latest)

    async def city(
        self, country: str, city: str, from_raw: int = 0, to_raw: int = 0
    ) -> List[CompressedRecord]:
        window = normalize_window(from_raw, to_raw, self.default_window_ms, self.clock)
        chip_ids = await self.fetcher.lookup(self.index.chip_ids_in_city, country, city)
        records = await self.fetcher.fetch(chip_ids, window, FetchMode.range, skip_unknown=True)
        logger.debug(
            "Fetched city records",
            extra={
                "country": country,
                "city": city,
                "sensor_count": len(chip_ids),
                "record_count": len(records),
            },
        )
        return compress_all(records)

    async def city_latest(self, country: str, city: str) -> DataRecord:
        chip_ids = await self.fetcher.lookup(self.index.chip_ids_in_city, country, city)
        latest = await self.fetcher.fetch(chip_ids, mode=FetchMode.latest, skip_unknown=True)
        return self.aggregator.average(latest)

    # Charts

    async def chart(
        self,
        chip_id: int,
        from_raw: int = 0,
        to_raw: int = 0,
        field_index: int = 0,
        merge_count: int = 1,
    ) -> ChartResult:
        window = normalize_window(from_raw, to_raw, self.default_window_ms, self.clock)
        _check_chart_args(field_index, merge_count)
        records = await self.fetcher.fetch([chip_id], window, FetchMode.range)
        series = list(self.charts.merge_by_count(records, merge_count, field_index))
        return ChartResult(series=series, sensor_count=1)

    async def chart_country(
        self,
        country: str,
        from_raw: int = 0,
        to_raw: int = 0,
        field_index: int = 0,
        granularity: int = 60,
    ) -> ChartResult:
        window = normalize_window(from_raw, to_raw, self.default_window_ms, self.clock)
        _check_chart_args(field_index, granularity)
        chip_ids = await self.fetcher.lookup(self.index.chip_ids_in_country, country)
        return await self._scope_chart(chip_ids, window, field_index, granularity)

    async def chart_city(
        self,
        country: str,
        city: str,
        from_raw: int = 0,
        to_raw: int = 0,
        field_index: int = 0,
        granularity: int = 60,
    ) -> ChartResult:
        window = normalize_window(from_raw, to_raw, self.default_window_ms, self.clock)
        _check_chart_args(field_index, granularity)
        chip_ids = await self.fetcher.lookup(self.index.chip_ids_in_city, country, city)
        return await self._scope_chart(chip_ids, window, field_index, granularity)

    def chart_envelope(
        self, result: ChartResult, field_index: int, started_ms: int
    ) -> Dict[str, Any]:
        """Build the chart response body; ``values``/``field`` only when non-empty."""
        envelope: Dict[str, Any] = {}
        points, label = chart_points(result.series, field_index)
        if points:
            envelope["values"] = points
            envelope["field"] = label
        envelope["responseTime"] = max(self.clock() - started_ms, 0)
        envelope["sensorCount"] = result.sensor_count
        return envelope

    async def _scope_chart(self, chip_ids, window, field_index: int, granularity: int) -> ChartResult:
        if not chip_ids:
            raise NoDataRecordsError()
        records = await self.fetcher.fetch(chip_ids, window, FetchMode.range, skip_unknown=True)
        series = list(self.charts.merge_by_granularity(records, granularity, field_index))
        return ChartResult(series=series, sensor_count=len(chip_ids))


@lru_cache
def build_default_data_service(workers: Optional[int] = None) -> DataService:
    """Factory that wires the service with the configured stores."""
    settings = get_settings()
    index: SensorIndex = build_default_index()
    store = build_default_store()
    return DataService(
        index=index,
        store=store,
        default_window_ms=settings.default_window_ms,
        max_fanout=settings.max_per_request_fanout,
        store_timeout_ms=settings.store_timeout_ms,
        workers=workers or settings.query_workers,
    )
