"""Bucketize records into merged series for plotting."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from models.records import DataRecord
from services.aggregator import Aggregator
from services.errors import InvalidFieldIndexError, InvalidMergeCountError

MINUTE_MS = 60_000


def _sorted_checked(
    records: Iterable[DataRecord], field_index: int
) -> Tuple[List[DataRecord], List[str]]:
    """Sort by timestamp and return the label order of the oldest record."""
    ordered = sorted(records, key=lambda record: record.timestamp)
    if not ordered:
        return ordered, []
    labels = ordered[0].labels()
    if len(labels) <= field_index:
        raise InvalidFieldIndexError()
    return ordered, labels


class ChartSeriesBuilder:
    """Merge records by count (single sensor) or by time bucket (scopes)."""

    def __init__(self, aggregator: Optional[Aggregator] = None) -> None:
        self.aggregator = aggregator or Aggregator()

    def merge_by_count(
        self, records: Iterable[DataRecord], merge_count: int, field_index: int
    ) -> Iterator[DataRecord]:
        """Yield one record per ``merge_count`` consecutive records, oldest first.

        The merged timestamp is the floored mean of the group's timestamps.
        Every group is averaged in the label order of the oldest record.
        A trailing partial group is emitted as well.
        """
        if merge_count < 1:
            raise InvalidMergeCountError()
        ordered, labels = _sorted_checked(records, field_index)

        for start in range(0, len(ordered), merge_count):
            group = ordered[start:start + merge_count]
            timestamp = sum(record.timestamp for record in group) // len(group)
            yield self.aggregator.average(group, timestamp=timestamp, labels=labels)

    def merge_by_granularity(
        self, records: Iterable[DataRecord], granularity_minutes: int, field_index: int
    ) -> Iterator[DataRecord]:
        """Yield one record per non-empty bucket of ``granularity_minutes``.

        Buckets are aligned to the epoch and stamped with their start time.
        """
        if granularity_minutes < 1:
            raise InvalidMergeCountError()
        width = granularity_minutes * MINUTE_MS
        ordered, labels = _sorted_checked(records, field_index)

        buckets: Dict[int, List[DataRecord]] = {}
        for record in ordered:
            buckets.setdefault(record.timestamp // width, []).append(record)

        for index in sorted(buckets):
            yield self.aggregator.average(buckets[index], timestamp=index * width, labels=labels)


def chart_points(
    series: Iterable[DataRecord], field_index: int
) -> Tuple[List[Tuple[int, float]], Optional[str]]:
    """Project merged records onto ``[timestamp, value]`` pairs of one field.

    The field is the label at ``field_index`` of the first record; later
    records are matched by that label and left out when they lack it.
    """
    points: List[Tuple[int, float]] = []
    label: Optional[str] = None
    for record in series:
        if label is None:
            if len(record.sensor_data_values) <= field_index:
                continue
            label = record.sensor_data_values[field_index].value_type
        value = record.value_of(label)
        if value is not None:
            points.append((record.timestamp, value))
    return points, label
