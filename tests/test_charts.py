from __future__ import annotations

import math

import pytest

from factories import record
from services.charts import MINUTE_MS, ChartSeriesBuilder, chart_points
from services.errors import InvalidFieldIndexError, InvalidMergeCountError


@pytest.fixture()
def builder() -> ChartSeriesBuilder:
    return ChartSeriesBuilder()


def _points(series, field_index: int = 0):
    return [(item.timestamp, item.sensor_data_values[field_index].value) for item in series]


def test_merge_by_count_groups_consecutive_records(builder: ChartSeriesBuilder) -> None:
    records = [record(100, P1=1), record(200, P1=3), record(300, P1=5)]

    series = list(builder.merge_by_count(records, merge_count=2, field_index=0))

    assert _points(series) == [(150, 2.0), (300, 5.0)]


def test_merge_by_count_sorts_before_grouping(builder: ChartSeriesBuilder) -> None:
    records = [record(300, P1=5), record(100, P1=1), record(200, P1=3)]

    series = list(builder.merge_by_count(records, merge_count=2, field_index=0))

    assert _points(series) == [(150, 2.0), (300, 5.0)]


@pytest.mark.parametrize("count,merge_count", [(1, 1), (7, 1), (7, 2), (7, 3), (9, 3), (5, 10)])
def test_merge_by_count_shape(builder: ChartSeriesBuilder, count: int, merge_count: int) -> None:
    records = [record(1_000 * i, P1=i, P2=2 * i) for i in range(count)]

    series = list(builder.merge_by_count(records, merge_count, field_index=1))

    assert len(series) == math.ceil(count / merge_count)
    stamps = [item.timestamp for item in series]
    assert stamps == sorted(stamps)


def test_merge_count_of_one_is_identity(builder: ChartSeriesBuilder) -> None:
    records = [record(10, P1=1.5, P2=0.1), record(20, P1=2.5, P2=0.2)]

    series = list(builder.merge_by_count(records, merge_count=1, field_index=0))

    assert series == records


def test_merge_by_count_rejects_bad_arguments(builder: ChartSeriesBuilder) -> None:
    with pytest.raises(InvalidMergeCountError):
        list(builder.merge_by_count([record(1, P1=1)], merge_count=0, field_index=0))
    with pytest.raises(InvalidFieldIndexError):
        list(builder.merge_by_count([record(1, P1=1, P2=2)], merge_count=1, field_index=2))


def test_field_index_is_not_checked_for_empty_input(builder: ChartSeriesBuilder) -> None:
    assert list(builder.merge_by_count([], merge_count=1, field_index=5)) == []


def test_merge_by_granularity_buckets_by_time(builder: ChartSeriesBuilder) -> None:
    records = [
        record(1_700_000_600_000, P1=20),
        record(1_700_003_600_000, P1=40),
        record(1_700_000_000_000, P1=10),
    ]

    series = list(builder.merge_by_granularity(records, granularity_minutes=60, field_index=0))

    hour = 3_600_000
    assert _points(series) == [
        (1_700_000_000_000 // hour * hour, 15.0),
        (1_700_003_600_000 // hour * hour, 40.0),
    ]


def test_granularity_buckets_are_aligned_and_sparse(builder: ChartSeriesBuilder) -> None:
    width = 15 * MINUTE_MS
    records = [record(ts, P1=1) for ts in (7, width - 1, width, 5 * width + 3)]

    series = list(builder.merge_by_granularity(records, granularity_minutes=15, field_index=0))

    assert [item.timestamp for item in series] == [0, width, 5 * width]
    assert all(item.timestamp % width == 0 for item in series)


def test_granularity_mixes_sensors_in_one_bucket(builder: ChartSeriesBuilder) -> None:
    records = [record(60_000, P1=1, P2=10), record(61_000, P1=3, P2=30)]

    series = list(builder.merge_by_granularity(records, granularity_minutes=1, field_index=1))

    assert _points(series, field_index=1) == [(60_000, 20.0)]


def test_granularity_rejects_bad_arguments(builder: ChartSeriesBuilder) -> None:
    with pytest.raises(InvalidMergeCountError):
        list(builder.merge_by_granularity([record(1, P1=1)], granularity_minutes=0, field_index=0))
    with pytest.raises(InvalidFieldIndexError):
        list(builder.merge_by_granularity([record(1, P1=1)], granularity_minutes=1, field_index=1))


def test_chart_points_picks_field_and_skips_short_records() -> None:
    series = [record(1, P1=1, P2=2), record(2, P1=3), record(3, P1=5, P2=6)]

    points, label = chart_points(series, field_index=1)

    assert points == [(1, 2.0), (3, 6.0)]
    assert label == "P2"


def test_chart_points_of_empty_series() -> None:
    assert chart_points([], field_index=0) == ([], None)


def test_granularity_keeps_label_order_of_oldest_record(builder: ChartSeriesBuilder) -> None:
    hour = 60 * MINUTE_MS
    records = [record(0, P1=10, P2=100), record(hour, P2=200, P1=20)]

    series = list(builder.merge_by_granularity(records, granularity_minutes=60, field_index=0))
    points, label = chart_points(series, field_index=0)

    assert [item.labels() for item in series] == [["P1", "P2"], ["P1", "P2"]]
    assert label == "P1"
    assert points == [(0, 10.0), (hour, 20.0)]


def test_merge_by_count_skips_groups_without_the_field(builder: ChartSeriesBuilder) -> None:
    records = [record(1, P1=1, P2=10), record(2, P2=20), record(3, P1=3, P2=30)]

    series = list(builder.merge_by_count(records, merge_count=1, field_index=1))
    points, label = chart_points(series, field_index=1)
    first_field = chart_points(series, field_index=0)

    assert label == "P2"
    assert points == [(1, 10.0), (2, 20.0), (3, 30.0)]
    assert first_field == ([(1, 1.0), (3, 3.0)], "P1")
