"""Per-label averaging of measurement records."""

from __future__ import annotations

import math
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from models.records import DataRecord, SensorDataValue
from services.window import now_ms


class Aggregator:
    """Pure aggregation component that can be unit tested in isolation."""

    def __init__(self, clock: Callable[[], int] = now_ms) -> None:
        self._clock = clock

    def average(
        self,
        records: Iterable[DataRecord],
        timestamp: Optional[int] = None,
        labels: Optional[Sequence[str]] = None,
    ) -> DataRecord:
        """Collapse ``records`` into one synthetic record of per-label means.

        Labels follow ``labels`` when given, otherwise the order of the first
        record. A record missing a label does not count towards that label's
        mean. The result is stamped with ``timestamp`` or, when omitted, the
        current time.
        """
        order: Optional[List[str]] = list(labels) if labels is not None else None
        samples: Dict[str, List[float]] = {label: [] for label in order or ()}

        for record in records:
            if order is None:
                order = record.labels()
                samples = {label: [] for label in order}
            for item in record.sensor_data_values:
                bucket = samples.get(item.value_type)
                if bucket is not None:
                    bucket.append(item.value)

        stamp = self._clock() if timestamp is None else timestamp
        if order is None:
            return DataRecord(timestamp=stamp)

        values = [
            SensorDataValue(value_type=label, value=math.fsum(samples[label]) / len(samples[label]))
            for label in order
            if samples[label]
        ]
        return DataRecord(timestamp=stamp, sensor_data_values=values)
