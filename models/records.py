"""Domain models shared across services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(slots=True, frozen=True)
class SensorDataValue:
    """One labelled measurement inside a record, e.g. ``("P1", 12.5)``."""

    value_type: str
    value: float


@dataclass(slots=True)
class DataRecord:
    """A single measurement sample of one sensor at one instant."""

    timestamp: int
    sensor_data_values: List[SensorDataValue] = field(default_factory=list)

    def labels(self) -> List[str]:
        return [item.value_type for item in self.sensor_data_values]

    def value_of(self, label: str) -> Optional[float]:
        for item in self.sensor_data_values:
            if item.value_type == label:
                return item.value
        return None


@dataclass(slots=True)
class CompressedRecord:
    """A record with the labels stripped, values kept in record order."""

    timestamp: int
    values: List[float] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class Window:
    """Closed time interval in milliseconds since the Unix epoch."""

    from_ts: int
    to_ts: int


@dataclass(slots=True)
class ChartResult:
    series: List[DataRecord]
    sensor_count: int


@dataclass(slots=True)
class Sensor:
    """Metadata of a registered sensor module."""

    chip_id: int
    gps_latitude: float
    gps_longitude: float
    country: str = ""
    city: str = ""
    indoor: bool = False
    published: bool = True
    last_edit_timestamp: int = 0
    last_measurement_timestamp: int = 0
    notes: str = ""
    firmware_version: Optional[str] = None

    @property
    def position(self) -> Tuple[float, float]:
        return self.gps_latitude, self.gps_longitude


@dataclass(slots=True, frozen=True)
class RankingItemCity:
    country: str
    city: str
    count: int


@dataclass(slots=True, frozen=True)
class RankingItemCountry:
    country: str
    count: int
