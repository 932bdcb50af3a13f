"""Capabilities the query core needs from its collaborators."""

from __future__ import annotations

from typing import List, Optional, Protocol, Sequence

from models.records import DataRecord


class MetadataIndex(Protocol):
    def chip_ids_in_country(self, country: str) -> List[int]: ...

    def chip_ids_in_city(self, country: str, city: str) -> List[int]: ...

    def sensor_exists(self, chip_id: int) -> bool: ...


class RecordStore(Protocol):
    def scan_range(self, chip_id: int, from_ts: int, to_ts: int) -> Sequence[DataRecord]: ...

    def latest(self, chip_id: int) -> Optional[DataRecord]: ...

    def scan_all(self, chip_id: int) -> Sequence[DataRecord]: ...
