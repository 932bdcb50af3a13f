"""Pydantic schemas for the HTTP API layer."""

from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from models.documents import CamelModel, DataRecordSchema, SensorDataValueSchema
from models.records import (
    CompressedRecord,
    RankingItemCity,
    RankingItemCountry,
    Sensor,
)

__all__ = [
    "ChartEnvelope",
    "CompressedRecordSchema",
    "DataRecordSchema",
    "ErrorDetail",
    "RankingItemCitySchema",
    "RankingItemCountrySchema",
    "SensorDataValueSchema",
    "SensorSchema",
]


class CompressedRecordSchema(CamelModel):
    """Record without labels; values follow the sensor's label order."""

    timestamp: int
    sensor_data_values: List[float] = Field(default_factory=list, alias="sensorDataValues")

    @classmethod
    def from_record(cls, record: CompressedRecord) -> "CompressedRecordSchema":
        return cls(timestamp=record.timestamp, sensor_data_values=list(record.values))


class ChartEnvelope(CamelModel):
    """Chart-ready series; ``values`` and ``field`` are omitted for empty series."""

    values: Optional[List[Tuple[int, float]]] = None
    field: Optional[str] = None
    response_time: int = Field(..., alias="responseTime")
    sensor_count: int = Field(..., alias="sensorCount")


class SensorSchema(CamelModel):
    chip_id: int = Field(..., alias="chipId")
    gps_latitude: float = Field(..., alias="gpsLatitude")
    gps_longitude: float = Field(..., alias="gpsLongitude")
    country: str
    city: str
    indoor: bool
    published: bool
    last_edit_timestamp: int = Field(..., alias="lastEditTimestamp")
    last_measurement_timestamp: int = Field(..., alias="lastMeasurementTimestamp")
    notes: str
    firmware_version: Optional[str] = Field(default=None, alias="firmwareVersion")

    @classmethod
    def from_sensor(cls, sensor: Sensor) -> "SensorSchema":
        return cls(
            chip_id=sensor.chip_id,
            gps_latitude=sensor.gps_latitude,
            gps_longitude=sensor.gps_longitude,
            country=sensor.country,
            city=sensor.city,
            indoor=sensor.indoor,
            published=sensor.published,
            last_edit_timestamp=sensor.last_edit_timestamp,
            last_measurement_timestamp=sensor.last_measurement_timestamp,
            notes=sensor.notes,
            firmware_version=sensor.firmware_version,
        )


class RankingItemCitySchema(BaseModel):
    country: str
    city: str
    count: int = Field(..., ge=0)

    @classmethod
    def from_item(cls, item: RankingItemCity) -> "RankingItemCitySchema":
        return cls(country=item.country, city=item.city, count=item.count)


class RankingItemCountrySchema(BaseModel):
    country: str
    count: int = Field(..., ge=0)

    @classmethod
    def from_item(cls, item: RankingItemCountry) -> "RankingItemCountrySchema":
        return cls(country=item.country, count=item.count)


class ErrorDetail(BaseModel):
    error: str
    description: str
