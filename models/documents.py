"""Document shapes of stored measurement records (camelCase JSON)."""

from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

from models.records import DataRecord, SensorDataValue


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SensorDataValueSchema(CamelModel):
    value_type: str = Field(..., alias="valueType")
    value: float


class DataRecordSchema(CamelModel):
    """A measurement record as stored in a collection and returned by the API."""

    timestamp: int = Field(..., ge=0, description="Milliseconds since the Unix epoch.")
    sensor_data_values: List[SensorDataValueSchema] = Field(
        default_factory=list, alias="sensorDataValues"
    )

    @classmethod
    def from_record(cls, record: DataRecord) -> "DataRecordSchema":
        return cls(
            timestamp=record.timestamp,
            sensor_data_values=[
                SensorDataValueSchema(value_type=item.value_type, value=item.value)
                for item in record.sensor_data_values
            ],
        )

    def to_record(self) -> DataRecord:
        return DataRecord(
            timestamp=self.timestamp,
            sensor_data_values=[
                SensorDataValue(value_type=item.value_type, value=item.value)
                for item in self.sensor_data_values
            ],
        )
