"""Sensor metadata lookups and rankings."""

from __future__ import annotations

from functools import lru_cache
from typing import List

from datastore.sensor_index import SensorIndex, build_default_index
from models.records import RankingItemCity, RankingItemCountry, Sensor
from services.errors import InvalidItemsCountError, InvalidRadiusError, SensorNotExistingError


class SensorService:
    def __init__(self, index: SensorIndex) -> None:
        self.index = index

    def get_sensor(self, chip_id: int) -> Sensor:
        sensor = self.index.get_sensor(chip_id)
        if sensor is None:
            raise SensorNotExistingError(chip_id)
        return sensor

    def sensors_in_radius(self, latitude: float, longitude: float, radius_m: float) -> List[Sensor]:
        if radius_m < 0:
            raise InvalidRadiusError()
        return self.index.find_in_radius(latitude, longitude, radius_m)

    def ranking_by_city(self, items: int) -> List[RankingItemCity]:
        if items < 1:
            raise InvalidItemsCountError()
        return self.index.ranking_by_city(items)

    def ranking_by_country(self, items: int) -> List[RankingItemCountry]:
        if items < 1:
            raise InvalidItemsCountError()
        return self.index.ranking_by_country(items)


@lru_cache
def build_default_sensor_service() -> SensorService:
    return SensorService(build_default_index())
