from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, Query

from app.api import http_error
from app.schemas import RankingItemCitySchema, RankingItemCountrySchema, SensorSchema
from services.errors import QueryError
from services.sensors import SensorService, build_default_sensor_service


def get_sensor_service() -> SensorService:
    return build_default_sensor_service()


router = APIRouter()


@router.get(
    "/sensor",
    response_model=List[SensorSchema],
    summary="Sensors within a radius around a position, nearest first.",
)
def get_sensors_in_radius(
    latitude: float = Query(..., ge=-90, le=90),
    longitude: float = Query(..., ge=-180, le=180),
    radius: float = Query(..., description="Radius in metres."),
    service: SensorService = Depends(get_sensor_service),
) -> List[SensorSchema]:
    try:
        sensors = service.sensors_in_radius(latitude, longitude, radius)
    except QueryError as exc:
        raise http_error(exc) from exc
    return [SensorSchema.from_sensor(sensor) for sensor in sensors]


@router.get(
    "/sensor/{chip_id}",
    response_model=SensorSchema,
    summary="Metadata of a single sensor.",
)
def get_sensor(
    chip_id: int,
    service: SensorService = Depends(get_sensor_service),
) -> SensorSchema:
    try:
        sensor = service.get_sensor(chip_id)
    except QueryError as exc:
        raise http_error(exc) from exc
    return SensorSchema.from_sensor(sensor)


@router.get(
    "/ranking/city",
    response_model=List[RankingItemCitySchema],
    summary="Cities with the most sensors.",
)
def get_ranking_by_city(
    items: int = Query(10),
    service: SensorService = Depends(get_sensor_service),
) -> List[RankingItemCitySchema]:
    try:
        ranking = service.ranking_by_city(items)
    except QueryError as exc:
        raise http_error(exc) from exc
    return [RankingItemCitySchema.from_item(item) for item in ranking]


@router.get(
    "/ranking/country",
    response_model=List[RankingItemCountrySchema],
    summary="Countries with the most sensors.",
)
def get_ranking_by_country(
    items: int = Query(10),
    service: SensorService = Depends(get_sensor_service),
) -> List[RankingItemCountrySchema]:
    try:
        ranking = service.ranking_by_country(items)
    except QueryError as exc:
        raise http_error(exc) from exc
    return [RankingItemCountrySchema.from_item(item) for item in ranking]
