"""HTTP route definitions for the measurement data endpoints."""

from __future__ import annotations

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status

from app.schemas import (
    ChartEnvelope,
    CompressedRecordSchema,
    DataRecordSchema,
)
from services.data import DataService, build_default_data_service
from services.errors import QueryError

router = APIRouter()

ChipId = Annotated[int, Path(ge=0, description="Chip-ID of the requested sensor.")]
FromTs = Annotated[int, Query(alias="from", description="Begin of the time range (ms since epoch, 0 = default).")]
ToTs = Annotated[int, Query(description="End of the time range (ms since epoch, 0 = now).")]


def get_data_service() -> DataService:
    return build_default_data_service()


def http_error(exc: QueryError) -> HTTPException:
    return HTTPException(
        status_code=exc.status_code,
        detail={"error": exc.kind, "description": exc.message},
    )


def _parse_chip_ids(raw: List[str]) -> List[int]:
    chip_ids: List[int] = []
    for chunk in raw:
        for part in chunk.split(","):
            candidate = part.strip()
            if not candidate:
                continue
            try:
                chip_id = int(candidate)
            except ValueError:
                chip_id = -1
            if chip_id < 0:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail=f"Invalid chip id {candidate!r}.",
                )
            chip_ids.append(chip_id)
    return chip_ids


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_200_OK,
)
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}


@router.get(
    "/",
    summary="Root endpoint mirrors health information.",
    status_code=status.HTTP_200_OK,
)
async def root() -> dict[str, str]:
    return {"status": "ok", "detail": "See /health for service status."}


@router.get(
    "/data/average",
    response_model=DataRecordSchema,
    summary="Average of the latest values of the given sensors.",
)
async def get_data_average(
    chip_ids: List[str] = Query(..., alias="chipIds", description="Comma separated or repeated."),
    service: DataService = Depends(get_data_service),
) -> DataRecordSchema:
    parsed = _parse_chip_ids(chip_ids)
    try:
        record = await service.average_multi(parsed)
    except QueryError as exc:
        raise http_error(exc) from exc
    return DataRecordSchema.from_record(record)


@router.get(
    "/data/chart",
    response_model=ChartEnvelope,
    response_model_exclude_none=True,
    summary="Chart ready series for a sensor, a country or a city.",
)
async def get_chart_data(
    chip_id: Optional[int] = Query(None, alias="chipId", ge=0),
    country: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    from_: FromTs = 0,
    to: ToTs = 0,
    field_index: int = Query(0, alias="fieldIndex"),
    merge_count: int = Query(1, alias="mergeCount"),
    granularity: int = Query(60, description="Bucket width in minutes."),
    service: DataService = Depends(get_data_service),
) -> ChartEnvelope:
    started_ms = service.clock()
    try:
        if country is not None and city is not None:
            result = await service.chart_city(country, city, from_, to, field_index, granularity)
        elif country is not None:
            result = await service.chart_country(country, from_, to, field_index, granularity)
        elif chip_id is not None:
            result = await service.chart(chip_id, from_, to, field_index, merge_count)
        else:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="Either chipId or country is required.",
            )
    except QueryError as exc:
        raise http_error(exc) from exc
    return ChartEnvelope.model_validate(service.chart_envelope(result, field_index, started_ms))


@router.get(
    "/data/country/{country}",
    response_model=List[CompressedRecordSchema],
    summary="Records of all sensors in a country, compressed.",
)
async def get_data_country(
    country: str,
    from_: FromTs = 0,
    to: ToTs = 0,
    service: DataService = Depends(get_data_service),
) -> List[CompressedRecordSchema]:
    try:
        records = await service.country(country, from_, to)
    except QueryError as exc:
        raise http_error(exc) from exc
    return [CompressedRecordSchema.from_record(record) for record in records]


@router.get(
    "/data/country/{country}/latest",
    response_model=DataRecordSchema,
    summary="Average of the latest records of all sensors in a country.",
)
async def get_data_country_latest(
    country: str,
    service: DataService = Depends(get_data_service),
) -> DataRecordSchema:
    try:
        record = await service.country_latest(country)
    except QueryError as exc:
        raise http_error(exc) from exc
    return DataRecordSchema.from_record(record)


@router.get(
    "/data/city/{country}/{city}",
    response_model=List[CompressedRecordSchema],
    summary="Records of all sensors in a city, compressed.",
)
async def get_data_city(
    country: str,
    city: str,
    from_: FromTs = 0,
    to: ToTs = 0,
    service: DataService = Depends(get_data_service),
) -> List[CompressedRecordSchema]:
    try:
        records = await service.city(country, city, from_, to)
    except QueryError as exc:
        raise http_error(exc) from exc
    return [CompressedRecordSchema.from_record(record) for record in records]


@router.get(
    "/data/city/{country}/{city}/latest",
    response_model=DataRecordSchema,
    summary="Average of the latest records of all sensors in a city.",
)
async def get_data_city_latest(
    country: str,
    city: str,
    service: DataService = Depends(get_data_service),
) -> DataRecordSchema:
    try:
        record = await service.city_latest(country, city)
    except QueryError as exc:
        raise http_error(exc) from exc
    return DataRecordSchema.from_record(record)


@router.get(
    "/data/{chip_id}/latest",
    response_model=DataRecordSchema,
    summary="Latest record of a sensor.",
)
async def get_latest_data_record(
    chip_id: ChipId,
    service: DataService = Depends(get_data_service),
) -> DataRecordSchema:
    try:
        record = await service.latest(chip_id)
    except QueryError as exc:
        raise http_error(exc) from exc
    return DataRecordSchema.from_record(record)


@router.get(
    "/data/{chip_id}/all",
    response_model=List[CompressedRecordSchema],
    summary="Every record of a sensor, compressed. Meant for archiving.",
)
async def get_all_data_records_compressed(
    chip_id: ChipId,
    compressed: Optional[str] = Query(None),
    service: DataService = Depends(get_data_service),
) -> List[CompressedRecordSchema]:
    try:
        records = await service.all_compressed(chip_id)
    except QueryError as exc:
        raise http_error(exc) from exc
    return [CompressedRecordSchema.from_record(record) for record in records]


@router.get(
    "/data/{chip_id}",
    response_model=None,
    summary="Records of a sensor; add ?compressed to drop the labels.",
)
async def get_data_records(
    chip_id: ChipId,
    from_: FromTs = 0,
    to: ToTs = 0,
    compressed: Optional[str] = Query(None),
    service: DataService = Depends(get_data_service),
) -> List[dict]:
    try:
        if compressed is not None:
            compressed_records = await service.records_compressed(chip_id, from_, to)
            payload = [CompressedRecordSchema.from_record(item) for item in compressed_records]
        else:
            records = await service.records(chip_id, from_, to)
            payload = [DataRecordSchema.from_record(record) for record in records]
    except QueryError as exc:
        raise http_error(exc) from exc
    return [item.model_dump(mode="json", by_alias=True) for item in payload]
