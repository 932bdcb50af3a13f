from __future__ import annotations
import math
from functools import lru_cache
from pathlib import Path
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import BigInteger, Boolean, Float, String, Text, create_engine, func, select
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from models.records import RankingItemCity, RankingItemCountry, Sensor
from settings import get_settings

EARTH_RADIUS_M = 6_371_000.0
_METRES_PER_DEGREE = 111_320.0


class Base(DeclarativeBase):
    pass


class SensorRow(Base):
    __tablename__ = "sensor"

    chip_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    gps_latitude: Mapped[float] = mapped_column(Float, nullable=False, index=True)
    gps_longitude: Mapped[float] = mapped_column(Float, nullable=False)
    country: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False, default="", index=True)
    indoor: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    published: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    last_edit_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    last_measurement_timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    firmware_version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    def to_sensor(self) -> Sensor:
        return Sensor(
            chip_id=self.chip_id,
            gps_latitude=self.gps_latitude,
            gps_longitude=self.gps_longitude,
            country=self.country,
            city=self.city,
            indoor=self.indoor,
            published=self.published,
            last_edit_timestamp=self.last_edit_timestamp,
            last_measurement_timestamp=self.last_measurement_timestamp,
            notes=self.notes,
            firmware_version=self.firmware_version,
        )

    @classmethod
    def from_sensor(cls, sensor: Sensor) -> "SensorRow":
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


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Great-circle distance in metres between two WGS84 points."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = phi2 - phi1
    d_lambda = math.radians(lng2 - lng1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))


def create_index_engine(url: str) -> Engine:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, pool_pre_ping=True)

    database = parsed.database
    if not database or database == ":memory:":
        # One shared connection so every thread sees the same in-memory database.
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    Path(database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args={"check_same_thread": False})


class SensorIndex:
    """Read side of the sensor metadata, plus the writes needed to seed it."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(engine, expire_on_commit=False)
        Base.metadata.create_all(engine)

    @classmethod
    def from_url(cls, url: str) -> "SensorIndex":
        return cls(create_index_engine(url))

    def add_sensors(self, sensors: Iterable[Sensor]) -> None:
        with self._sessions.begin() as session:
            for sensor in sensors:
                session.merge(SensorRow.from_sensor(sensor))

    def get_sensor(self, chip_id: int) -> Optional[Sensor]:
        with self._sessions() as session:
            row = session.get(SensorRow, chip_id)
            return row.to_sensor() if row is not None else None

    def sensor_exists(self, chip_id: int) -> bool:
        with self._sessions() as session:
            stmt = select(SensorRow.chip_id).where(SensorRow.chip_id == chip_id)
            return session.scalar(stmt) is not None

    def chip_ids_in_country(self, country: str) -> List[int]:
        stmt = select(SensorRow.chip_id).where(SensorRow.country == country)
        return self._scalars(stmt)

    def chip_ids_in_city(self, country: str, city: str) -> List[int]:
        stmt = select(SensorRow.chip_id).where(
            SensorRow.country == country, SensorRow.city == city
        )
        return self._scalars(stmt)

    def find_in_radius(self, latitude: float, longitude: float, radius_m: float) -> List[Sensor]:
        """Sensors within ``radius_m`` metres, nearest first."""
        lat_delta = radius_m / _METRES_PER_DEGREE
        stmt = select(SensorRow).where(
            SensorRow.gps_latitude.between(latitude - lat_delta, latitude + lat_delta)
        )
        with self._sessions() as session:
            rows = session.scalars(stmt).all()

        hits: List[Tuple[float, Sensor]] = []
        for row in rows:
            distance = haversine_m(latitude, longitude, row.gps_latitude, row.gps_longitude)
            if distance <= radius_m:
                hits.append((distance, row.to_sensor()))
        hits.sort(key=lambda hit: (hit[0], hit[1].chip_id))
        return [sensor for _, sensor in hits]

    def ranking_by_city(self, items: int) -> List[RankingItemCity]:
        count = func.count(SensorRow.chip_id)
        stmt = (
            select(SensorRow.country, SensorRow.city, count)
            .group_by(SensorRow.country, SensorRow.city)
            .order_by(count.desc(), SensorRow.country, SensorRow.city)
            .limit(items)
        )
        with self._sessions() as session:
            return [
                RankingItemCity(country=country, city=city, count=total)
                for country, city, total in session.execute(stmt)
            ]

    def ranking_by_country(self, items: int) -> List[RankingItemCountry]:
        count = func.count(SensorRow.chip_id)
        stmt = (
            select(SensorRow.country, count)
            .group_by(SensorRow.country)
            .order_by(count.desc(), SensorRow.country)
            .limit(items)
        )
        with self._sessions() as session:
            return [
                RankingItemCountry(country=country, count=total)
                for country, total in session.execute(stmt)
            ]

    def dispose(self) -> None:
        self.engine.dispose()

    def _scalars(self, stmt) -> List[int]:
        with self._sessions() as session:
            return list(session.scalars(stmt).all())


@lru_cache
def build_default_index(url: Optional[str] = None) -> SensorIndex:
    settings = get_settings()
    return SensorIndex.from_url(settings.sensor_database_url if url is None else url)
