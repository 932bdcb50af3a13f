from __future__ import annotations

from typing import Iterator

import pytest

from datastore.sensor_index import SensorIndex
from factories import NOW, RecordingStore
from services.data import DataService


@pytest.fixture()
def index() -> Iterator[SensorIndex]:
    sensor_index = SensorIndex.from_url("sqlite://")
    yield sensor_index
    sensor_index.dispose()


@pytest.fixture()
def store() -> RecordingStore:
    return RecordingStore()


@pytest.fixture()
def service(index: SensorIndex, store: RecordingStore) -> Iterator[DataService]:
    data_service = DataService(index=index, store=store, workers=4, clock=lambda: NOW)
    yield data_service
    data_service.shutdown()
