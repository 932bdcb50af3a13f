from __future__ import annotations
import json
from functools import lru_cache
from pathlib import Path
from threading import Lock
from typing import Dict, Iterable, List, Optional

from models.documents import DataRecordSchema
from models.records import DataRecord
from settings import get_settings


def collection_name(chip_id: int) -> str:
    """Collections are named by the decimal chip identifier."""
    return str(chip_id)


def _copy(record: DataRecord) -> DataRecord:
    return DataRecord(timestamp=record.timestamp, sensor_data_values=list(record.sensor_data_values))


class MockDocumentStore:
    """Collection-per-sensor record store.

    Records live in memory and, when ``root_path`` is set, in one JSON file
    per collection. Collections found on disk are loaded on first access.
    Scans return records in insertion order, which callers must not rely on.
    """

    def __init__(self, name: str = "records", root_path: Optional[Path] = None) -> None:
        self.name = name
        self.root_path = root_path
        self._collections: Dict[str, List[DataRecord]] = {}
        self._lock = Lock()
        if root_path:
            root_path.mkdir(parents=True, exist_ok=True)

    def insert(self, chip_id: int, record: DataRecord) -> None:
        self.insert_many(chip_id, [record])

    def insert_many(self, chip_id: int, records: Iterable[DataRecord]) -> None:
        name = collection_name(chip_id)
        with self._lock:
            collection = self._collection(name)
            collection.extend(_copy(record) for record in records)
            self._persist(name, collection)

    def scan_range(self, chip_id: int, from_ts: int, to_ts: int) -> List[DataRecord]:
        with self._lock:
            collection = self._collection(collection_name(chip_id))
            return [
                _copy(record)
                for record in collection
                if from_ts <= record.timestamp <= to_ts
            ]

    def latest(self, chip_id: int) -> Optional[DataRecord]:
        with self._lock:
            collection = self._collection(collection_name(chip_id))
            if not collection:
                return None
            return _copy(max(collection, key=lambda record: record.timestamp))

    def scan_all(self, chip_id: int) -> List[DataRecord]:
        with self._lock:
            return [_copy(record) for record in self._collection(collection_name(chip_id))]

    def list_collections(self) -> List[str]:
        with self._lock:
            names = set(self._collections)
        if self.root_path:
            names.update(path.stem for path in self.root_path.glob("*.json"))
        return sorted(names)

    def _collection(self, name: str) -> List[DataRecord]:
        collection = self._collections.get(name)
        if collection is None:
            collection = self._load_from_disk(name)
            self._collections[name] = collection
        return collection

    def _path(self, name: str) -> Path:
        assert self.root_path is not None
        return self.root_path / f"{name}.json"

    def _persist(self, name: str, collection: List[DataRecord]) -> None:
        if not self.root_path:
            return
        payload = [
            DataRecordSchema.from_record(record).model_dump(mode="json", by_alias=True)
            for record in collection
        ]
        self._path(name).write_text(json.dumps(payload, indent=2))

    def _load_from_disk(self, name: str) -> List[DataRecord]:
        if not self.root_path:
            return []
        path = self._path(name)
        if not path.exists():
            return []

        raw = path.read_text() or "[]"
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Collection {name!r} in store {self.name!r} is corrupt.") from exc

        return [DataRecordSchema.model_validate(item).to_record() for item in data]


@lru_cache
def build_default_store(
    name: Optional[str] = None,
    root_path: Optional[str] = None,
) -> MockDocumentStore:
    settings = get_settings()
    store_root = settings.record_store_root_path if root_path is None else root_path
    path = Path(store_root) if store_root else None
    return MockDocumentStore(name=name or "records", root_path=path)
