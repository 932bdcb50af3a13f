"""Error taxonomy raised by the query core.

The core never builds HTTP payloads. Each error carries a ``kind`` tag and
the status code the HTTP layer should answer with.
"""

from __future__ import annotations

from typing import Optional


class QueryError(Exception):
    kind = "QueryError"
    status_code = 500
    description = "The query could not be completed."

    def __init__(self, description: Optional[str] = None) -> None:
        super().__init__(description or self.description)

    @property
    def message(self) -> str:
        return str(self)


class InvalidTimeRangeError(QueryError):
    kind = "InvalidTimeRange"
    status_code = 406
    description = "Invalid time range. Please provide an unix timestamp: from >= 0 and to >= 0."


class InvalidFieldIndexError(QueryError):
    kind = "InvalidFieldIndex"
    status_code = 406
    description = (
        "Invalid field index. Please provide a number >= 0. Also make sure, it's not too high."
    )


class InvalidMergeCountError(QueryError):
    kind = "InvalidMergeCount"
    status_code = 406
    description = "Invalid merge count or granularity. Must be >= 1."


class InvalidItemsCountError(QueryError):
    kind = "InvalidItemsCount"
    status_code = 406
    description = "Invalid number of items. Please provide a number >= 1."


class InvalidRadiusError(QueryError):
    kind = "InvalidRadius"
    status_code = 406
    description = "Invalid radius. Please provide a number of metres >= 0."


class NoDataRecordsError(QueryError):
    kind = "NoDataRecords"
    status_code = 406
    description = "There are no sensors in the requested scope."


class SensorNotExistingError(QueryError):
    kind = "SensorNotExisting"
    status_code = 404
    description = "This sensor does not exist."

    def __init__(self, chip_id: int) -> None:
        self.chip_id = chip_id
        super().__init__(f"Sensor with chip id {chip_id} does not exist.")


class DataAccessError(QueryError):
    kind = "DataAccess"
    status_code = 500
    description = "The record store could not be read."

    def __init__(self, chip_id: Optional[int] = None, reason: Optional[str] = None) -> None:
        self.chip_id = chip_id
        detail = self.description
        if chip_id is not None:
            detail = f"Reading records of chip {chip_id} failed."
        if reason:
            detail = f"{detail[:-1]}: {reason}"
        super().__init__(detail)
