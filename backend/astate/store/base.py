"""Record store contract.

The engine only ever talks to the store through this interface: save a
location record under its generated id, fetch/save the min/max record at its
fixed id, and page through location records with an opaque cursor.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

from astate.core.constants import PAGE_SIZE
from astate.schemas.extremes import MinMaxData
from astate.schemas.location import LocationPage, PersistedRecord


class StoreError(Exception):
    """The store could not complete a request (connectivity, server error, bad cursor)."""


class RecordNotFound(StoreError):
    """No record exists at the requested id."""

    def __init__(self, record_id: str):
        super().__init__(f"record {record_id!r} not found")
        self.record_id = record_id


class DuplicateRecord(StoreError):
    """A record with this id already exists."""


class RecordStore(ABC):
    @abstractmethod
    async def save_location(self, record: PersistedRecord) -> PersistedRecord:
        ...

    @abstractmethod
    async def fetch_minmax(self, record_id: str) -> MinMaxData:
        """Return the min/max record or raise RecordNotFound."""

    @abstractmethod
    async def save_minmax(self, record: MinMaxData) -> MinMaxData:
        ...

    @abstractmethod
    async def query_locations(
        self,
        since: Optional[datetime] = None,
        cursor: Optional[str] = None,
        limit: int = PAGE_SIZE,
    ) -> LocationPage:
        """One page of records newest first, filtered to `timestamp >= since`.

        Pass the `cursor` of the previous page to continue the same query.
        """

    async def aclose(self) -> None:
        pass
