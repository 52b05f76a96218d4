"""Record store reached over HTTP (another backend's /store API)."""

import logging
from datetime import datetime
from typing import Optional

import httpx

from astate.core.constants import PAGE_SIZE
from astate.core.time_utils import ensure_utc
from astate.schemas.extremes import MinMaxData
from astate.schemas.location import LocationPage, PersistedRecord
from astate.store.base import DuplicateRecord, RecordNotFound, RecordStore, StoreError

logger = logging.getLogger(__name__)


class HttpRecordStore(RecordStore):
    def __init__(self, base_url: str, timeout: float = 30.0, client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=timeout)

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            r = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise StoreError(f"{method} {path} failed: {e}") from e
        if r.status_code == 409:
            raise DuplicateRecord(f"{method} {path} failed: {r.text}")
        if r.status_code >= 400 and r.status_code != 404:
            raise StoreError(f"{method} {path} failed: {r.status_code} {r.text}")
        return r

    async def save_location(self, record: PersistedRecord) -> PersistedRecord:
        r = await self._request("POST", "/store/locations", json=record.model_dump(mode="json"))
        if r.status_code == 404:
            raise StoreError("store API not available at /store/locations")
        return PersistedRecord.model_validate(r.json())

    async def fetch_minmax(self, record_id: str) -> MinMaxData:
        r = await self._request("GET", f"/store/minmax/{record_id}")
        if r.status_code == 404:
            raise RecordNotFound(record_id)
        return MinMaxData.model_validate(r.json())

    async def save_minmax(self, record: MinMaxData) -> MinMaxData:
        r = await self._request("PUT", f"/store/minmax/{record.id}", json=record.model_dump(mode="json"))
        if r.status_code == 404:
            raise StoreError(f"store API not available at /store/minmax/{record.id}")
        return MinMaxData.model_validate(r.json())

    async def query_locations(
        self,
        since: Optional[datetime] = None,
        cursor: Optional[str] = None,
        limit: int = PAGE_SIZE,
    ) -> LocationPage:
        params = {"limit": limit}
        if since is not None:
            params["since"] = ensure_utc(since).isoformat()
        if cursor is not None:
            params["cursor"] = cursor
        r = await self._request("GET", "/store/locations", params=params)
        if r.status_code == 404:
            raise StoreError("store API not available at /store/locations")
        return LocationPage.model_validate(r.json())

    async def aclose(self) -> None:
        await self._client.aclose()
