from datetime import datetime
from enum import Enum
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from astate.api.deps import get_fetcher
from astate.engine.sync import SyncFetcher
from astate.schemas.location import PersistedRecord
from astate.store.base import StoreError

router = APIRouter(prefix="/records", tags=["records"])


class RecordWindow(str, Enum):
    recent = "recent"
    day = "24h"
    week = "week"


@router.get("", response_model=list[PersistedRecord])
async def list_records(
    since: Optional[datetime] = Query(None, description="Every record at or after this time. Overrides window."),
    window: RecordWindow = Query(RecordWindow.recent, description="recent (latest page), 24h or week"),
    fetcher: SyncFetcher = Depends(get_fetcher),
):
    """
    Persisted fixes, most recent first.

    An empty list means there are no records; a store failure is a 502, never
    an empty or partial list.
    """
    try:
        if since is not None:
            return await fetcher.fetch_since(since)
        if window == RecordWindow.day:
            return await fetcher.fetch_last_24_hours()
        if window == RecordWindow.week:
            return await fetcher.fetch_last_week()
        return await fetcher.fetch_recent()
    except StoreError as e:
        raise HTTPException(status_code=502, detail=f"Record store unavailable: {e}")
