"""Record store API.

Lets another engine (e.g. the device) use this backend as its remote store;
HttpRecordStore is the client side.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from astate.core.config import settings
from astate.db import SessionLocal
from astate.schemas.extremes import MinMaxData
from astate.schemas.location import LocationPage, PersistedRecord
from astate.store.base import DuplicateRecord, RecordNotFound, StoreError
from astate.store.sql import SqlRecordStore

router = APIRouter(prefix="/store", tags=["store"])


def get_sql_store() -> SqlRecordStore:
    return SqlRecordStore(SessionLocal, max_page_size=settings.page_size)


@router.post("/locations", response_model=PersistedRecord)
async def save_location(record: PersistedRecord, store: SqlRecordStore = Depends(get_sql_store)):
    try:
        return await store.save_location(record)
    except DuplicateRecord as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/locations", response_model=LocationPage)
async def query_locations(
    since: Optional[datetime] = Query(None),
    cursor: Optional[str] = Query(None),
    limit: int = Query(400, ge=1),
    store: SqlRecordStore = Depends(get_sql_store),
):
    try:
        return await store.query_locations(since=since, cursor=cursor, limit=limit)
    except StoreError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/minmax/{record_id}", response_model=MinMaxData)
async def fetch_minmax(record_id: str, store: SqlRecordStore = Depends(get_sql_store)):
    try:
        return await store.fetch_minmax(record_id)
    except RecordNotFound:
        raise HTTPException(status_code=404, detail="Min/max record not found")


@router.put("/minmax/{record_id}", response_model=MinMaxData)
async def save_minmax(record_id: str, payload: MinMaxData, store: SqlRecordStore = Depends(get_sql_store)):
    if payload.id != record_id:
        raise HTTPException(status_code=422, detail="Record id does not match path")
    try:
        return await store.save_minmax(payload)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
