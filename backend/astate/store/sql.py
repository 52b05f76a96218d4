"""Record store backed by the SQLAlchemy database."""

import asyncio
import base64
import binascii
import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from astate.core.constants import PAGE_SIZE
from astate.core.time_utils import ensure_utc
from astate.db import SessionLocal
from astate.models.location_record import LocationRecord
from astate.models.minmax_record import MinMaxRecord
from astate.schemas.extremes import MinMaxData
from astate.schemas.location import LocationPage, PersistedRecord
from astate.store.base import DuplicateRecord, RecordNotFound, RecordStore, StoreError

logger = logging.getLogger(__name__)


def encode_cursor(since: Optional[datetime], last: PersistedRecord) -> str:
    """Opaque continuation token: the query filter plus the last (timestamp, id) returned."""
    payload = {
        "since": ensure_utc(since).isoformat() if since is not None else None,
        "ts": ensure_utc(last.timestamp).isoformat(),
        "id": last.id,
    }
    return base64.urlsafe_b64encode(json.dumps(payload).encode()).decode()


def decode_cursor(cursor: str) -> tuple[Optional[datetime], datetime, str]:
    try:
        payload = json.loads(base64.urlsafe_b64decode(cursor.encode()))
        since = datetime.fromisoformat(payload["since"]) if payload["since"] else None
        return since, datetime.fromisoformat(payload["ts"]), str(payload["id"])
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
        raise StoreError(f"invalid cursor: {cursor!r}") from e


class SqlRecordStore(RecordStore):
    """RecordStore over a SQLAlchemy session factory.

    Sessions are blocking, so every call runs in a worker thread.
    """

    def __init__(self, session_factory=SessionLocal, max_page_size: int = PAGE_SIZE):
        self.session_factory = session_factory
        self.max_page_size = max_page_size

    @contextmanager
    def _session(self):
        db = self.session_factory()
        try:
            yield db
        except IntegrityError as e:
            db.rollback()
            raise DuplicateRecord(str(e.orig)) from e
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreError(str(e)) from e
        finally:
            db.close()

    async def save_location(self, record: PersistedRecord) -> PersistedRecord:
        return await asyncio.to_thread(self._save_location, record)

    def _save_location(self, record: PersistedRecord) -> PersistedRecord:
        with self._session() as db:
            db.add(
                LocationRecord(
                    id=record.id,
                    timestamp=ensure_utc(record.timestamp),
                    latitude=record.latitude,
                    longitude=record.longitude,
                    altitude=record.altitude,
                )
            )
            db.commit()
        return record

    async def fetch_minmax(self, record_id: str) -> MinMaxData:
        return await asyncio.to_thread(self._fetch_minmax, record_id)

    def _fetch_minmax(self, record_id: str) -> MinMaxData:
        with self._session() as db:
            row = db.get(MinMaxRecord, record_id)
            if row is None:
                raise RecordNotFound(record_id)
            return MinMaxData.model_validate(row)

    async def save_minmax(self, record: MinMaxData) -> MinMaxData:
        return await asyncio.to_thread(self._save_minmax, record)

    def _save_minmax(self, record: MinMaxData) -> MinMaxData:
        fields = record.model_dump()
        fields["last_updated"] = ensure_utc(record.last_updated)
        with self._session() as db:
            db.merge(MinMaxRecord(**fields))
            db.commit()
        return record

    async def query_locations(
        self,
        since: Optional[datetime] = None,
        cursor: Optional[str] = None,
        limit: int = PAGE_SIZE,
    ) -> LocationPage:
        return await asyncio.to_thread(self._query_locations, since, cursor, limit)

    def _query_locations(self, since, cursor, limit) -> LocationPage:
        limit = max(1, min(limit, self.max_page_size))
        after = None
        if cursor is not None:
            # A cursor continues its own query; `since` from the caller is ignored.
            since, after_ts, after_id = decode_cursor(cursor)
            after = (ensure_utc(after_ts), after_id)

        with self._session() as db:
            query = db.query(LocationRecord)
            if since is not None:
                query = query.filter(LocationRecord.timestamp >= ensure_utc(since))
            if after is not None:
                after_ts, after_id = after
                query = query.filter(
                    or_(
                        LocationRecord.timestamp < after_ts,
                        and_(LocationRecord.timestamp == after_ts, LocationRecord.id < after_id),
                    )
                )
            rows = (
                query.order_by(LocationRecord.timestamp.desc(), LocationRecord.id.desc())
                .limit(limit + 1)
                .all()
            )
            records = [PersistedRecord.model_validate(r) for r in rows[:limit]]

        next_cursor = None
        if len(rows) > limit:
            next_cursor = encode_cursor(since, records[-1])
        logger.debug("Queried %s location records (more=%s)", len(records), next_cursor is not None)
        return LocationPage(records=records, cursor=next_cursor)
