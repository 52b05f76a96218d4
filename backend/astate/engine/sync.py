"""Rebuild a view of persisted fixes from the record store."""

import logging
from datetime import datetime, timedelta
from typing import Optional

from astate.core.constants import DAY_S, PAGE_SIZE, WEEK_S
from astate.core.time_utils import utc_now
from astate.schemas.location import PersistedRecord
from astate.store.base import RecordStore

logger = logging.getLogger(__name__)


class SyncFetcher:
    def __init__(self, store: RecordStore, page_size: int = PAGE_SIZE):
        self.store = store
        self.page_size = page_size

    async def fetch_since(self, cutoff: Optional[datetime] = None) -> list[PersistedRecord]:
        """Records newest first.

        Without a cutoff: the most recent `page_size` records, one request.
        With a cutoff: every record at or after it, following cursors until
        the store reports no more. A failing page raises StoreError; no
        partial result is returned.
        """
        if cutoff is None:
            page = await self.store.query_locations(limit=self.page_size)
            recent = sorted(page.records, key=lambda r: r.timestamp, reverse=True)
            return recent[: self.page_size]

        records: list[PersistedRecord] = []
        cursor = None
        pages = 0
        while True:
            page = await self.store.query_locations(since=cutoff, cursor=cursor, limit=self.page_size)
            pages += 1
            records.extend(page.records)
            logger.debug("Fetched %s records, total: %s", len(page.records), len(records))
            cursor = page.cursor
            if cursor is None:
                break

        # Server order is not trusted across cursor boundaries.
        records.sort(key=lambda r: r.timestamp, reverse=True)
        logger.info("Fetched %s records since %s in %s pages", len(records), cutoff.isoformat(), pages)
        return records

    async def fetch_recent(self) -> list[PersistedRecord]:
        return await self.fetch_since(None)

    async def fetch_last_24_hours(self, now: Optional[datetime] = None) -> list[PersistedRecord]:
        return await self.fetch_since((now or utc_now()) - timedelta(seconds=DAY_S))

    async def fetch_last_week(self, now: Optional[datetime] = None) -> list[PersistedRecord]:
        return await self.fetch_since((now or utc_now()) - timedelta(seconds=WEEK_S))
