from datetime import datetime, timezone


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Return `dt` in UTC, assuming UTC when it is naive.

    SQLite hands back naive datetimes even for timezone-aware columns, and
    activity files are inconsistent about offsets, so every timestamp that
    enters the engine passes through here.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_local_datetime(dt, tz_name: str | None = None):
    """Convert a datetime from source tz (assume UTC if naive) to local or given tz.

    - If `tz_name` is 'local' or None: use system local timezone.
    - If `tz_name` is IANA tz name (e.g., 'America/New_York'): use that.
    """
    dt = ensure_utc(dt)
    if tz_name and tz_name != "local":
        from zoneinfo import ZoneInfo, ZoneInfoNotFoundError
        try:
            return dt.astimezone(ZoneInfo(tz_name))
        except ZoneInfoNotFoundError:
            return dt.astimezone()
    return dt.astimezone()


def format_clock_ms(dt: datetime) -> str:
    """Format as 'HH:MM:SS.mmm', the layout used by the log export."""
    return dt.strftime("%H:%M:%S.") + f"{dt.microsecond // 1000:03d}"
