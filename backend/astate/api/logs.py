from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from astate.core import logs
from astate.schemas.recording import LogEntryRead

router = APIRouter(prefix="/logs", tags=["logs"])


def _buffer() -> logs.LogBuffer:
    if logs.log_buffer is None:
        raise HTTPException(status_code=503, detail="Logging not configured")
    return logs.log_buffer


@router.get("", response_model=list[LogEntryRead])
def list_logs(level: str | None = None):
    """Newest first, optionally only one level (INFO, WARNING, ...)."""
    entries = _buffer().entries()
    if level:
        entries = [e for e in entries if e.level == level.upper()]
    return [
        LogEntryRead(timestamp=e.timestamp, level=e.level, category=e.category, message=e.message)
        for e in entries
    ]


@router.get("/export", response_class=PlainTextResponse)
def export_logs():
    return _buffer().export()


@router.delete("")
def clear_logs():
    _buffer().clear()
    return {"message": "Logs cleared"}
