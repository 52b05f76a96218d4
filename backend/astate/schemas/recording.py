from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from astate.schemas.location import LocationFix
from astate.sources.authorization import AuthorizationStatus


class RecordingStatus(BaseModel):
    is_recording: bool
    authorization: AuthorizationStatus
    # Changes every time a record is persisted; clients poll it to refresh the map.
    last_saved_at: Optional[datetime] = None
    latest_fix: Optional[LocationFix] = None


class AuthorizationUpdate(BaseModel):
    status: AuthorizationStatus


class FixResult(BaseModel):
    recorded: bool


class ImportResult(BaseModel):
    filename: str
    fixes: int
    recorded: int


class LogEntryRead(BaseModel):
    timestamp: datetime
    level: str
    category: str
    message: str
