import io
import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from astate.api.deps import get_session
from astate.engine.session import RecordingNotAuthorized, TrackingSession
from astate.schemas.extremes import ExtremaRead
from astate.schemas.location import LocationFix
from astate.schemas.recording import (
    AuthorizationUpdate,
    FixResult,
    ImportResult,
    RecordingStatus,
)
from astate.sources.activity_files import ActivityFileError, read_activity_fixes

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/recording", tags=["recording"])


def _status(session: TrackingSession) -> RecordingStatus:
    return RecordingStatus(
        is_recording=session.is_recording,
        authorization=session.authorization,
        last_saved_at=session.last_saved_at,
        latest_fix=session.latest_fix,
    )


@router.get("", response_model=RecordingStatus)
def recording_status(session: TrackingSession = Depends(get_session)):
    return _status(session)


@router.post("/start", response_model=RecordingStatus)
async def start_recording(session: TrackingSession = Depends(get_session)):
    try:
        await session.start_recording()
    except RecordingNotAuthorized as e:
        raise HTTPException(status_code=403, detail=str(e))
    return _status(session)


@router.post("/stop", response_model=RecordingStatus)
async def stop_recording(session: TrackingSession = Depends(get_session)):
    await session.stop_recording()
    return _status(session)


@router.put("/authorization", response_model=RecordingStatus)
async def update_authorization(payload: AuthorizationUpdate, session: TrackingSession = Depends(get_session)):
    await session.set_authorization(payload.status)
    return _status(session)


@router.post("/fixes", response_model=FixResult)
async def deliver_fix(fix: LocationFix, session: TrackingSession = Depends(get_session)):
    recorded = await session.deliver_fix(fix)
    return FixResult(recorded=recorded)


@router.post("/import", response_model=ImportResult)
async def import_activity(
    file: UploadFile = File(...),
    session: TrackingSession = Depends(get_session),
):
    """Replay a .gpx/.fit file through the recording policy, paced by its own timestamps."""
    filename = file.filename or "import"
    data = await file.read()
    try:
        fixes = read_activity_fixes(filename, io.BytesIO(data))
    except ActivityFileError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if not session.is_recording:
        logger.info("Importing %s while not recording; only the latest fix is kept", filename)
    recorded = await session.replay(fixes)
    return ImportResult(filename=filename, fixes=len(fixes), recorded=recorded)


@router.get("/extremes", response_model=ExtremaRead)
def get_extremes(session: TrackingSession = Depends(get_session)):
    return session.tracker.state.to_read()
