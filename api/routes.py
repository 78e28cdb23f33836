"""
API routes
"""
from fastapi import APIRouter, UploadFile, File, HTTPException
from fastapi.responses import FileResponse
from typing import Optional
from pathlib import Path
import uuid
import logging

from api.schemas import (
    AnglesData, LandmarkData, MidlineData, OpenSessionRequest, PointData,
    PoseStateResponse, RecordingStatusResponse, SessionResponse, StartRecordingRequest
)
from core.session import TrackingSession
from utils.data_structures import PoseState
from utils.file_manager import FileManager
from utils.exceptions import (
    DetectorInitError, ExportError, FileManagerError, InputError, ProcessingError,
    RecordingError, ValidationError
)

logger = logging.getLogger(__name__)

router = APIRouter()

file_manager = FileManager()

# Active tracking session (single operator station)
_session: Optional[TrackingSession] = None

def get_session() -> TrackingSession:
    if _session is None:
        raise HTTPException(status_code=404, detail="No active session")
    return _session

def set_session(session: Optional[TrackingSession]):
    global _session
    _session = session

def pose_state_to_response(state: PoseState, tracking: str) -> PoseStateResponse:
    """
    Read-only view of the published state for renderers
    """
    midline = None
    axis = None
    if state.valid and state.midline is not None:
        s, h = state.midline.shoulder_mid, state.midline.hip_mid
        midline = MidlineData(
            S_mid=PointData(x=s[0], y=s[1], z=s[2]),
            H_mid=PointData(x=h[0], y=h[1], z=h[2]),
        )
        axis = {"x": state.midline.axis[0], "y": state.midline.axis[1]}

    landmarks = None
    if state.valid and state.landmarks_used:
        landmarks = {
            name: LandmarkData(x=lm.x, y=lm.y, z=lm.z, v=lm.visibility)
            for name, lm in state.landmarks_used.items()
        }

    return PoseStateResponse(
        tracking=tracking,
        valid=state.valid,
        quality=state.quality,
        timestamp=state.timestamp_ms,
        angles=AnglesData(
            left=state.angles.left_deg,
            right=state.angles.right_deg,
            average=state.angles.average_deg,
            leftZone=state.left_zone.value,
            rightZone=state.right_zone.value,
            averageZone=state.average_zone.value,
        ),
        midline=midline,
        axis=axis,
        landmarks=landmarks,
    )

def _recording_status(session: TrackingSession, message: str) -> RecordingStatusResponse:
    sampler = session.sampler
    return RecordingStatusResponse(
        success=True,
        message=message,
        state=sampler.state.value,
        subject_id=sampler.subject_id,
        progress=sampler.progress,
        sample_count=sampler.sample_count,
        target_count=sampler.target_count,
        stop_reason=sampler.stop_reason,
    )

async def _open_session(video_path: str, backend: Optional[str]) -> SessionResponse:
    global _session
    try:
        # A different back-end needs a new detector, hence a new session
        if _session is None or (backend is not None and backend != _session.backend):
            session = TrackingSession.create(backend)
            if _session is not None:
                await _session.close()
            _session = session
        source = _session.open_video(video_path)
    except DetectorInitError as e:
        logger.error(f"Detector setup failed: {str(e)}")
        raise HTTPException(status_code=503, detail=f"Detector setup failed: {str(e)}")
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))

    _session.start_live()
    return SessionResponse(
        success=True,
        message="Tracking started",
        video={k: float(v) for k, v in getattr(source, "info", {}).items()},
    )

@router.post("/session", response_model=SessionResponse)
async def open_session(request: OpenSessionRequest):
    """
    Start tracking a video file on disk
    """
    return await _open_session(request.video_path, request.backend)

@router.post("/session/upload", response_model=SessionResponse)
async def upload_session(file: UploadFile = File(...), backend: Optional[str] = None):
    """
    Upload a video and start tracking it
    """
    if not file_manager.validate_file(file.filename or ""):
        raise HTTPException(status_code=400, detail="Unsupported file format")
    try:
        file_path = await file_manager.save_upload_file(file, str(uuid.uuid4()))
    except FileManagerError as e:
        raise HTTPException(status_code=500, detail=f"Upload failed: {str(e)}")
    return await _open_session(file_path, backend)

@router.delete("/session", response_model=SessionResponse)
async def close_session():
    """
    Stop tracking and drop the session
    """
    session = get_session()
    await session.close()
    set_session(None)
    return SessionResponse(success=True, message="Session closed")

def _playback_control(action: str, message: str) -> SessionResponse:
    session = get_session()
    try:
        getattr(session, action)()
    except ProcessingError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return SessionResponse(success=True, message=message)

@router.post("/session/pause", response_model=SessionResponse)
async def pause_session():
    """
    Hold playback on the current frame
    """
    return _playback_control("pause", "Playback paused")

@router.post("/session/resume", response_model=SessionResponse)
async def resume_session():
    return _playback_control("resume", "Playback resumed")

@router.post("/session/seek_start", response_model=SessionResponse)
async def seek_session_start():
    """
    Rewind the video to its first frame; filter history starts over
    """
    return _playback_control("seek_start", "Playback rewound to start")

@router.get("/state", response_model=PoseStateResponse)
async def get_state():
    """
    Latest published pose state
    """
    session = get_session()
    return pose_state_to_response(session.current_state, session.scheduler.state.value)

@router.post("/recording", response_model=RecordingStatusResponse)
async def start_recording(request: StartRecordingRequest):
    """
    Start a fixed-length recording window
    """
    session = get_session()
    try:
        session.start_recording(request.subject_id)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RecordingError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return _recording_status(session, "Recording started")

@router.get("/recording", response_model=RecordingStatusResponse)
async def recording_status():
    session = get_session()
    return _recording_status(session, "ok")

@router.delete("/recording", response_model=RecordingStatusResponse)
async def cancel_recording():
    session = get_session()
    session.cancel_recording()
    return _recording_status(session, "Recording stopped")

@router.get("/recording/export")
async def export_recording(format: str = "json"):
    """
    Export the finished recording as JSON or CSV
    """
    session = get_session()
    try:
        if format == "json":
            path = session.export_json()
            media_type = "application/json"
        elif format == "csv":
            path = session.export_csv()
            media_type = "text/csv"
        else:
            raise HTTPException(status_code=400, detail=f"Unsupported export format: {format}")
    except RecordingError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except ExportError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return FileResponse(path=path, filename=Path(path).name, media_type=media_type)
