"""
API and export data models
"""
from typing import Optional, Dict
from pydantic import BaseModel, Field
from datetime import datetime

# Base response
class BaseResponse(BaseModel):
    success: bool
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)

# Exported landmark
class LandmarkData(BaseModel):
    x: float
    y: float
    z: float
    v: float

class PointData(BaseModel):
    x: float
    y: float
    z: float

class MidlineData(BaseModel):
    S_mid: PointData
    H_mid: PointData

# One exported sample
class SampleRecordData(BaseModel):
    subjectId: str
    sampleIndex: int
    timeOffsetMs: float
    timestamp: float
    poseTimestamp: Optional[float] = None
    valid: bool
    quality: str
    avgAngle: Optional[float] = None
    leftAngle: Optional[float] = None
    rightAngle: Optional[float] = None
    midline: Optional[MidlineData] = None
    leftShoulder: Optional[LandmarkData] = None
    rightShoulder: Optional[LandmarkData] = None
    leftHip: Optional[LandmarkData] = None
    rightHip: Optional[LandmarkData] = None
    leftKnee: Optional[LandmarkData] = None
    rightKnee: Optional[LandmarkData] = None

# Live pose state
class AnglesData(BaseModel):
    left: Optional[float] = None
    right: Optional[float] = None
    average: Optional[float] = None
    leftZone: str
    rightZone: str
    averageZone: str

class PoseStateResponse(BaseModel):
    tracking: str
    valid: bool
    quality: str
    timestamp: Optional[float] = None
    angles: AnglesData
    midline: Optional[MidlineData] = None
    axis: Optional[Dict[str, float]] = None
    landmarks: Optional[Dict[str, LandmarkData]] = None

# Requests
class OpenSessionRequest(BaseModel):
    video_path: str
    backend: Optional[str] = None

class StartRecordingRequest(BaseModel):
    subject_id: str

# Responses
class SessionResponse(BaseResponse):
    video: Dict[str, float] = {}

class RecordingStatusResponse(BaseResponse):
    state: str
    subject_id: Optional[str] = None
    progress: float = 0.0
    sample_count: int = 0
    target_count: int = 0
    stop_reason: Optional[str] = None
