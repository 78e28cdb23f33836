"""
Data structures
"""
from typing import Dict, Optional, Sequence, Tuple
from dataclasses import dataclass
from enum import Enum

from utils.exceptions import ConfigurationError

REQUIRED_JOINTS = (
    "left_shoulder", "right_shoulder",
    "left_hip", "right_hip",
    "left_knee", "right_knee",
)

Point3D = Tuple[float, float, float]
Vector2D = Tuple[float, float]

@dataclass(frozen=True)
class Landmark:
    """Single detector landmark in normalized image coordinates"""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0

@dataclass(frozen=True)
class LandmarkLayout:
    """
    Indices of the six joints used for the abduction measurement
    within a detector's landmark list
    """
    name: str
    num_landmarks: int
    left_shoulder: int
    right_shoulder: int
    left_hip: int
    right_hip: int
    left_knee: int
    right_knee: int

    def extract(self, landmarks: Sequence[Landmark]) -> Optional[Dict[str, Landmark]]:
        """
        Pick the required joints out of a full landmark list

        Returns:
            Joint name -> landmark, or None if the list is too short
        """
        joints = {}
        for joint in REQUIRED_JOINTS:
            index = getattr(self, joint)
            if index >= len(landmarks) or landmarks[index] is None:
                return None
            joints[joint] = landmarks[index]
        return joints

MEDIAPIPE_POSE_LAYOUT = LandmarkLayout(
    name="mediapipe_pose33", num_landmarks=33,
    left_shoulder=11, right_shoulder=12,
    left_hip=23, right_hip=24,
    left_knee=25, right_knee=26,
)

COCO17_LAYOUT = LandmarkLayout(
    name="coco17", num_landmarks=17,
    left_shoulder=5, right_shoulder=6,
    left_hip=11, right_hip=12,
    left_knee=13, right_knee=14,
)

@dataclass(frozen=True)
class FilterParams:
    """One Euro filter parameters for a channel group"""
    min_cutoff: float
    beta: float
    d_cutoff: float

    def __post_init__(self):
        if self.min_cutoff <= 0 or self.d_cutoff <= 0:
            raise ConfigurationError(
                f"Filter cutoffs must be positive: min_cutoff={self.min_cutoff}, d_cutoff={self.d_cutoff}"
            )
        if self.beta < 0:
            raise ConfigurationError(f"Filter beta must be non-negative: {self.beta}")

@dataclass(frozen=True)
class FilterState:
    """Per-channel filter state; all fields unset before the first sample"""
    last_timestamp_ms: Optional[float] = None
    last_value: Optional[float] = None
    last_derivative: Optional[float] = None

@dataclass(frozen=True)
class DetectionResult:
    """Output of the pose detector for one frame"""
    landmarks: Tuple[Landmark, ...]
    timestamp_ms: float
    image_size: Optional[Tuple[int, int]] = None  # (width, height)

@dataclass(frozen=True)
class BodyMidline:
    """Shoulder/hip midpoints and the unit axis pointing from shoulders to hips"""
    shoulder_mid: Point3D
    hip_mid: Point3D
    axis: Vector2D

    @property
    def is_degenerate(self) -> bool:
        return self.axis == (0.0, 0.0)

class AngleZone(str, Enum):
    NOMINAL = "nominal"
    CAUTION = "caution"
    OUT_OF_RANGE = "out_of_range"
    UNDEFINED = "undefined"

@dataclass(frozen=True)
class AngleReading:
    """Abduction angles in degrees; None when undefined"""
    left_deg: Optional[float] = None
    right_deg: Optional[float] = None
    average_deg: Optional[float] = None

    @property
    def is_defined(self) -> bool:
        return self.average_deg is not None

@dataclass(frozen=True)
class QualityReport:
    passed: bool
    reason: str = "ok"

@dataclass(frozen=True)
class PoseState:
    """
    Published pipeline snapshot

    Replaced as a whole every tick; never mutated.
    """
    valid: bool
    timestamp_ms: Optional[float]
    midline: Optional[BodyMidline] = None
    angles: AngleReading = AngleReading()
    landmarks_used: Optional[Dict[str, Landmark]] = None
    quality: str = "no_detection"
    left_zone: AngleZone = AngleZone.UNDEFINED
    right_zone: AngleZone = AngleZone.UNDEFINED
    average_zone: AngleZone = AngleZone.UNDEFINED

    @classmethod
    def invalid(cls, timestamp_ms: Optional[float], reason: str) -> "PoseState":
        return cls(valid=False, timestamp_ms=timestamp_ms, quality=reason)

@dataclass(frozen=True)
class SampleRecord:
    """One exported sample of the recording window"""
    subject_id: str
    sample_index: int
    time_offset_ms: float
    timestamp_ms: float
    pose_timestamp_ms: Optional[float]
    valid: bool
    quality: str
    left_angle: Optional[float] = None
    right_angle: Optional[float] = None
    avg_angle: Optional[float] = None
    midline: Optional[BodyMidline] = None
    landmarks: Optional[Dict[str, Landmark]] = None
