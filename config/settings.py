"""
Global settings
"""
import os
from pathlib import Path
from pydantic_settings import BaseSettings

# Project root
BASE_DIR = Path(__file__).parent.parent

class Settings(BaseSettings):
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = True

    # Output paths
    OUTPUT_DIR: str = str(BASE_DIR / "output")
    JSON_OUTPUT_DIR: str = str(BASE_DIR / "output" / "json")
    TEMP_DIR: str = str(BASE_DIR / "output" / "temp")

    # Pose detector
    POSE_BACKEND: str = "mediapipe"  # "mediapipe" | "rtmpose"
    POSE_MODEL_PATH: str = str(BASE_DIR / "model_weights" / "pose_landmarker_full.task")
    MIN_DETECTION_CONFIDENCE: float = 0.25
    MIN_PRESENCE_CONFIDENCE: float = 0.25
    MIN_TRACKING_CONFIDENCE: float = 0.25
    RTMPOSE_MODE: str = "balanced"

    # One Euro filter
    POSITION_MIN_CUTOFF: float = 2.0
    POSITION_BETA: float = 0.3
    DEPTH_MIN_CUTOFF: float = 1.0
    DEPTH_BETA: float = 0.1
    DERIVATIVE_CUTOFF: float = 1.0

    # Quality gate (fractions of the normalized frame)
    VISIBILITY_THRESHOLD: float = 0.5
    MIN_SHOULDER_WIDTH: float = 0.02
    MIN_HIP_WIDTH: float = 0.02
    MIN_TORSO_LENGTH: float = 0.05

    # Abduction zones (degrees)
    NOMINAL_MIN_DEG: float = 30.0
    NOMINAL_MAX_DEG: float = 45.0
    CAUTION_MAX_DEG: float = 60.0

    # Recording
    SAMPLE_INTERVAL_MS: int = 10
    RECORDING_DURATION_MS: int = 2000

    # Display clock driving the update scheduler
    DISPLAY_REFRESH_HZ: float = 60.0

    class Config:
        env_file = ".env"

settings = Settings()

# Create output directories
for directory in [
    settings.OUTPUT_DIR,
    settings.JSON_OUTPUT_DIR,
    settings.TEMP_DIR,
]:
    os.makedirs(directory, exist_ok=True)
