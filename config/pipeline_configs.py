"""
Pipeline configuration
"""
from pathlib import Path
from config.settings import settings

# One Euro filter parameters per channel group
FILTER_CONFIG = {
    "position": {
        "min_cutoff": settings.POSITION_MIN_CUTOFF,
        "beta": settings.POSITION_BETA,
        "d_cutoff": settings.DERIVATIVE_CUTOFF,
    },
    "depth": {
        "min_cutoff": settings.DEPTH_MIN_CUTOFF,
        "beta": settings.DEPTH_BETA,
        "d_cutoff": settings.DERIVATIVE_CUTOFF,
    },
    "min_dt_s": 1e-6,
}

# Quality gate
QUALITY_CONFIG = {
    "visibility_threshold": settings.VISIBILITY_THRESHOLD,
    "min_shoulder_width": settings.MIN_SHOULDER_WIDTH,
    "min_hip_width": settings.MIN_HIP_WIDTH,
    "min_torso_length": settings.MIN_TORSO_LENGTH,
}

# Geometry and zone classification
ANGLE_CONFIG = {
    "min_vector_norm": 1e-6,
    "zones": {
        "nominal_min": settings.NOMINAL_MIN_DEG,
        "nominal_max": settings.NOMINAL_MAX_DEG,
        "caution_max": settings.CAUTION_MAX_DEG,
    },
}

# Recording window
SAMPLER_CONFIG = {
    "interval_ms": settings.SAMPLE_INTERVAL_MS,
    "duration_ms": settings.RECORDING_DURATION_MS,
}

SCHEDULER_CONFIG = {
    "refresh_hz": settings.DISPLAY_REFRESH_HZ,
}

# Pose detector back-ends
DETECTOR_CONFIG = {
    "backend": settings.POSE_BACKEND,
    "mediapipe": {
        "model_path": str(Path(settings.POSE_MODEL_PATH)),
        "delegate": "CPU",
        "num_poses": 1,
        "min_pose_detection_confidence": settings.MIN_DETECTION_CONFIDENCE,
        "min_pose_presence_confidence": settings.MIN_PRESENCE_CONFIDENCE,
        "min_tracking_confidence": settings.MIN_TRACKING_CONFIDENCE,
    },
    "rtmpose": {
        "model_name": "rtmo",
        "mode": settings.RTMPOSE_MODE,
        "backend": "onnxruntime",
        "device": "cpu",
    },
}

# Export precision (decimal places)
EXPORT_CONFIG = {
    "coordinate_decimals": 5,
    "angle_decimals": 2,
    "time_decimals": 1,
}
