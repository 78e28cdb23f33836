"""
Pose detector back-ends
"""
from typing import Dict, Optional
import logging

from models.base import PoseDetector
from utils.exceptions import DetectorInitError
from config.pipeline_configs import DETECTOR_CONFIG

logger = logging.getLogger(__name__)

# Detector instances by back-end name
_detector_instances: Dict[str, PoseDetector] = {}

def get_pose_detector(backend: Optional[str] = None) -> PoseDetector:
    """
    Get a detector instance (one per back-end)

    Args:
        backend: "mediapipe" or "rtmpose", defaults to the configured back-end

    Returns:
        Pose detector

    Raises:
        DetectorInitError: unknown back-end or model failed to load
    """
    backend = backend or DETECTOR_CONFIG["backend"]

    if backend not in _detector_instances:
        if backend == "mediapipe":
            from models.landmarker.detector import MediaPipePoseDetector
            _detector_instances[backend] = MediaPipePoseDetector()
        elif backend == "rtmpose":
            from models.rtmpose.detector import RTMPoseDetector
            _detector_instances[backend] = RTMPoseDetector()
        else:
            raise DetectorInitError(f"Unknown pose backend: {backend}")
        logger.info(f"Pose detector ready: {backend}")

    return _detector_instances[backend]

async def release_detectors():
    """
    Close all detector instances
    """
    for backend, detector in list(_detector_instances.items()):
        await detector.cleanup()
        del _detector_instances[backend]

__all__ = ['PoseDetector', 'get_pose_detector', 'release_detectors']
