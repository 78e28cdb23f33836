"""
RTMPose detector
Based on rtmlib; models are downloaded on first use
"""
import numpy as np
from typing import Any, Dict, Optional
import logging

from models.base import PoseDetector
from utils.exceptions import DetectorInitError, ModelError
from utils.data_structures import COCO17_LAYOUT, DetectionResult, Landmark
from config.pipeline_configs import DETECTOR_CONFIG

logger = logging.getLogger(__name__)

try:
    from rtmlib import Body
    RTMLIB_AVAILABLE = True
except ImportError as e:
    RTMLIB_AVAILABLE = False
    logger.warning(f"rtmlib import failed: {e}")

class RTMPoseDetector(PoseDetector):
    """
    RTMPose detector (COCO-17 layout)

    rtmlib gives pixel coordinates and per-keypoint scores; coordinates are
    normalized to the frame size, depth is 0 and the score stands in for
    visibility.
    """

    layout = COCO17_LAYOUT

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Args:
            config: detector options, defaults to DETECTOR_CONFIG["rtmpose"]
        """
        if not RTMLIB_AVAILABLE:
            raise DetectorInitError("rtmlib is not available, install it with: pip install rtmlib")

        self.config = config or DETECTOR_CONFIG["rtmpose"]
        self.model_name = self.config.get("model_name", "rtmo")
        self.mode = self.config.get("mode", "balanced")
        self.body_model = None
        self._load_model()
        logger.info("RTMPose detector initialized")

    def name(self) -> str:
        return f"rtmpose_{self.model_name}"

    def _load_model(self):
        """
        Load the RTMPose model (rtmlib downloads it automatically)
        """
        try:
            logger.info(f"Loading RTMPose model: {self.model_name} ({self.mode})")
            self.body_model = Body(
                pose=self.model_name,
                to_openpose=False,  # COCO-17 output
                mode=self.mode,
                backend=self.config.get("backend", "onnxruntime"),
                device=self.config.get("device", "cpu"),
            )
        except Exception as e:
            logger.error(f"Failed to load RTMPose model: {str(e)}")
            raise DetectorInitError(f"Failed to load RTMPose model: {str(e)}")

    async def detect(self, frame: np.ndarray, timestamp_ms: float) -> Optional[DetectionResult]:
        """
        Detect the most confident person on a BGR frame

        Args:
            frame: BGR image
            timestamp_ms: frame time in milliseconds

        Returns:
            Normalized landmarks, or None
        """
        if self.body_model is None:
            raise ModelError("RTMPose model is not initialized")

        try:
            keypoints, scores = self.body_model(frame)
        except Exception as e:
            logger.error(f"Pose detection failed: {str(e)}")
            raise ModelError(f"Pose detection failed: {str(e)}")

        if keypoints is None or len(keypoints) == 0:
            return None

        best = int(np.argmax(np.mean(scores, axis=1)))
        height, width = frame.shape[:2]
        landmarks = tuple(
            Landmark(
                x=float(x) / width,
                y=float(y) / height,
                z=0.0,
                visibility=float(np.clip(score, 0.0, 1.0)),
            )
            for (x, y), score in zip(keypoints[best], scores[best])
        )
        return DetectionResult(landmarks=landmarks, timestamp_ms=timestamp_ms, image_size=(width, height))

    async def cleanup(self):
        self.body_model = None
        logger.info("RTMPose detector closed")
