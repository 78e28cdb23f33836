"""
MediaPipe Pose Landmarker detector
Runs the pose landmarker in VIDEO mode on decoded frames
"""
import cv2
import numpy as np
from typing import Any, Dict, Optional
import logging

from models.base import PoseDetector
from utils.exceptions import DetectorInitError, ModelError
from utils.data_structures import DetectionResult, Landmark, MEDIAPIPE_POSE_LAYOUT
from config.pipeline_configs import DETECTOR_CONFIG

logger = logging.getLogger(__name__)

try:
    import mediapipe as mp
    from mediapipe.tasks import python as mp_tasks
    from mediapipe.tasks.python import vision as mp_vision
    MEDIAPIPE_AVAILABLE = True
except ImportError as e:
    MEDIAPIPE_AVAILABLE = False
    logger.warning(f"mediapipe import failed: {e}")

class MediaPipePoseDetector(PoseDetector):
    """
    MediaPipe pose detector (33-point layout, single person)
    """

    layout = MEDIAPIPE_POSE_LAYOUT

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Args:
            config: detector options, defaults to DETECTOR_CONFIG["mediapipe"]
        """
        if not MEDIAPIPE_AVAILABLE:
            raise DetectorInitError("mediapipe is not available, install it with: pip install mediapipe")

        self.config = config or DETECTOR_CONFIG["mediapipe"]
        self._last_timestamp_ms = -1
        self._landmarker = None
        self._load_model()
        logger.info("MediaPipe pose detector initialized")

    def name(self) -> str:
        return "mediapipe_pose"

    def _load_model(self):
        """
        Create the pose landmarker
        """
        try:
            delegate = mp_tasks.BaseOptions.Delegate[self.config.get("delegate", "CPU")]
            options = mp_vision.PoseLandmarkerOptions(
                base_options=mp_tasks.BaseOptions(
                    model_asset_path=self.config["model_path"],
                    delegate=delegate,
                ),
                running_mode=mp_vision.RunningMode.VIDEO,
                num_poses=self.config.get("num_poses", 1),
                min_pose_detection_confidence=self.config["min_pose_detection_confidence"],
                min_pose_presence_confidence=self.config["min_pose_presence_confidence"],
                min_tracking_confidence=self.config["min_tracking_confidence"],
                output_segmentation_masks=False,
            )
            self._landmarker = mp_vision.PoseLandmarker.create_from_options(options)
        except Exception as e:
            logger.error(f"Failed to load pose landmarker: {str(e)}")
            raise DetectorInitError(f"Failed to load pose landmarker: {str(e)}")

    async def detect(self, frame: np.ndarray, timestamp_ms: float) -> Optional[DetectionResult]:
        """
        Detect landmarks on a BGR frame

        Args:
            frame: BGR image
            timestamp_ms: frame time, must increase between calls

        Returns:
            Landmarks of the first pose, or None
        """
        if self._landmarker is None:
            raise ModelError("Pose landmarker is closed")

        # VIDEO mode needs strictly increasing integer timestamps
        ts = max(int(timestamp_ms), self._last_timestamp_ms + 1)
        self._last_timestamp_ms = ts

        try:
            rgb = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            image = mp.Image(image_format=mp.ImageFormat.SRGB, data=np.ascontiguousarray(rgb))
            result = self._landmarker.detect_for_video(image, ts)
        except Exception as e:
            logger.error(f"Pose detection failed: {str(e)}")
            raise ModelError(f"Pose detection failed: {str(e)}")

        if not result.pose_landmarks:
            return None

        landmarks = tuple(
            Landmark(
                x=float(p.x),
                y=float(p.y),
                z=float(p.z if p.z is not None else 0.0),
                visibility=float(p.visibility if p.visibility is not None else 1.0),
            )
            for p in result.pose_landmarks[0]
        )
        height, width = frame.shape[:2]
        return DetectionResult(landmarks=landmarks, timestamp_ms=timestamp_ms, image_size=(width, height))

    async def cleanup(self):
        try:
            if self._landmarker is not None:
                self._landmarker.close()
                self._landmarker = None
            logger.info("MediaPipe detector closed")
        except Exception as e:
            logger.error(f"MediaPipe cleanup failed: {str(e)}")
