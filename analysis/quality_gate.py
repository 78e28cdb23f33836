"""
Pose quality gate
"""
import math
from typing import Dict, Optional
import logging

from utils.data_structures import Landmark, QualityReport, REQUIRED_JOINTS
from config.pipeline_configs import QUALITY_CONFIG

logger = logging.getLogger(__name__)

def _distance_2d(a, b) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])

def _midpoint(a: Landmark, b: Landmark):
    return ((a.x + b.x) / 2, (a.y + b.y) / 2)

class QualityGate:
    """
    Decides whether the six required joints of a frame can be trusted
    """

    def __init__(self, config: Optional[dict] = None):
        self.config = config or QUALITY_CONFIG
        self.visibility_threshold = self.config["visibility_threshold"]
        self.min_shoulder_width = self.config["min_shoulder_width"]
        self.min_hip_width = self.config["min_hip_width"]
        self.min_torso_length = self.config["min_torso_length"]

    def evaluate(self, joints: Optional[Dict[str, Landmark]]) -> QualityReport:
        """
        Run visibility and skeleton plausibility checks

        Args:
            joints: required joints by name, None when nothing was detected

        Returns:
            Quality report with the first failing reason
        """
        if not joints:
            return QualityReport(False, "no_detection")
        if any(joints.get(name) is None for name in REQUIRED_JOINTS):
            return QualityReport(False, "missing_landmarks")

        for name in REQUIRED_JOINTS:
            lm = joints[name]
            if not all(math.isfinite(v) for v in (lm.x, lm.y, lm.z)):
                return QualityReport(False, "non_finite")

        for name in REQUIRED_JOINTS:
            visibility = joints[name].visibility
            if not math.isfinite(visibility) or visibility < self.visibility_threshold:
                logger.debug(f"{name} visibility {visibility:.3f} below threshold")
                return QualityReport(False, "low_visibility")

        ls, rs = joints["left_shoulder"], joints["right_shoulder"]
        lh, rh = joints["left_hip"], joints["right_hip"]

        shoulder_width = _distance_2d((ls.x, ls.y), (rs.x, rs.y))
        if not math.isfinite(shoulder_width) or shoulder_width <= self.min_shoulder_width:
            return QualityReport(False, "degenerate_shoulders")

        hip_width = _distance_2d((lh.x, lh.y), (rh.x, rh.y))
        if not math.isfinite(hip_width) or hip_width <= self.min_hip_width:
            return QualityReport(False, "degenerate_hips")

        torso_length = _distance_2d(_midpoint(ls, rs), _midpoint(lh, rh))
        if not math.isfinite(torso_length) or torso_length <= self.min_torso_length:
            return QualityReport(False, "degenerate_torso")

        return QualityReport(True)
