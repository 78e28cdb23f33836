"""
Angle calculation module
"""
import numpy as np
from typing import Dict, Optional, Sequence
import logging

from utils.data_structures import AngleReading, AngleZone, BodyMidline, Landmark
from utils.exceptions import ConfigurationError
from config.pipeline_configs import ANGLE_CONFIG

logger = logging.getLogger(__name__)

class AngleCalculator:
    """
    Body midline and hip abduction angle calculator
    """

    def __init__(self, config: Optional[dict] = None):
        """
        Args:
            config: geometry configuration, defaults to ANGLE_CONFIG
        """
        self.config = config or ANGLE_CONFIG
        self.min_vector_norm = self.config["min_vector_norm"]

        zones = self.config["zones"]
        self.nominal_min = zones["nominal_min"]
        self.nominal_max = zones["nominal_max"]
        self.caution_max = zones["caution_max"]
        if not 0 <= self.nominal_min <= self.nominal_max <= self.caution_max <= 180:
            raise ConfigurationError(f"Invalid angle zone thresholds: {zones}")

        logger.info("Angle calculator initialized")

    def unit_vector(self, vector: Sequence[float]) -> np.ndarray:
        """
        Normalize a 2D vector

        Returns:
            Unit vector, or the zero vector if the input is too short
        """
        vec = np.asarray(vector[:2], dtype=float)
        norm = np.linalg.norm(vec)
        if not np.isfinite(norm) or norm <= self.min_vector_norm:
            return np.zeros(2)
        return vec / norm

    def angle_between(self, vec1: Sequence[float], vec2: Sequence[float]) -> Optional[float]:
        """
        Angle between two 2D vectors

        Args:
            vec1: first vector
            vec2: second vector

        Returns:
            Angle in degrees within [0, 180], or None if either vector is degenerate
        """
        u1 = self.unit_vector(vec1)
        u2 = self.unit_vector(vec2)
        if not u1.any() or not u2.any():
            return None

        cos_angle = np.clip(np.dot(u1, u2), -1.0, 1.0)
        return float(np.degrees(np.arccos(cos_angle)))

    def compute_midline(
        self,
        left_shoulder: Landmark,
        right_shoulder: Landmark,
        left_hip: Landmark,
        right_hip: Landmark
    ) -> BodyMidline:
        """
        Compute the body midline from shoulders and hips

        The axis points from the shoulder midpoint toward the hip midpoint and
        is sign-corrected so its vertical component is non-negative.
        """
        shoulder_mid = (
            (left_shoulder.x + right_shoulder.x) / 2,
            (left_shoulder.y + right_shoulder.y) / 2,
            (left_shoulder.z + right_shoulder.z) / 2,
        )
        hip_mid = (
            (left_hip.x + right_hip.x) / 2,
            (left_hip.y + right_hip.y) / 2,
            (left_hip.z + right_hip.z) / 2,
        )

        axis = self.unit_vector((hip_mid[0] - shoulder_mid[0], hip_mid[1] - shoulder_mid[1]))
        if axis[1] < 0 or (axis[1] == 0 and axis[0] < 0):
            axis = -axis

        return BodyMidline(
            shoulder_mid=shoulder_mid,
            hip_mid=hip_mid,
            axis=(float(axis[0]) + 0.0, float(axis[1]) + 0.0),
        )

    def abduction_angle(self, hip: Landmark, knee: Landmark, axis: Sequence[float]) -> Optional[float]:
        """
        Angle between the thigh (hip -> knee) and the body axis

        Returns:
            Angle in degrees, or None if undefined
        """
        angle = self.angle_between((knee.x - hip.x, knee.y - hip.y), axis)
        if angle is None:
            return None
        # Supplementary fold; arccos already bounds the result to [0, 180]
        if angle > 180:
            angle = 360 - angle
        return angle

    def compute_angles(self, joints: Dict[str, Landmark], midline: BodyMidline) -> AngleReading:
        """
        Compute left, right and average abduction angles

        Args:
            joints: required joints by name
            midline: body midline of the same frame

        Returns:
            Angle reading; undefined fields are None
        """
        if midline.is_degenerate:
            return AngleReading()

        left = self.abduction_angle(joints["left_hip"], joints["left_knee"], midline.axis)
        right = self.abduction_angle(joints["right_hip"], joints["right_knee"], midline.axis)
        average = (left + right) / 2 if left is not None and right is not None else None
        return AngleReading(left_deg=left, right_deg=right, average_deg=average)

    def classify_angle(self, angle: Optional[float]) -> AngleZone:
        """
        Classify an abduction angle into a display zone
        """
        if angle is None:
            return AngleZone.UNDEFINED
        if self.nominal_min <= angle <= self.nominal_max:
            return AngleZone.NOMINAL
        if self.nominal_max < angle <= self.caution_max:
            return AngleZone.CAUTION
        return AngleZone.OUT_OF_RANGE
