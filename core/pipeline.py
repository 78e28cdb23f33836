"""
Per-tick processing pipeline
Runs filter -> geometry -> quality gate and builds the published pose state
"""
from typing import Optional, Sequence
import logging

from analysis.landmark_filter import FilterBank
from analysis.angle_calculator import AngleCalculator
from analysis.quality_gate import QualityGate
from utils.data_structures import (
    Landmark, LandmarkLayout, PoseState, MEDIAPIPE_POSE_LAYOUT
)

logger = logging.getLogger(__name__)

class PosePipeline:
    """
    Synchronous part of a scheduler tick
    """

    def __init__(
        self,
        layout: LandmarkLayout = MEDIAPIPE_POSE_LAYOUT,
        filter_bank: Optional[FilterBank] = None,
        angle_calculator: Optional[AngleCalculator] = None,
        quality_gate: Optional[QualityGate] = None
    ):
        """
        Args:
            layout: joint indices of the detector's landmark list
            filter_bank: session filter state
            angle_calculator: geometry engine
            quality_gate: plausibility checks
        """
        self.layout = layout
        self.filter_bank = filter_bank or FilterBank()
        self.angle_calculator = angle_calculator or AngleCalculator()
        self.quality_gate = quality_gate or QualityGate()

        logger.info(f"Pose pipeline initialized (layout: {layout.name})")

    def reset(self):
        """
        Start a new session: drop all filter history
        """
        self.filter_bank.reset()

    def process(
        self,
        timestamp_ms: float,
        landmarks: Optional[Sequence[Landmark]]
    ) -> PoseState:
        """
        Turn one detector output into a pose state

        Args:
            timestamp_ms: tick time in milliseconds
            landmarks: detected landmarks, None or empty if nothing was found

        Returns:
            New pose state, possibly marked invalid
        """
        if not landmarks:
            return PoseState.invalid(timestamp_ms, "no_detection")

        smoothed = self.filter_bank.filter_landmarks(timestamp_ms, landmarks)
        joints = self.layout.extract(smoothed)
        if joints is None:
            return PoseState.invalid(timestamp_ms, "missing_landmarks")

        report = self.quality_gate.evaluate(joints)
        if not report.passed:
            logger.debug(f"Frame rejected at {timestamp_ms:.1f} ms: {report.reason}")
            return PoseState.invalid(timestamp_ms, report.reason)

        calc = self.angle_calculator
        midline = calc.compute_midline(
            joints["left_shoulder"], joints["right_shoulder"],
            joints["left_hip"], joints["right_hip"]
        )
        angles = calc.compute_angles(joints, midline)
        if not angles.is_defined:
            return PoseState.invalid(timestamp_ms, "degenerate_geometry")

        return PoseState(
            valid=True,
            timestamp_ms=timestamp_ms,
            midline=midline,
            angles=angles,
            landmarks_used=joints,
            quality="ok",
            left_zone=calc.classify_angle(angles.left_deg),
            right_zone=calc.classify_angle(angles.right_deg),
            average_zone=calc.classify_angle(angles.average_deg),
        )
