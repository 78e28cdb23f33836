"""
Pose detector interface
"""
from abc import ABC, abstractmethod
from typing import Any, Optional

from utils.data_structures import DetectionResult, LandmarkLayout


class PoseDetector(ABC):
    """
    Model adapter interface

    Implementations take a BGR frame and return the landmarks of a single
    person, or None when nobody was found. Per-frame failures raise
    ModelError; initialization failures raise DetectorInitError.
    """

    layout: LandmarkLayout

    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    async def detect(self, frame: Any, timestamp_ms: float) -> Optional[DetectionResult]: ...

    async def cleanup(self):
        pass
