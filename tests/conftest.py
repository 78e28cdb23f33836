"""
Shared test fixtures: synthetic skeletons and fake collaborators
"""
import asyncio
import math
from typing import List, Optional, Sequence

import pytest

from core.input_handler import FrameSource
from models.base import PoseDetector
from utils.data_structures import DetectionResult, Landmark, MEDIAPIPE_POSE_LAYOUT


def make_skeleton(
    left_deg: float = 35.0,
    right_deg: float = 35.0,
    thigh: float = 0.2,
    visibility: float = 0.9,
    layout=MEDIAPIPE_POSE_LAYOUT,
    **overrides
) -> List[Landmark]:
    """
    Upright subject with each thigh abducted by the given angle

    Shoulders at y=0.3, hips at y=0.6, so the body axis is (0, 1).
    """
    lh = (0.42, 0.6)
    rh = (0.58, 0.6)
    joints = {
        "left_shoulder": Landmark(0.40, 0.30, -0.1, visibility),
        "right_shoulder": Landmark(0.60, 0.30, -0.1, visibility),
        "left_hip": Landmark(lh[0], lh[1], 0.0, visibility),
        "right_hip": Landmark(rh[0], rh[1], 0.0, visibility),
        "left_knee": Landmark(
            lh[0] - thigh * math.sin(math.radians(left_deg)),
            lh[1] + thigh * math.cos(math.radians(left_deg)),
            0.05, visibility),
        "right_knee": Landmark(
            rh[0] + thigh * math.sin(math.radians(right_deg)),
            rh[1] + thigh * math.cos(math.radians(right_deg)),
            0.05, visibility),
    }
    joints.update(overrides)

    landmarks = [Landmark(0.5, 0.5, 0.0, 0.9) for _ in range(layout.num_landmarks)]
    for name, lm in joints.items():
        landmarks[getattr(layout, name)] = lm
    return landmarks


class FakeDetector(PoseDetector):
    """Returns queued landmark frames; None entries mean nothing detected"""

    layout = MEDIAPIPE_POSE_LAYOUT

    def __init__(self, frames: Optional[Sequence] = None, default=None, gate: Optional[asyncio.Event] = None):
        self.frames = list(frames or [])
        self.default = default if default is not None else make_skeleton()
        self.gate = gate
        self.calls = []
        self.closed = False

    def name(self) -> str:
        return "fake"

    async def detect(self, frame, timestamp_ms):
        self.calls.append((frame, timestamp_ms))
        if self.gate is not None:
            await self.gate.wait()
        landmarks = self.frames.pop(0) if self.frames else self.default
        if isinstance(landmarks, Exception):
            raise landmarks
        if landmarks is None:
            return None
        return DetectionResult(landmarks=tuple(landmarks), timestamp_ms=timestamp_ms)

    async def cleanup(self):
        self.closed = True


class FakeSource(FrameSource):
    """Frame source stepping through a fixed list of times"""

    def __init__(self, times_ms: Sequence[float]):
        self.times_ms = list(times_ms)
        self.index = -1
        self.closed = False
        self.paused = False
        self.fps = 30.0

    @property
    def time_ms(self):
        if self.index < 0:
            return None
        return self.times_ms[self.index]

    @property
    def frame(self):
        return f"frame-{self.index}"

    @property
    def finished(self) -> bool:
        return self.index >= len(self.times_ms) - 1

    def advance(self) -> bool:
        if self.finished:
            return False
        self.index += 1
        return True

    def seek_start(self):
        self.index = -1

    def close(self):
        self.closed = True


@pytest.fixture
def skeleton():
    return make_skeleton()


@pytest.fixture
def fake_detector():
    return FakeDetector()
