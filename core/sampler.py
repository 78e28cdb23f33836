"""
Fixed-interval sampler
Assembles the exportable record sequence from the published pose state
"""
import asyncio
from enum import Enum
from typing import Callable, List, Optional, Tuple
import logging

from utils.data_structures import PoseState, SampleRecord
from utils.exceptions import ConfigurationError, RecordingError
from config.pipeline_configs import SAMPLER_CONFIG

logger = logging.getLogger(__name__)

class SamplerState(str, Enum):
    STOPPED = "stopped"
    RECORDING = "recording"

class Sampler:
    """
    Recording window sampler

    Record times come from a logical clock (sample index x interval), so the
    record count and offsets do not depend on timer jitter.
    """

    def __init__(
        self,
        state_provider: Callable[[], PoseState],
        config: Optional[dict] = None
    ):
        """
        Args:
            state_provider: returns the latest published pose state
            config: sampler configuration, defaults to SAMPLER_CONFIG
        """
        self.state_provider = state_provider
        self.config = config or SAMPLER_CONFIG
        self.interval_ms = self.config["interval_ms"]
        self.duration_ms = self.config["duration_ms"]
        if self.interval_ms <= 0 or self.duration_ms < self.interval_ms:
            raise ConfigurationError(
                f"Invalid recording window: interval={self.interval_ms}ms, duration={self.duration_ms}ms"
            )
        self.target_count = int(self.duration_ms // self.interval_ms)

        self.state = SamplerState.STOPPED
        self.subject_id: Optional[str] = None
        self.started_at_ms: Optional[float] = None
        self.window_end_ms: Optional[float] = None
        self.stop_reason: Optional[str] = None
        self._records: List[SampleRecord] = []
        self._count = 0
        self._window = 0

    @property
    def is_recording(self) -> bool:
        return self.state is SamplerState.RECORDING

    @property
    def sample_count(self) -> int:
        return self._count

    @property
    def progress(self) -> float:
        return min(1.0, self._count / self.target_count)

    @property
    def records(self) -> Tuple[SampleRecord, ...]:
        return tuple(self._records)

    def start(self, subject_id: str, now_ms: float = 0.0):
        """
        Begin a recording window

        Args:
            subject_id: operator-supplied subject code
            now_ms: start time in milliseconds

        Raises:
            RecordingError: a recording is already active
        """
        if self.is_recording:
            raise RecordingError("A recording is already in progress")

        self._records = []
        self._count = 0
        self._window += 1
        self.subject_id = subject_id
        self.started_at_ms = now_ms
        self.window_end_ms = now_ms + self.duration_ms
        self.stop_reason = None
        self.state = SamplerState.RECORDING
        logger.info(f"Recording started for {subject_id} ({self.duration_ms} ms, every {self.interval_ms} ms)")

    def tick(self) -> Optional[SampleRecord]:
        """
        Take one sample of the current pose state

        Returns:
            The appended record, or None when not recording
        """
        if not self.is_recording:
            return None

        record = self._build_record(self.state_provider())
        self._records.append(record)
        self._count += 1

        if self._count >= self.target_count:
            self._finish("completed")
        return record

    def cancel(self):
        """
        Stop early; records collected so far are kept
        """
        if self.is_recording:
            self._finish("cancelled")

    def _finish(self, reason: str):
        self.state = SamplerState.STOPPED
        self.stop_reason = reason
        valid = sum(1 for r in self._records if r.valid)
        logger.info(f"Recording {reason}: {len(self._records)} records ({valid} valid)")

    def _build_record(self, pose: PoseState) -> SampleRecord:
        offset_ms = self._count * self.interval_ms
        common = dict(
            subject_id=self.subject_id,
            sample_index=self._count,
            time_offset_ms=float(offset_ms),
            timestamp_ms=float(self.started_at_ms + offset_ms),
            pose_timestamp_ms=pose.timestamp_ms,
        )
        if not pose.valid:
            return SampleRecord(valid=False, quality=pose.quality or "no_detection", **common)

        return SampleRecord(
            valid=True,
            quality=pose.quality,
            left_angle=pose.angles.left_deg,
            right_angle=pose.angles.right_deg,
            avg_angle=pose.angles.average_deg,
            midline=pose.midline,
            landmarks=dict(pose.landmarks_used) if pose.landmarks_used else None,
            **common
        )

    async def run(self):
        """
        Tick every interval until the window is complete or cancelled

        Exits as well once a newer window has been started, so a loop left
        over from a cancelled window never samples the next one.
        """
        window = self._window
        loop = asyncio.get_running_loop()
        interval_s = self.interval_ms / 1000.0
        deadline = loop.time()
        while self.is_recording and self._window == window:
            self.tick()
            deadline += interval_s
            await asyncio.sleep(max(0.0, deadline - loop.time()))
