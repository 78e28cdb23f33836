"""
Update scheduler
Runs one pipeline tick per new source frame and publishes the pose state
"""
import asyncio
import time
from enum import Enum
from typing import Callable, Optional
import logging

from core.input_handler import FrameSource
from core.pipeline import PosePipeline
from models.base import PoseDetector
from utils.data_structures import PoseState
from utils.exceptions import DetectorInitError, ModelError
from config.pipeline_configs import SCHEDULER_CONFIG

logger = logging.getLogger(__name__)

def wall_clock_ms() -> float:
    return time.perf_counter() * 1000.0

class SchedulerState(str, Enum):
    IDLE = "idle"
    TRACKING = "tracking"

class UpdateScheduler:
    """
    Drives detector -> pipeline ticks from a steady clock

    A tick does work only when the source's time cursor has moved since the
    last processed tick. The detector call is the only await inside a tick;
    the result is published with a single assignment.
    """

    def __init__(
        self,
        detector: PoseDetector,
        pipeline: Optional[PosePipeline] = None,
        clock: Callable[[], float] = wall_clock_ms,
        config: Optional[dict] = None
    ):
        """
        Args:
            detector: pose detector
            pipeline: processing pipeline, built for the detector's layout if omitted
            clock: millisecond clock used to timestamp detector calls
            config: scheduler configuration, defaults to SCHEDULER_CONFIG
        """
        self.detector = detector
        self.pipeline = pipeline or PosePipeline(layout=detector.layout)
        self.clock = clock
        self.config = config or SCHEDULER_CONFIG

        self.state = SchedulerState.IDLE
        self.source: Optional[FrameSource] = None
        self.ticks_processed = 0
        self.ticks_skipped = 0

        self._current = PoseState.invalid(None, "no_detection")
        self._last_source_time: Optional[float] = None
        self._last_timestamp_ms: Optional[float] = None
        self._generation = 0
        self._running = False

    @property
    def current_state(self) -> PoseState:
        """Latest published pose state"""
        return self._current

    def attach_source(self, source: FrameSource):
        """
        Start tracking a new source; filter history is reset
        """
        self._generation += 1
        self.pipeline.reset()
        self.source = source
        self._last_source_time = None
        self.state = SchedulerState.TRACKING
        logger.info(f"Tracking started (session {self._generation})")

    def detach_source(self):
        """
        Stop tracking; the last published state stays in place
        """
        if self.state is SchedulerState.IDLE:
            return
        self._generation += 1
        self.source = None
        self.state = SchedulerState.IDLE
        logger.info("Tracking stopped")

    def _next_timestamp(self) -> float:
        timestamp_ms = self.clock()
        if self._last_timestamp_ms is not None and timestamp_ms <= self._last_timestamp_ms:
            timestamp_ms = self._last_timestamp_ms + 1e-3
        self._last_timestamp_ms = timestamp_ms
        return timestamp_ms

    async def tick(self) -> bool:
        """
        Run one scheduler step

        Returns:
            True if a new pose state was published
        """
        source = self.source
        if self.state is not SchedulerState.TRACKING or source is None:
            return False

        source_time = source.time_ms
        if source_time is None or source_time == self._last_source_time:
            self.ticks_skipped += 1
            return False

        generation = self._generation
        timestamp_ms = self._next_timestamp()
        try:
            result = await self.detector.detect(source.frame, timestamp_ms)
        except DetectorInitError:
            raise
        except ModelError as e:
            logger.warning(f"Detection failed at {timestamp_ms:.1f} ms: {str(e)}")
            result = None

        if generation != self._generation:
            # Source changed while the detector was running
            return False

        self._last_source_time = source_time
        landmarks = result.landmarks if result is not None else None
        self._current = self.pipeline.process(timestamp_ms, landmarks)
        self.ticks_processed += 1
        return True

    async def run(self, refresh_hz: Optional[float] = None):
        """
        Tick at the display refresh rate until stop() is called
        """
        interval = 1.0 / (refresh_hz or self.config["refresh_hz"])
        self._running = True
        logger.info(f"Scheduler loop started ({1.0 / interval:.0f} Hz)")
        try:
            while self._running:
                await self.tick()
                await asyncio.sleep(interval)
        finally:
            self._running = False
            logger.info("Scheduler loop stopped")

    def stop(self):
        self._running = False
