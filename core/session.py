"""
Tracking session
Owns the detector, the update scheduler, the sampler and the active source
"""
import asyncio
from typing import Callable, Optional
import logging

from analysis.metrics_exporter import RecordExporter
from core.input_handler import FrameSource, InputHandler
from core.sampler import Sampler
from core.scheduler import UpdateScheduler, wall_clock_ms
from models import get_pose_detector
from models.base import PoseDetector
from utils.data_structures import PoseState
from utils.exceptions import RecordingError, ProcessingError
from utils.file_manager import FileManager, validate_subject_code
from config.pipeline_configs import DETECTOR_CONFIG

logger = logging.getLogger(__name__)

class TrackingSession:
    """
    Wires source -> scheduler -> published state -> sampler

    Playback, scheduler and sampler run as separate asyncio tasks on one
    event loop.
    """

    def __init__(
        self,
        detector: PoseDetector,
        use_source_time: bool = False,
        sampler_config: Optional[dict] = None
    ):
        """
        Args:
            detector: pose detector
            use_source_time: timestamp ticks with the source time cursor
                instead of the wall clock (offline processing)
            sampler_config: recording window override
        """
        self.detector = detector
        self.use_source_time = use_source_time
        self.scheduler = UpdateScheduler(detector, clock=self._clock)
        self.sampler = Sampler(lambda: self.scheduler.current_state, config=sampler_config)
        self.exporter = RecordExporter()
        self.file_manager = FileManager()
        self.input_handler = InputHandler()
        self.backend: Optional[str] = None
        self.source: Optional[FrameSource] = None
        self._live = False
        self._playback_task: Optional[asyncio.Task] = None
        self._scheduler_task: Optional[asyncio.Task] = None
        self._recording_task: Optional[asyncio.Task] = None

    @classmethod
    def create(cls, backend: Optional[str] = None, **kwargs) -> "TrackingSession":
        """
        Build a session with a configured detector back-end

        Raises:
            DetectorInitError: the detector could not be initialized
        """
        backend = backend or DETECTOR_CONFIG["backend"]
        session = cls(get_pose_detector(backend), **kwargs)
        session.backend = backend
        return session

    def _clock(self) -> float:
        if self.use_source_time and self.source is not None and self.source.time_ms is not None:
            return self.source.time_ms
        return wall_clock_ms()

    @property
    def current_state(self) -> PoseState:
        return self.scheduler.current_state

    def attach(self, source: FrameSource):
        """
        Replace the active source and reset filter history
        """
        if self.source is not None and self.source is not source:
            self.source.close()
        self.source = source
        self.scheduler.attach_source(source)

    def open_video(self, video_path: str) -> FrameSource:
        source = self.input_handler.open_source(video_path)
        self.attach(source)
        return source

    def detach(self):
        self.scheduler.detach_source()
        if self.source is not None:
            self.source.close()
            self.source = None

    async def _playback_loop(self):
        """
        Advance the source at its native frame rate
        """
        while self.source is not None and not self.source.finished:
            source = self.source
            if not source.paused:
                source.advance()
            await asyncio.sleep(1.0 / getattr(source, "fps", 30.0))

    def start_live(self):
        """
        Start playback and scheduler tasks on the running loop

        Tasks that have already finished (e.g. playback of a source that
        reached its end) are started again, so a newly attached source plays.
        """
        self._live = True
        started = False
        if self._playback_task is None or self._playback_task.done():
            self._playback_task = asyncio.create_task(self._playback_loop())
            started = True
        if self._scheduler_task is None or self._scheduler_task.done():
            self._scheduler_task = asyncio.create_task(self.scheduler.run())
            started = True
        if started:
            logger.info("Live tracking tasks started")

    def _require_source(self) -> FrameSource:
        if self.source is None:
            raise ProcessingError("No source attached")
        return self.source

    def pause(self):
        """
        Hold playback on the current frame; tracking keeps the last state
        """
        self._require_source().pause()
        logger.info("Playback paused")

    def resume(self):
        self._require_source().resume()
        logger.info("Playback resumed")

    def seek_start(self):
        """
        Rewind the source to its first frame and start a fresh filter history

        Raises:
            ProcessingError: no source attached
            InputError: the source cannot seek
        """
        source = self._require_source()
        source.seek_start()
        self.scheduler.attach_source(source)
        if self._live:
            self.start_live()
        logger.info("Playback rewound to start")

    def start_recording(self, subject_id: str):
        """
        Validate the subject code and start the recording window

        Raises:
            ValidationError: bad subject code
            RecordingError: a recording is already running
        """
        validate_subject_code(subject_id)
        self.sampler.start(subject_id, now_ms=self._clock())

        # A loop left over from a cancelled window must not keep sampling
        if self._recording_task is not None and not self._recording_task.done():
            self._recording_task.cancel()
        try:
            self._recording_task = asyncio.get_running_loop().create_task(self.sampler.run())
        except RuntimeError:
            # No running loop: the caller drives sampler.tick() itself
            self._recording_task = None

    def cancel_recording(self):
        self.sampler.cancel()

    def _finalized_records(self):
        if self.sampler.is_recording:
            raise RecordingError("Recording still in progress")
        return self.sampler.records

    def export_json(self, output_path: Optional[str] = None) -> str:
        records = self._finalized_records()
        path = output_path or str(self.file_manager.export_path(self.sampler.subject_id, ".json"))
        return self.exporter.export_to_json(records, path)

    def export_csv(self, output_path: Optional[str] = None) -> str:
        records = self._finalized_records()
        path = output_path or str(self.file_manager.export_path(self.sampler.subject_id, ".csv"))
        return self.exporter.export_to_csv(records, path)

    async def run_offline(
        self,
        subject_id: str,
        record_from_ms: float = 0.0,
        on_frame: Optional[Callable[[int], None]] = None
    ) -> int:
        """
        Process the attached source frame by frame, as fast as possible

        The recording window starts at record_from_ms of source time and is
        sampled on the source time line.

        Args:
            subject_id: subject code written into every record
            record_from_ms: source time at which the window opens
            on_frame: called with the running frame count after each frame

        Returns:
            Number of frames processed
        """
        if self.source is None:
            raise ProcessingError("No source attached")
        validate_subject_code(subject_id)

        sampler = self.sampler
        frames = 0
        started = False

        def next_sample_due() -> float:
            return sampler.started_at_ms + sampler.sample_count * sampler.interval_ms

        while self.source.advance():
            source_time = self.source.time_ms
            if not started and source_time >= record_from_ms:
                sampler.start(subject_id, now_ms=record_from_ms)
                started = True

            # Samples due before this frame see the previous state
            while sampler.is_recording and next_sample_due() < source_time:
                sampler.tick()

            await self.scheduler.tick()
            frames += 1
            if on_frame is not None:
                on_frame(frames)

            while sampler.is_recording and next_sample_due() <= source_time:
                sampler.tick()

            if started and not sampler.is_recording:
                break

        # Source ended inside the window: keep sampling the last state
        while sampler.is_recording:
            sampler.tick()

        logger.info(f"Offline processing done: {frames} frames, {len(self.sampler.records)} records")
        return frames

    async def close(self):
        """
        Stop all tasks and release the source
        """
        self.scheduler.stop()
        self.sampler.cancel()
        tasks = [
            task for task in (self._playback_task, self._scheduler_task, self._recording_task)
            if task is not None
        ]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._live = False
        self._playback_task = None
        self._scheduler_task = None
        self._recording_task = None
        self.detach()
        logger.info("Tracking session closed")
