"""
Input handling
Frame sources with a time cursor that the update scheduler polls
"""
import cv2
import numpy as np
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from pathlib import Path
import logging

from utils.exceptions import InputError

logger = logging.getLogger(__name__)

SUPPORTED_VIDEO_FORMATS = {'.mp4', '.avi', '.mov', '.mkv', '.webm'}

class FrameSource(ABC):
    """
    A source of frames whose time cursor moves independently of the scheduler
    """

    paused = False

    @property
    @abstractmethod
    def time_ms(self) -> Optional[float]:
        """Time of the current frame, None before the first frame"""

    @property
    @abstractmethod
    def frame(self) -> Any:
        """Current frame handle passed to the detector"""

    @property
    @abstractmethod
    def finished(self) -> bool: ...

    @abstractmethod
    def advance(self) -> bool:
        """Move to the next frame; False at the end of the source"""

    def pause(self):
        self.paused = True

    def resume(self):
        self.paused = False

    def seek_start(self):
        """Rewind to the first frame"""
        raise InputError(f"{type(self).__name__} cannot seek")

    def close(self):
        pass

class VideoFrameSource(FrameSource):
    """
    Video file decoded with OpenCV
    """

    def __init__(self, video_path: str):
        """
        Args:
            video_path: path of the video file
        """
        self.video_path = str(video_path)
        self._cap = cv2.VideoCapture(self.video_path)
        if not self._cap.isOpened():
            raise InputError(f"Cannot open video file: {video_path}")

        fps = self._cap.get(cv2.CAP_PROP_FPS)
        self.info: Dict[str, Any] = {
            'width': int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            'height': int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
            'fps': fps if fps and fps > 0 else 30.0,
            'frame_count': int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT)),
        }
        self.info['duration'] = self.info['frame_count'] / self.info['fps']

        self.paused = False
        self._frame: Optional[np.ndarray] = None
        self._frame_index = -1
        self._finished = False

        logger.info(
            f"Video opened: {self.video_path} "
            f"({self.info['width']}x{self.info['height']}, {self.info['fps']:.1f}fps, {self.info['frame_count']} frames)"
        )

    @property
    def fps(self) -> float:
        return self.info['fps']

    @property
    def time_ms(self) -> Optional[float]:
        if self._frame_index < 0:
            return None
        return self._frame_index * 1000.0 / self.fps

    @property
    def frame(self) -> Optional[np.ndarray]:
        return self._frame

    @property
    def finished(self) -> bool:
        return self._finished

    def advance(self) -> bool:
        if self._finished or self._cap is None:
            return False
        ret, frame = self._cap.read()
        if not ret:
            self._finished = True
            logger.info(f"End of video: {self.video_path}")
            return False
        self._frame = frame
        self._frame_index += 1
        return True

    def seek_start(self):
        """
        Rewind to the first frame
        """
        if self._cap is None:
            raise InputError(f"Video source is closed: {self.video_path}")
        self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
        self._frame = None
        self._frame_index = -1
        self._finished = False

    def close(self):
        if self._cap is not None:
            self._cap.release()
            self._cap = None

class InputHandler:
    """
    Opens frame sources from files
    """

    def __init__(self):
        self.supported_video_formats = SUPPORTED_VIDEO_FORMATS

    def open_source(self, file_path: str) -> VideoFrameSource:
        """
        Open a video file as a frame source

        Args:
            file_path: input file path

        Returns:
            Frame source positioned before the first frame
        """
        path = Path(file_path)
        if not path.exists():
            raise InputError(f"File not found: {path}")

        extension = path.suffix.lower()
        if extension not in self.supported_video_formats:
            raise InputError(f"Unsupported file format: {extension}")

        return VideoFrameSource(str(path))
