"""
Landmark smoothing module (One Euro filter)
"""
import math
import numpy as np
from typing import List, Optional, Sequence
import logging

from utils.data_structures import FilterParams, FilterState, Landmark
from config.pipeline_configs import FILTER_CONFIG

logger = logging.getLogger(__name__)

AXES = ("x", "y", "z")

def smoothing_factor(dt, cutoff):
    """
    Exponential smoothing coefficient for a first-order low-pass filter

    Works on floats and numpy arrays alike.
    """
    tau = 1.0 / (2 * math.pi * cutoff)
    return 1.0 / (1.0 + tau / dt)

class OneEuroFilter:
    """
    Speed-adaptive low-pass filter for a single scalar channel

    Reference form of the per-channel update that FilterBank vectorizes.
    """

    def __init__(self, params: FilterParams, min_dt_s: float = 1e-6):
        """
        Args:
            params: cutoff/beta parameters
            min_dt_s: lower bound for the time step in seconds
        """
        self.params = params
        self.min_dt_s = min_dt_s
        self._t_prev: Optional[float] = None
        self._x_prev: Optional[float] = None
        self._dx_prev: Optional[float] = None

    @property
    def initialized(self) -> bool:
        return self._t_prev is not None

    @property
    def state(self) -> FilterState:
        return FilterState(self._t_prev, self._x_prev, self._dx_prev)

    def reset(self):
        self._t_prev = None
        self._x_prev = None
        self._dx_prev = None

    def update(self, timestamp_ms: float, value: float) -> float:
        """
        Filter one sample

        Args:
            timestamp_ms: sample time in milliseconds
            value: raw value

        Returns:
            Smoothed value
        """
        if self._t_prev is None:
            self._t_prev = timestamp_ms
            self._x_prev = value
            self._dx_prev = 0.0
            return value

        dt = max(self.min_dt_s, (timestamp_ms - self._t_prev) / 1000.0)

        # Derivative estimate, smoothed with a fixed cutoff
        dx = (value - self._x_prev) / dt
        a_d = smoothing_factor(dt, self.params.d_cutoff)
        dx_hat = a_d * dx + (1 - a_d) * self._dx_prev

        # Faster motion raises the cutoff
        cutoff = self.params.min_cutoff + self.params.beta * abs(dx_hat)
        a = smoothing_factor(dt, cutoff)
        x_hat = a * value + (1 - a) * self._x_prev

        self._t_prev = max(self._t_prev, timestamp_ms)
        self._x_prev = x_hat
        self._dx_prev = dx_hat
        return x_hat

class FilterBank:
    """
    One Euro filter state for every (landmark, axis) channel of a session

    State lives in fixed-size arrays of shape (num_landmarks, 3) and the
    whole landmark frame is filtered in one vectorized step. Every channel
    produces the same output and state as a separate OneEuroFilter fed the
    same samples; the scalar filter is the reference for this class.
    """

    def __init__(self, config: Optional[dict] = None):
        """
        Args:
            config: filter configuration, defaults to FILTER_CONFIG
        """
        self.config = config or FILTER_CONFIG
        self.position_params = FilterParams(**self.config["position"])
        self.depth_params = FilterParams(**self.config["depth"])
        self.min_dt_s = self.config.get("min_dt_s", 1e-6)

        # Per-axis parameters: x, y use position params, z uses depth params
        axis_params = [self.position_params, self.position_params, self.depth_params]
        self._min_cutoff = np.array([p.min_cutoff for p in axis_params])
        self._beta = np.array([p.beta for p in axis_params])
        self._d_cutoff = np.array([p.d_cutoff for p in axis_params])

        self.reset()
        logger.info("Filter bank initialized")

    @property
    def size(self) -> int:
        return self._initialized.shape[0]

    def reset(self, num_landmarks: int = 0):
        """
        Clear all channel state

        Args:
            num_landmarks: arena size to allocate
        """
        shape = (num_landmarks, len(AXES))
        self._t_prev = np.zeros(shape)
        self._x_prev = np.zeros(shape)
        self._dx_prev = np.zeros(shape)
        self._initialized = np.zeros(shape, dtype=bool)

    def is_initialized(self, landmark_index: int, axis: int) -> bool:
        if landmark_index >= self.size:
            return False
        return bool(self._initialized[landmark_index, axis])

    def channel_state(self, landmark_index: int, axis: int) -> FilterState:
        if not self.is_initialized(landmark_index, axis):
            return FilterState()
        return FilterState(
            float(self._t_prev[landmark_index, axis]),
            float(self._x_prev[landmark_index, axis]),
            float(self._dx_prev[landmark_index, axis]),
        )

    def filter_values(self, timestamp_ms: float, values: np.ndarray) -> np.ndarray:
        """
        Filter a full frame of raw coordinates

        Args:
            timestamp_ms: frame time in milliseconds
            values: raw coordinates, shape (num_landmarks, 3)

        Returns:
            Smoothed coordinates with the same shape
        """
        values = np.asarray(values, dtype=float)
        if values.shape[0] != self.size:
            if self.size:
                logger.warning(f"Landmark count changed {self.size} -> {values.shape[0]}, resetting filters")
            self.reset(values.shape[0])

        finite = np.isfinite(values)
        first = ~self._initialized & finite
        rest = self._initialized & finite
        out = values.copy()

        if rest.any():
            dt = np.maximum(self.min_dt_s, (timestamp_ms - self._t_prev) / 1000.0)
            dx = (values - self._x_prev) / dt
            a_d = smoothing_factor(dt, self._d_cutoff)
            dx_hat = a_d * dx + (1 - a_d) * self._dx_prev
            cutoff = self._min_cutoff + self._beta * np.abs(dx_hat)
            a = smoothing_factor(dt, cutoff)
            x_hat = a * values + (1 - a) * self._x_prev

            out[rest] = x_hat[rest]
            self._x_prev[rest] = x_hat[rest]
            self._dx_prev[rest] = dx_hat[rest]
            self._t_prev[rest] = np.maximum(self._t_prev[rest], timestamp_ms)

        if first.any():
            self._x_prev[first] = values[first]
            self._dx_prev[first] = 0.0
            self._t_prev[first] = timestamp_ms
            self._initialized[first] = True

        return out

    def filter_landmarks(
        self,
        timestamp_ms: float,
        landmarks: Sequence[Landmark]
    ) -> List[Landmark]:
        """
        Smooth the spatial coordinates of a landmark frame

        Visibility is passed through unchanged.
        """
        raw = np.array([[lm.x, lm.y, lm.z] for lm in landmarks], dtype=float).reshape(-1, len(AXES))
        smoothed = self.filter_values(timestamp_ms, raw)
        return [
            Landmark(
                x=float(row[0]),
                y=float(row[1]),
                z=float(row[2]),
                visibility=lm.visibility,
            )
            for row, lm in zip(smoothed, landmarks)
        ]
