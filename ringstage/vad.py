"""RMS-based activity detection over fixed windows."""

from __future__ import annotations

from enum import Enum

import numpy as np


DEFAULT_THRESHOLD = 0.01


class VadResult(Enum):
    """Per-window classification returned by the detector."""
    ACTIVE = "active"
    INACTIVE = "inactive"


class ActivityDetector:
    """Deterministic, threshold-based detector using RMS energy."""

    def __init__(self, threshold: float = DEFAULT_THRESHOLD) -> None:
        self.threshold: float = threshold

    def process(self, window: np.ndarray) -> VadResult:
        """Classify a single window as active or inactive."""
        if self.is_active(window):
            return VadResult.ACTIVE
        return VadResult.INACTIVE

    def is_active(self, window: np.ndarray) -> bool:
        return is_active(window, self.threshold)

    @staticmethod
    def compute_rms(window: np.ndarray) -> float:
        """Compute the Root Mean Square energy of a window."""
        return float(np.sqrt(np.mean(window.astype(np.float64) ** 2)))


def is_active(window: np.ndarray, threshold: float = DEFAULT_THRESHOLD) -> bool:
    """Return True when the window's RMS is strictly above *threshold*."""
    if len(window) == 0:
        return False
    return ActivityDetector.compute_rms(window) > threshold


def window_activity(
    samples: np.ndarray,
    window_size: int,
    window_count: int,
    threshold: float = DEFAULT_THRESHOLD,
) -> np.ndarray:
    """Decide activity for the first *window_count* windows in one pass.

    Returns a boolean array; element ``k`` covers
    ``samples[k * window_size:(k + 1) * window_size]``.
    """
    if window_count <= 0:
        return np.zeros(0, dtype=bool)
    frames = samples[:window_count * window_size].reshape(window_count, window_size)
    rms = np.sqrt(np.mean(frames.astype(np.float64) ** 2, axis=1))
    return rms > threshold
