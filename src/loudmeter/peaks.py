"""Sample-peak and true-peak tracking over raw (unweighted) input."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .dsp.oversampling import PolyphaseInterpolator


@dataclass(frozen=True, slots=True)
class PeakSnapshot:
    """Per-channel peak values, linear full scale."""

    sample_peak: tuple[float, ...]
    prev_sample_peak: tuple[float, ...]
    true_peak: tuple[float, ...]
    prev_true_peak: tuple[float, ...]


class PeakDetector:
    """Running per-channel maxima of |x| and of the 4x interpolated |x|.

    "All-time" maxima never decrease; "previous" maxima only cover the most
    recent push. Reported true peaks are never below the sample peak.
    """

    def __init__(self, channel_count: int, *, true_peak: bool) -> None:
        self.channel_count = channel_count
        self.tracks_true_peak = true_peak
        self._interpolator = PolyphaseInterpolator(channel_count) if true_peak else None
        self._sample_peak = np.zeros(channel_count, dtype=np.float64)
        self._prev_sample_peak = np.zeros(channel_count, dtype=np.float64)
        self._true_peak = np.zeros(channel_count, dtype=np.float64)
        self._prev_true_peak = np.zeros(channel_count, dtype=np.float64)

    def update(self, frames: np.ndarray) -> None:
        if frames.shape[0]:
            self._prev_sample_peak = np.max(np.abs(frames), axis=0)
        else:
            self._prev_sample_peak = np.zeros(self.channel_count, dtype=np.float64)
        np.maximum(self._sample_peak, self._prev_sample_peak, out=self._sample_peak)

        if self._interpolator is not None:
            self._prev_true_peak = self._interpolator.peak(frames)
            np.maximum(self._true_peak, self._prev_true_peak, out=self._true_peak)

    def reset_stream(self, channel_count: int) -> None:
        """Drop interpolation history and previous-push values.

        All-time maxima survive for channels that still exist after a change of
        channel count.
        """

        keep = min(channel_count, self.channel_count)
        sample_peak = np.zeros(channel_count, dtype=np.float64)
        true_peak = np.zeros(channel_count, dtype=np.float64)
        sample_peak[:keep] = self._sample_peak[:keep]
        true_peak[:keep] = self._true_peak[:keep]

        self.channel_count = channel_count
        self._sample_peak = sample_peak
        self._true_peak = true_peak
        self._prev_sample_peak = np.zeros(channel_count, dtype=np.float64)
        self._prev_true_peak = np.zeros(channel_count, dtype=np.float64)
        if self._interpolator is not None:
            self._interpolator.reset(channel_count)

    def sample_peak(self, channel: int) -> float:
        return float(self._sample_peak[channel])

    def prev_sample_peak(self, channel: int) -> float:
        return float(self._prev_sample_peak[channel])

    def true_peak(self, channel: int) -> float:
        return float(max(self._true_peak[channel], self._sample_peak[channel]))

    def prev_true_peak(self, channel: int) -> float:
        return float(max(self._prev_true_peak[channel], self._prev_sample_peak[channel]))

    def snapshot(self) -> PeakSnapshot:
        channels = range(self.channel_count)
        return PeakSnapshot(
            sample_peak=tuple(self.sample_peak(channel) for channel in channels),
            prev_sample_peak=tuple(self.prev_sample_peak(channel) for channel in channels),
            true_peak=tuple(self.true_peak(channel) for channel in channels),
            prev_true_peak=tuple(self.prev_true_peak(channel) for channel in channels),
        )
