"""K-weighting pre-filter for BS.1770 loudness measurement.

The filter is a cascade of two biquads: a high shelf modelling the acoustic
effect of the head, followed by the revised low-frequency B-curve (RLB)
high-pass. Both are obtained by bilinear transform of fixed analog prototypes,
so coefficients are valid for any sample rate.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

import numpy as np
from scipy.signal import lfilter

_SHELF_F0_HZ = 1681.974450955533
_SHELF_GAIN_DB = 3.999843853973347
_SHELF_Q = 0.7071752369554196
_SHELF_VB_EXPONENT = 0.4996667741545416

_HIGHPASS_F0_HZ = 38.13547087602444
_HIGHPASS_Q = 0.5003270373238773


@dataclass(frozen=True, slots=True)
class Biquad:
    b: np.ndarray
    a: np.ndarray


def shelf_coefficients(sample_rate: int) -> Biquad:
    k = math.tan(math.pi * _SHELF_F0_HZ / sample_rate)
    vh = 10.0 ** (_SHELF_GAIN_DB / 20.0)
    vb = vh**_SHELF_VB_EXPONENT
    a0 = 1.0 + k / _SHELF_Q + k * k
    b = np.array(
        [
            (vh + vb * k / _SHELF_Q + k * k) / a0,
            2.0 * (k * k - vh) / a0,
            (vh - vb * k / _SHELF_Q + k * k) / a0,
        ],
        dtype=np.float64,
    )
    a = np.array(
        [1.0, 2.0 * (k * k - 1.0) / a0, (1.0 - k / _SHELF_Q + k * k) / a0],
        dtype=np.float64,
    )
    return Biquad(b=b, a=a)


def highpass_coefficients(sample_rate: int) -> Biquad:
    k = math.tan(math.pi * _HIGHPASS_F0_HZ / sample_rate)
    denom = 1.0 + k / _HIGHPASS_Q + k * k
    b = np.array([1.0, -2.0, 1.0], dtype=np.float64)
    a = np.array(
        [1.0, 2.0 * (k * k - 1.0) / denom, (1.0 - k / _HIGHPASS_Q + k * k) / denom],
        dtype=np.float64,
    )
    return Biquad(b=b, a=a)


class KWeightingFilter:
    """Stateful per-channel K-weighting.

    Delay memory is carried between calls through ``lfilter`` initial
    conditions, so filtering a signal in several pieces produces exactly the
    output of filtering it at once.
    """

    def __init__(self, sample_rate: int, channel_count: int) -> None:
        self.sample_rate = sample_rate
        self.channel_count = channel_count
        self.stages = (shelf_coefficients(sample_rate), highpass_coefficients(sample_rate))
        self._states = [np.zeros((2, channel_count), dtype=np.float64) for _ in self.stages]

    def reset(self) -> None:
        for state in self._states:
            state.fill(0.0)

    def reconfigure(self, sample_rate: int, channel_count: int) -> None:
        """Recompute coefficients for new parameters and clear delay memory."""

        if sample_rate != self.sample_rate:
            self.sample_rate = sample_rate
            self.stages = (shelf_coefficients(sample_rate), highpass_coefficients(sample_rate))
        self.channel_count = channel_count
        self._states = [np.zeros((2, channel_count), dtype=np.float64) for _ in self.stages]

    def process(self, frames: np.ndarray) -> np.ndarray:
        """Filter ``(frames, channels)`` float64 audio and return the weighted signal."""

        if frames.shape[0] == 0:
            return np.zeros_like(frames, dtype=np.float64)

        filtered = frames
        for index, stage in enumerate(self.stages):
            filtered, self._states[index] = lfilter(stage.b, stage.a, filtered, axis=0, zi=self._states[index])
        return filtered
