"""4x polyphase interpolation used for true-peak detection.

Coefficients are the 48-tap interpolating FIR from ITU-R BS.1770-4 Annex 2.
Column ``p`` of the table holds the 12 taps of phase ``p``; the filter has
near-unity passband gain per phase, so interpolated values are on the input scale.
"""

from __future__ import annotations

import numpy as np

OVERSAMPLE_FACTOR = 4
PHASE_TAPS = 12
HISTORY_LENGTH = PHASE_TAPS - 1

_BS1770_POLYPHASE = np.array(
    [
        [0.0017089843750, -0.0291748046875, -0.0189208984375, -0.0083007812500],
        [0.0109863281250, 0.0292968750000, 0.0330810546875, 0.0148925781250],
        [-0.0196533203125, -0.0517578125000, -0.0582275390625, -0.0266113281250],
        [0.0332031250000, 0.0891113281250, 0.1015625000000, 0.0476074218750],
        [-0.0594482421875, -0.1665039062500, -0.2003173828125, -0.1022949218750],
        [0.1373291015625, 0.4650878906250, 0.7797851562500, 0.9721679687500],
        [0.9721679687500, 0.7797851562500, 0.4650878906250, 0.1373291015625],
        [-0.1022949218750, -0.2003173828125, -0.1665039062500, -0.0594482421875],
        [0.0476074218750, 0.1015625000000, 0.0891113281250, 0.0332031250000],
        [-0.0266113281250, -0.0582275390625, -0.0517578125000, -0.0196533203125],
        [0.0148925781250, 0.0330810546875, 0.0292968750000, 0.0109863281250],
        [-0.0083007812500, -0.0189208984375, -0.0291748046875, 0.0017089843750],
    ],
    dtype=np.float64,
)
PHASE_COEFFICIENTS = np.ascontiguousarray(_BS1770_POLYPHASE.T)


class PolyphaseInterpolator:
    """Streaming 4x interpolator keeping the last input samples of every channel."""

    def __init__(self, channel_count: int) -> None:
        self.channel_count = channel_count
        self._history = np.zeros((HISTORY_LENGTH, channel_count), dtype=np.float64)

    def reset(self, channel_count: int | None = None) -> None:
        if channel_count is not None:
            self.channel_count = channel_count
        self._history = np.zeros((HISTORY_LENGTH, self.channel_count), dtype=np.float64)

    def peak(self, frames: np.ndarray) -> np.ndarray:
        """Return the per-channel max |x| of the interpolated signal for ``frames``.

        Each input sample yields four output samples, computed from that sample
        and the eleven before it, including those carried over from earlier calls.
        """

        frame_count = frames.shape[0]
        peaks = np.zeros(self.channel_count, dtype=np.float64)
        if frame_count == 0:
            return peaks

        work = np.concatenate([self._history, frames], axis=0)
        for channel in range(self.channel_count):
            signal = work[:, channel]
            for taps in PHASE_COEFFICIENTS:
                interpolated = np.convolve(signal, taps, mode="valid")
                phase_peak = float(np.max(np.abs(interpolated)))
                if phase_peak > peaks[channel]:
                    peaks[channel] = phase_peak

        self._history = work[-HISTORY_LENGTH:].copy()
        return peaks
