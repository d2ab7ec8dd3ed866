"""Normalization of pushed sample buffers into the engine's frame format.

Every ingestion path ends in a C-contiguous ``(frames, channels)`` float64
array where integer full scale maps to ``[-1.0, 1.0)``:

* ``int16``: divided by ``32768``.
* ``int32``: divided by ``2147483648``.
* ``float32`` / ``float64``: passed through unchanged, so overs above 1.0
  remain measurable by the peak detectors.
"""

from __future__ import annotations

from typing import Any

import numpy as np

INTEGER_FULL_SCALE: dict[np.dtype, float] = {
    np.dtype(np.int16): 32_768.0,
    np.dtype(np.int32): 2_147_483_648.0,
}
FLOAT_DTYPES: tuple[np.dtype, ...] = (np.dtype(np.float32), np.dtype(np.float64))


def supported_dtypes() -> tuple[str, ...]:
    return tuple(str(dtype) for dtype in (*INTEGER_FULL_SCALE, *FLOAT_DTYPES))


def _as_frames(samples: np.ndarray, channel_count: int) -> np.ndarray:
    if samples.ndim == 1:
        if samples.size % channel_count:
            raise ValueError(
                f"Interleaved buffer of {samples.size} samples is not a whole number of "
                f"{channel_count}-channel frames."
            )
        return samples.reshape(-1, channel_count)
    if samples.ndim == 2:
        if samples.shape[1] != channel_count:
            raise ValueError(f"Expected {channel_count} channels per frame, got {samples.shape[1]}.")
        return samples
    raise ValueError("Samples must be a 1D interleaved or 2D (frames, channels) array.")


def normalize_frames(samples: Any, channel_count: int, frame_count: int | None = None) -> np.ndarray:
    """Return the first ``frame_count`` frames of ``samples`` as float64 full-scale audio."""

    array = np.asarray(samples)
    if array.dtype not in INTEGER_FULL_SCALE and array.dtype not in FLOAT_DTYPES:
        if array.size:
            supported = ", ".join(supported_dtypes())
            raise TypeError(f"Unsupported sample type {array.dtype}. Supported types: {supported}.")
        array = array.astype(np.float64)

    frames = _as_frames(array, channel_count)
    if frame_count is not None:
        if frame_count < 0:
            raise ValueError("frame_count must be >= 0.")
        if frame_count > frames.shape[0]:
            raise ValueError(f"frame_count {frame_count} exceeds the {frames.shape[0]} frames provided.")
        frames = frames[:frame_count]

    scale = INTEGER_FULL_SCALE.get(frames.dtype)
    normalized = frames.astype(np.float64)
    if scale is not None:
        normalized /= scale
    return np.ascontiguousarray(normalized)
