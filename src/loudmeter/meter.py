"""Loudness meter stream: owns filter state, block history and peak state.

A meter moves through ``CONFIGURED`` (constructed, no audio yet),
``STREAMING`` (at least one push) and ``CLOSED``. Queries are only answered
while streaming; every operation on a closed meter raises
:class:`~loudmeter.errors.InvalidStateError`.

A meter is not internally synchronized. Drive each instance from one thread
at a time; distinct instances share no mutable state.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

import numpy as np

from . import aggregation
from .accumulator import BlockEnergyAccumulator
from .block_log import BlockStore, EnergySnapshot, make_block_store
from .channels import ChannelMap, ChannelType, parse_channel_type
from .dsp.k_weighting import KWeightingFilter
from .errors import InvalidModeError, InvalidStateError
from .ingest import normalize_frames
from .loudness_contract import (
    BLOCK_MS,
    HOP_MS,
    MAX_CHANNEL_COUNT,
    MAX_SAMPLE_RATE_HZ,
    MIN_SAMPLE_RATE_HZ,
    SHORT_TERM_MS,
    Mode,
    energy_to_loudness,
    frames_for_ms,
    has_mode,
)
from .peaks import PeakDetector, PeakSnapshot
from .results import ConfigStatus, Measurement

if TYPE_CHECKING:
    from .utils.config import MeterConfig

LOGGER = logging.getLogger(__name__)
EVENTS = logging.getLogger("loudmeter.events")

_KNOWN_MODE_BITS = int(Mode.LRA | Mode.I | Mode.TRUE_PEAK | Mode.HISTOGRAM)


class StreamState(str, Enum):
    CONFIGURED = "configured"
    STREAMING = "streaming"
    CLOSED = "closed"


def _validate_parameters(channels: int, sample_rate: int) -> None:
    if not 1 <= channels <= MAX_CHANNEL_COUNT:
        raise ValueError(f"Channel count {channels} is outside 1..{MAX_CHANNEL_COUNT}.")
    if not MIN_SAMPLE_RATE_HZ <= sample_rate <= MAX_SAMPLE_RATE_HZ:
        raise ValueError(f"Sample rate {sample_rate}Hz is outside supported range.")


def _validate_mode(mode: int) -> Mode:
    if int(mode) & ~_KNOWN_MODE_BITS:
        raise InvalidModeError(f"Unknown mode bits in {int(mode):#x}.")
    if not has_mode(mode, Mode.M):
        raise InvalidModeError("Mode must include momentary loudness (Mode.M).")
    return Mode(int(mode))


class LoudnessMeter:
    """BS.1770 / EBU R128 measurement for one stream of interleaved audio."""

    def __init__(self, channels: int, sample_rate: int, mode: Mode | int) -> None:
        _validate_parameters(channels, sample_rate)
        self.mode = _validate_mode(mode)
        self.channels = channels
        self.sample_rate = sample_rate
        self.state = StreamState.CONFIGURED

        self.channel_map = ChannelMap(channels)
        self.max_window_ms = SHORT_TERM_MS if has_mode(self.mode, Mode.S) else BLOCK_MS
        self.max_history_ms: int | None = None

        histogram = has_mode(self.mode, Mode.HISTOGRAM)
        self._filter = KWeightingFilter(sample_rate, channels)
        self._accumulator = BlockEnergyAccumulator(
            sample_rate,
            channels,
            self.max_window_ms,
            short_term=has_mode(self.mode, Mode.LRA),
        )
        self._gating_log: BlockStore | None = (
            make_block_store(histogram) if has_mode(self.mode, Mode.I) else None
        )
        self._short_term_log: BlockStore | None = (
            make_block_store(histogram) if has_mode(self.mode, Mode.LRA) else None
        )
        self._peaks: PeakDetector | None = (
            PeakDetector(channels, true_peak=has_mode(self.mode, Mode.TRUE_PEAK))
            if has_mode(self.mode, Mode.SAMPLE_PEAK)
            else None
        )
        self._cache: dict[str, tuple[int, Measurement]] = {}

        EVENTS.info(
            "stream_configured",
            extra={"channels": channels, "sample_rate": sample_rate, "mode": int(self.mode)},
        )

    @classmethod
    def from_config(cls, config: "MeterConfig") -> "LoudnessMeter":
        meter = cls(config.channels, config.sample_rate, config.mode_flags())
        for index, channel_type in enumerate(config.channel_map or ()):
            meter.set_channel(index, channel_type)
        if config.max_window_ms is not None:
            meter.set_max_window(config.max_window_ms)
        if config.max_history_ms is not None:
            meter.set_max_history(config.max_history_ms)
        return meter

    def __enter__(self) -> "LoudnessMeter":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"LoudnessMeter(channels={self.channels}, sample_rate={self.sample_rate}, "
            f"mode={self.mode!r}, state={self.state.value})"
        )

    @property
    def closed(self) -> bool:
        return self.state is StreamState.CLOSED

    def close(self) -> None:
        """Release buffers; calling it again is a no-op."""

        if self.closed:
            return
        self.state = StreamState.CLOSED
        self._accumulator = None  # type: ignore[assignment]
        self._filter = None  # type: ignore[assignment]
        self._gating_log = None
        self._short_term_log = None
        self._peaks = None
        self._cache.clear()
        EVENTS.info("stream_closed", extra={"channels": self.channels, "sample_rate": self.sample_rate})

    # Configuration

    def set_channel(self, index: int, channel_type: ChannelType | str | int) -> ConfigStatus:
        """Assign a channel position, which sets the channel's loudness weight.

        Re-assigning the current type is a successful no-op.
        """

        self._require_open()
        self.channel_map.assign(index, parse_channel_type(channel_type))
        return ConfigStatus.SUCCESS

    def change_parameters(self, channels: int, sample_rate: int) -> ConfigStatus:
        """Switch to a new channel count and/or sample rate.

        Filter memory, in-flight audio, true-peak history and previous-push
        peaks are reset. Block history and all-time peaks are kept.
        """

        self._require_open()
        _validate_parameters(channels, sample_rate)
        if channels == self.channels and sample_rate == self.sample_rate:
            return ConfigStatus.NO_CHANGE

        if channels != self.channels:
            self.channel_map = ChannelMap(channels)
        self._filter.reconfigure(sample_rate, channels)
        self._accumulator.reconfigure(sample_rate, channels)
        if self._peaks is not None:
            self._peaks.reset_stream(channels)

        EVENTS.info(
            "parameters_changed",
            extra={
                "previous_channels": self.channels,
                "previous_sample_rate": self.sample_rate,
                "channels": channels,
                "sample_rate": sample_rate,
            },
        )
        self.channels = channels
        self.sample_rate = sample_rate
        return ConfigStatus.SUCCESS

    def set_max_window(self, window_ms: int) -> ConfigStatus:
        """Set the longest window answerable by :meth:`window`; clears in-flight audio."""

        self._require_open()
        if window_ms <= 0:
            raise ValueError("window_ms must be > 0.")
        minimum = SHORT_TERM_MS if has_mode(self.mode, Mode.S) else BLOCK_MS
        window_ms = max(window_ms, minimum)
        if window_ms == self.max_window_ms:
            return ConfigStatus.NO_CHANGE
        self._accumulator.resize_window(window_ms)
        self.max_window_ms = window_ms
        return ConfigStatus.SUCCESS

    def set_max_history(self, history_ms: int | None) -> ConfigStatus:
        """Bound block history used by integrated loudness and loudness range.

        ``None`` keeps history unbounded. Histogram-backed meters accept the
        value but always keep their full histogram.
        """

        self._require_open()
        if history_ms is not None:
            if history_ms <= 0:
                raise ValueError("history_ms must be > 0.")
            minimum = SHORT_TERM_MS if has_mode(self.mode, Mode.LRA) else BLOCK_MS
            history_ms = max(history_ms, minimum)
        if history_ms == self.max_history_ms:
            return ConfigStatus.NO_CHANGE

        max_blocks = None if history_ms is None else history_ms // HOP_MS
        for log in (self._gating_log, self._short_term_log):
            if log is not None:
                log.set_max_blocks(max_blocks)
        self.max_history_ms = history_ms
        return ConfigStatus.SUCCESS

    # Ingestion

    def push(self, samples: Any, frame_count: int | None = None) -> None:
        """Process interleaved or ``(frames, channels)`` samples.

        ``frame_count`` counts frames (one sample per channel), not samples.
        """

        self._require_open()
        frames = normalize_frames(samples, self.channels, frame_count)

        weighted = self._filter.process(frames)
        hops = self._accumulator.process(weighted, self.channel_map.weights())
        for hop in hops:
            if hop.block is not None and self._gating_log is not None:
                self._gating_log.append(hop.block)
            if hop.short_term is not None and self._short_term_log is not None:
                self._short_term_log.append(hop.short_term)
        if self._peaks is not None:
            self._peaks.update(frames)

        self.state = StreamState.STREAMING
        LOGGER.debug("frames_pushed", extra={"frames": frames.shape[0], "hops": len(hops)})

    # Queries

    def momentary(self) -> Measurement:
        """Loudness of the most recently completed 400 ms block."""

        self._require_streaming()
        return self._trailing_loudness(self._accumulator.block_frames)

    def short_term(self) -> Measurement:
        """Loudness of the last 3 s, ending at the most recent hop boundary."""

        self._require_streaming()
        self._require_mode(Mode.S, "short-term loudness")
        return self._trailing_loudness(self._accumulator.short_term_frames)

    def window(self, window_ms: int) -> Measurement:
        """Loudness of the last ``window_ms`` ms, ending at the most recent hop boundary."""

        self._require_streaming()
        if window_ms <= 0:
            raise ValueError("window_ms must be > 0.")
        frame_count = max(frames_for_ms(self.sample_rate, window_ms), 1)
        if not self._accumulator.can_read(frame_count):
            raise InvalidModeError(
                f"Window of {window_ms} ms exceeds the maximum window of {self.max_window_ms} ms."
            )
        return self._trailing_loudness(frame_count)

    def integrated(self) -> Measurement:
        """Gated integrated (programme) loudness over the retained block history."""

        self._require_streaming()
        self._require_mode(Mode.I, "integrated loudness")
        return self._cached("integrated", self._gating_log, aggregation.integrated_loudness)

    global_loudness = integrated

    def relative_threshold(self) -> Measurement:
        self._require_streaming()
        self._require_mode(Mode.I, "relative threshold")
        return self._cached("relative_threshold", self._gating_log, aggregation.relative_threshold)

    def loudness_range(self) -> Measurement:
        """Loudness range (LU) over the retained short-term history."""

        self._require_streaming()
        self._require_mode(Mode.LRA, "loudness range")
        return self._cached("loudness_range", self._short_term_log, aggregation.loudness_range)

    def sample_peak(self, channel: int) -> Measurement:
        return self._peak(channel, Mode.SAMPLE_PEAK, "sample peak", PeakDetector.sample_peak)

    def prev_sample_peak(self, channel: int) -> Measurement:
        return self._peak(channel, Mode.SAMPLE_PEAK, "sample peak", PeakDetector.prev_sample_peak)

    def true_peak(self, channel: int) -> Measurement:
        return self._peak(channel, Mode.TRUE_PEAK, "true peak", PeakDetector.true_peak)

    def prev_true_peak(self, channel: int) -> Measurement:
        return self._peak(channel, Mode.TRUE_PEAK, "true peak", PeakDetector.prev_true_peak)

    def max_sample_peak(self) -> Measurement:
        return self._max_peak(self.sample_peak)

    def max_true_peak(self) -> Measurement:
        return self._max_peak(self.true_peak)

    def peak_snapshot(self) -> PeakSnapshot:
        self._require_streaming()
        self._require_mode(Mode.SAMPLE_PEAK, "sample peak")
        return self._peaks.snapshot()  # type: ignore[union-attr]

    # Read-only views for multi-stream aggregation

    def gating_snapshot(self) -> EnergySnapshot:
        """Gating blocks so far; empty until the first push."""

        self._require_open()
        self._require_mode(Mode.I, "integrated loudness")
        if self.state is StreamState.CONFIGURED:
            return EnergySnapshot.empty()
        return self._gating_log.snapshot()  # type: ignore[union-attr]

    def short_term_snapshot(self) -> EnergySnapshot:
        self._require_open()
        self._require_mode(Mode.LRA, "loudness range")
        if self.state is StreamState.CONFIGURED:
            return EnergySnapshot.empty()
        return self._short_term_log.snapshot()  # type: ignore[union-attr]

    # Internals

    def _trailing_loudness(self, frame_count: int) -> Measurement:
        if not self._accumulator.has_data(frame_count):
            return Measurement.insufficient()
        energy = self._accumulator.window_energy(frame_count, self.channel_map.weights())
        return Measurement.of(energy_to_loudness(energy))

    def _cached(
        self,
        key: str,
        log: BlockStore | None,
        compute: Callable[[EnergySnapshot], Measurement],
    ) -> Measurement:
        assert log is not None
        cached = self._cache.get(key)
        if cached is not None and cached[0] == log.version:
            return cached[1]
        result = compute(log.snapshot())
        self._cache[key] = (log.version, result)
        return result

    def _peak(
        self,
        channel: int,
        required: Mode,
        description: str,
        read: Callable[[PeakDetector, int], float],
    ) -> Measurement:
        self._require_streaming()
        self._require_mode(required, description)
        self.channel_map.check_index(channel)
        if not self.channel_map.is_active(channel):
            return Measurement.unused_channel()
        return Measurement.of(read(self._peaks, channel))  # type: ignore[arg-type]

    def _max_peak(self, read: Callable[[int], Measurement]) -> Measurement:
        readings = [read(channel) for channel in range(self.channels)]
        values = [reading.value for reading in readings if reading.ok]
        if not values:
            return Measurement.unused_channel()
        return Measurement.of(float(np.max(values)))

    def _require_open(self) -> None:
        if self.closed:
            raise InvalidStateError("Loudness meter is closed.")

    def _require_streaming(self) -> None:
        self._require_open()
        if self.state is not StreamState.STREAMING:
            raise InvalidStateError("No audio has been pushed to the loudness meter yet.")

    def _require_mode(self, required: Mode, description: str) -> None:
        if not has_mode(self.mode, required):
            raise InvalidModeError(f"Meter mode {self.mode!r} does not enable {description}.")
