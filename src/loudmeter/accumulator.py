"""Sliding-window energy accumulation over K-weighted audio."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .errors import AllocationFailureError
from .loudness_contract import (
    HOPS_PER_BLOCK,
    HOPS_PER_SHORT_TERM,
    energy_to_loudness,
    frames_per_hop,
)


@dataclass(frozen=True, slots=True)
class Block:
    """Energies of a completed analysis window, keyed by the hop that closed it."""

    index: int
    channel_energies: tuple[float, ...]
    energy: float

    @property
    def loudness(self) -> float:
        return energy_to_loudness(self.energy)


@dataclass(frozen=True, slots=True)
class HopResult:
    """Values emitted at a 100 ms hop boundary."""

    block: Block | None
    short_term: Block | None


class RingBuffer:
    """Fixed-capacity ``(frames, channels)`` buffer of the most recent samples."""

    def __init__(self, capacity: int, channel_count: int) -> None:
        try:
            self._data = np.zeros((capacity, channel_count), dtype=np.float64)
        except (MemoryError, ValueError) as exc:
            raise AllocationFailureError(
                f"Cannot allocate a {capacity}-frame buffer for {channel_count} channels."
            ) from exc
        self.capacity = capacity
        self._write_index = 0

    def clear(self) -> None:
        self._data.fill(0.0)
        self._write_index = 0

    def write(self, frames: np.ndarray) -> None:
        count = frames.shape[0]
        if count >= self.capacity:
            self._data[:] = frames[count - self.capacity :]
            self._write_index = 0
            return
        end = self._write_index + count
        if end <= self.capacity:
            self._data[self._write_index : end] = frames
        else:
            split = self.capacity - self._write_index
            self._data[self._write_index :] = frames[:split]
            self._data[: count - split] = frames[split:]
        self._write_index = end % self.capacity

    def latest(self, count: int, skip: int = 0) -> np.ndarray:
        """Return ``count`` frames in temporal order, ending ``skip`` frames before the newest."""

        if count + skip > self.capacity:
            raise ValueError("Requested span exceeds the ring buffer capacity.")
        stop = (self._write_index - skip) % self.capacity
        start = stop - count
        if start >= 0:
            return self._data[start:stop]
        return np.concatenate([self._data[start:], self._data[:stop]], axis=0)


class BlockEnergyAccumulator:
    """Turns weighted samples into 400 ms block energies at every 100 ms hop.

    The ring buffer holds ``window_frames`` plus one hop so that any window up
    to the configured maximum can be read ending at the last hop boundary even
    while the next hop is only partially filled.
    """

    def __init__(
        self,
        sample_rate: int,
        channel_count: int,
        window_ms: int,
        *,
        short_term: bool,
    ) -> None:
        self.sample_rate = sample_rate
        self.channel_count = channel_count
        self.window_ms = window_ms
        self.emits_short_term = short_term
        self.hop_frames = frames_per_hop(sample_rate)
        self.block_frames = self.hop_frames * HOPS_PER_BLOCK
        self.short_term_frames = self.hop_frames * HOPS_PER_SHORT_TERM
        self._hops_emitted = 0
        self._allocate()

    def _allocate(self) -> None:
        minimum = self.short_term_frames if self.emits_short_term else self.block_frames
        self.window_frames = max(self.sample_rate * self.window_ms // 1000, minimum)
        self._buffer = RingBuffer(self.window_frames + self.hop_frames, self.channel_count)
        self._frames_into_hop = 0
        self._completed_hops = 0

    @property
    def frames_available(self) -> int:
        """Frames of audio up to the last hop boundary since the last reset."""

        return self._completed_hops * self.hop_frames

    def reset(self) -> None:
        """Discard in-flight audio; emitted blocks are unaffected."""

        self._buffer.clear()
        self._frames_into_hop = 0
        self._completed_hops = 0

    def reconfigure(self, sample_rate: int, channel_count: int) -> None:
        self.sample_rate = sample_rate
        self.channel_count = channel_count
        self.hop_frames = frames_per_hop(sample_rate)
        self.block_frames = self.hop_frames * HOPS_PER_BLOCK
        self.short_term_frames = self.hop_frames * HOPS_PER_SHORT_TERM
        self._allocate()

    def resize_window(self, window_ms: int) -> None:
        self.window_ms = window_ms
        self._allocate()

    def process(self, weighted: np.ndarray, weights: np.ndarray) -> list[HopResult]:
        """Consume K-weighted frames and return one result per completed hop."""

        results: list[HopResult] = []
        offset = 0
        total = weighted.shape[0]
        while offset < total:
            take = min(self.hop_frames - self._frames_into_hop, total - offset)
            self._buffer.write(weighted[offset : offset + take])
            self._frames_into_hop += take
            offset += take
            if self._frames_into_hop == self.hop_frames:
                self._frames_into_hop = 0
                self._completed_hops += 1
                results.append(self._complete_hop(weights))
        return results

    def _complete_hop(self, weights: np.ndarray) -> HopResult:
        block = None
        if self._completed_hops >= HOPS_PER_BLOCK:
            block = self._make_block(self.block_frames, weights)

        short_term = None
        if self.emits_short_term and self._completed_hops >= HOPS_PER_SHORT_TERM:
            short_term = self._make_block(self.short_term_frames, weights)
        self._hops_emitted += 1
        return HopResult(block=block, short_term=short_term)

    def _make_block(self, frame_count: int, weights: np.ndarray) -> Block:
        channel_energies = self.channel_energies(frame_count)
        return Block(
            index=self._hops_emitted,
            channel_energies=tuple(float(value) for value in channel_energies),
            energy=float(np.dot(channel_energies, weights)),
        )

    def channel_energies(self, frame_count: int) -> np.ndarray:
        """Mean square per channel over the ``frame_count`` frames before the last hop boundary."""

        window = self._buffer.latest(frame_count, skip=self._frames_into_hop)
        return np.sum(window * window, axis=0) / frame_count

    def window_energy(self, frame_count: int, weights: np.ndarray) -> float:
        return float(np.dot(self.channel_energies(frame_count), weights))

    def can_read(self, frame_count: int) -> bool:
        return frame_count <= self.window_frames

    def has_data(self, frame_count: int) -> bool:
        return 0 < frame_count <= self.frames_available

