"""Block history used by gated aggregation.

Two interchangeable stores are provided. :class:`BlockLog` keeps every block
in temporal order, optionally bounded by a history length. The
:class:`HistogramBlockLog` keeps counts in 0.1 LU bins between -70 and +30 LUFS,
trading precision for constant memory. Both hand out immutable
:class:`EnergySnapshot` copies; the absolute gate is applied by the reader.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Iterator, Protocol

import numpy as np

from .accumulator import Block
from .loudness_contract import ABSOLUTE_GATE_LUFS, loudness_to_energy

HISTOGRAM_BIN_COUNT = 1000
HISTOGRAM_BIN_WIDTH_LU = 0.1

HISTOGRAM_BOUNDARIES = np.array(
    [loudness_to_energy(ABSOLUTE_GATE_LUFS + index * HISTOGRAM_BIN_WIDTH_LU) for index in range(HISTOGRAM_BIN_COUNT + 1)],
    dtype=np.float64,
)
HISTOGRAM_CENTRES = np.array(
    [
        loudness_to_energy(ABSOLUTE_GATE_LUFS + (index + 0.5) * HISTOGRAM_BIN_WIDTH_LU)
        for index in range(HISTOGRAM_BIN_COUNT)
    ],
    dtype=np.float64,
)


@dataclass(frozen=True, slots=True)
class EnergySnapshot:
    """Block energies with their multiplicities, in temporal or bin order."""

    energies: np.ndarray
    counts: np.ndarray

    @classmethod
    def empty(cls) -> "EnergySnapshot":
        return cls(np.zeros(0, dtype=np.float64), np.zeros(0, dtype=np.int64))

    @classmethod
    def concatenate(cls, snapshots: list["EnergySnapshot"]) -> "EnergySnapshot":
        if not snapshots:
            return cls.empty()
        return cls(
            energies=np.concatenate([snapshot.energies for snapshot in snapshots]),
            counts=np.concatenate([snapshot.counts for snapshot in snapshots]),
        )

    @property
    def total(self) -> int:
        return int(np.sum(self.counts))


class BlockStore(Protocol):
    version: int

    def append(self, block: Block) -> None: ...

    def set_max_blocks(self, max_blocks: int | None) -> None: ...

    def snapshot(self) -> EnergySnapshot: ...

    def __len__(self) -> int: ...


class BlockLog:
    """Ordered record of blocks; the oldest are evicted past ``max_blocks``."""

    def __init__(self, max_blocks: int | None = None) -> None:
        self._blocks: deque[Block] = deque(maxlen=max_blocks)
        self.version = 0

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[Block]:
        return iter(self._blocks)

    @property
    def max_blocks(self) -> int | None:
        return self._blocks.maxlen

    def append(self, block: Block) -> None:
        self._blocks.append(block)
        self.version += 1

    def set_max_blocks(self, max_blocks: int | None) -> None:
        if max_blocks == self._blocks.maxlen:
            return
        self._blocks = deque(self._blocks, maxlen=max_blocks)
        self.version += 1

    def snapshot(self) -> EnergySnapshot:
        energies = np.fromiter((block.energy for block in self._blocks), dtype=np.float64, count=len(self._blocks))
        return EnergySnapshot(energies=energies, counts=np.ones(energies.size, dtype=np.int64))


def histogram_index(energy: float) -> int:
    index = int(np.searchsorted(HISTOGRAM_BOUNDARIES, energy, side="right")) - 1
    return min(max(index, 0), HISTOGRAM_BIN_COUNT - 1)


class HistogramBlockLog:
    """Constant-memory block record; history limits do not apply."""

    def __init__(self) -> None:
        self._counts = np.zeros(HISTOGRAM_BIN_COUNT, dtype=np.int64)
        self.version = 0

    def __len__(self) -> int:
        return int(np.sum(self._counts))

    def append(self, block: Block) -> None:
        # Blocks under the absolute gate have no bin and could never pass it.
        if block.energy < HISTOGRAM_BOUNDARIES[0]:
            return
        self._counts[histogram_index(block.energy)] += 1
        self.version += 1

    def set_max_blocks(self, max_blocks: int | None) -> None:
        return None

    def snapshot(self) -> EnergySnapshot:
        occupied = np.nonzero(self._counts)[0]
        return EnergySnapshot(energies=HISTOGRAM_CENTRES[occupied].copy(), counts=self._counts[occupied].copy())


def make_block_store(histogram: bool, max_blocks: int | None = None) -> BlockStore:
    if histogram:
        return HistogramBlockLog()
    return BlockLog(max_blocks)
