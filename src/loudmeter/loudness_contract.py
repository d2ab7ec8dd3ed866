"""Measurement contract shared by every loudness and peak path.

Invariants
----------
* Gating blocks are 400 ms long and start every 100 ms (75% overlap).
* Block energies are weighted channel mean squares; loudness is
  ``LOUDNESS_OFFSET_LU + 10 * log10(energy)``.
* The absolute gate and both relative gates are compared in the energy domain.
"""

from __future__ import annotations

import math
from enum import IntFlag

LOUDNESS_OFFSET_LU = -0.691

HOP_MS = 100
BLOCK_MS = 400
SHORT_TERM_MS = 3_000
HOPS_PER_BLOCK = BLOCK_MS // HOP_MS
HOPS_PER_SHORT_TERM = SHORT_TERM_MS // HOP_MS

ABSOLUTE_GATE_LUFS = -70.0
RELATIVE_GATE_LU = -10.0
LRA_RELATIVE_GATE_LU = -20.0
LRA_LOW_PERCENTILE = 0.10
LRA_HIGH_PERCENTILE = 0.95

MIN_SAMPLE_RATE_HZ = 5
MAX_SAMPLE_RATE_HZ = 2_822_400
MAX_CHANNEL_COUNT = 64


class Mode(IntFlag):
    """Measurement capabilities enabled for a stream.

    Composite members carry the bits of the capabilities they depend on, so
    ``Mode.LRA`` also grants short-term and momentary queries.
    """

    M = 1 << 0
    S = (1 << 1) | M
    I = (1 << 2) | M
    LRA = (1 << 3) | S
    SAMPLE_PEAK = (1 << 4) | M
    TRUE_PEAK = (1 << 5) | M | SAMPLE_PEAK
    HISTOGRAM = 1 << 6


def has_mode(mode: int, required: Mode) -> bool:
    return (int(mode) & int(required)) == int(required)


def frames_per_hop(sample_rate: int) -> int:
    return (sample_rate + 5) // 10


def frames_for_ms(sample_rate: int, duration_ms: int) -> int:
    return sample_rate * duration_ms // 1000


def energy_to_loudness(energy: float) -> float:
    if energy <= 0.0:
        return float("-inf")
    return LOUDNESS_OFFSET_LU + 10.0 * math.log10(energy)


def loudness_to_energy(loudness: float) -> float:
    return 10.0 ** ((loudness - LOUDNESS_OFFSET_LU) / 10.0)


ABSOLUTE_GATE_ENERGY = loudness_to_energy(ABSOLUTE_GATE_LUFS)
RELATIVE_GATE_FACTOR = 10.0 ** (RELATIVE_GATE_LU / 10.0)
LRA_RELATIVE_GATE_FACTOR = 10.0 ** (LRA_RELATIVE_GATE_LU / 10.0)
