"""Gated aggregation of block energies (integrated loudness and loudness range).

All functions take :class:`~loudmeter.block_log.EnergySnapshot` values, so the
same code serves a single stream, a histogram-backed stream and the union of
several streams.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .block_log import EnergySnapshot
from .loudness_contract import (
    ABSOLUTE_GATE_ENERGY,
    LRA_HIGH_PERCENTILE,
    LRA_LOW_PERCENTILE,
    LRA_RELATIVE_GATE_FACTOR,
    RELATIVE_GATE_FACTOR,
    energy_to_loudness,
)
from .results import Measurement


@dataclass(frozen=True, slots=True)
class GatingResult:
    """Intermediate values of the two-pass gate."""

    absolute_gated_blocks: int
    relative_threshold_energy: float
    gated_blocks: int
    gated_energy: float


def _weighted_mean(energies: np.ndarray, counts: np.ndarray) -> float:
    return float(np.dot(energies, counts) / np.sum(counts))


def gate_blocks(snapshot: EnergySnapshot) -> GatingResult | None:
    """Run both gating passes; ``None`` when no block passes the absolute gate."""

    above_absolute = snapshot.energies >= ABSOLUTE_GATE_ENERGY
    if not np.any(above_absolute & (snapshot.counts > 0)):
        return None

    energies = snapshot.energies[above_absolute]
    counts = snapshot.counts[above_absolute]
    relative_threshold = _weighted_mean(energies, counts) * RELATIVE_GATE_FACTOR

    above_relative = energies >= relative_threshold
    gated_energies = energies[above_relative]
    gated_counts = counts[above_relative]
    return GatingResult(
        absolute_gated_blocks=int(np.sum(counts)),
        relative_threshold_energy=relative_threshold,
        gated_blocks=int(np.sum(gated_counts)),
        gated_energy=_weighted_mean(gated_energies, gated_counts),
    )


def integrated_loudness(snapshot: EnergySnapshot) -> Measurement:
    result = gate_blocks(snapshot)
    if result is None:
        return Measurement.insufficient()
    return Measurement.of(energy_to_loudness(result.gated_energy))


def relative_threshold(snapshot: EnergySnapshot) -> Measurement:
    result = gate_blocks(snapshot)
    if result is None:
        return Measurement.insufficient()
    return Measurement.of(energy_to_loudness(result.relative_threshold_energy))


def weighted_percentile(sorted_values: np.ndarray, counts: np.ndarray, fraction: float) -> float:
    """Percentile of values repeated ``counts`` times, interpolating between ranks.

    Matches ``numpy.percentile(..., method="linear")`` on the expanded sequence.
    """

    total = int(np.sum(counts))
    position = (total - 1) * fraction
    lower_rank = int(np.floor(position))
    upper_rank = min(lower_rank + 1, total - 1)
    cumulative = np.cumsum(counts)
    lower_value = sorted_values[int(np.searchsorted(cumulative, lower_rank, side="right"))]
    upper_value = sorted_values[int(np.searchsorted(cumulative, upper_rank, side="right"))]
    return float(lower_value + (upper_value - lower_value) * (position - lower_rank))


def loudness_range(snapshot: EnergySnapshot) -> Measurement:
    """EBU Tech 3342 loudness range over short-term energies."""

    above_absolute = (snapshot.energies >= ABSOLUTE_GATE_ENERGY) & (snapshot.counts > 0)
    if not np.any(above_absolute):
        return Measurement.insufficient()

    energies = snapshot.energies[above_absolute]
    counts = snapshot.counts[above_absolute]
    threshold = _weighted_mean(energies, counts) * LRA_RELATIVE_GATE_FACTOR

    kept = energies >= threshold
    order = np.argsort(energies[kept], kind="stable")
    loudness = np.array([energy_to_loudness(value) for value in energies[kept][order]], dtype=np.float64)
    kept_counts = counts[kept][order]

    low = weighted_percentile(loudness, kept_counts, LRA_LOW_PERCENTILE)
    high = weighted_percentile(loudness, kept_counts, LRA_HIGH_PERCENTILE)
    return Measurement.of(max(high - low, 0.0))
