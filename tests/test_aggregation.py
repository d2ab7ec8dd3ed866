import numpy as np
import pytest

from loudmeter.aggregation import (
    gate_blocks,
    integrated_loudness,
    loudness_range,
    relative_threshold,
    weighted_percentile,
)
from loudmeter.block_log import EnergySnapshot
from loudmeter.loudness_contract import loudness_to_energy
from loudmeter.results import MeasurementStatus


def _snapshot(loudness: list[float], counts: list[int] | None = None) -> EnergySnapshot:
    energies = np.array([loudness_to_energy(value) for value in loudness])
    return EnergySnapshot(energies, np.array(counts or [1] * len(loudness), dtype=np.int64))


def test_no_block_above_absolute_gate_is_insufficient() -> None:
    snapshot = _snapshot([-75.0, -90.0])

    assert gate_blocks(snapshot) is None
    assert integrated_loudness(snapshot).status is MeasurementStatus.INSUFFICIENT_DATA
    assert relative_threshold(snapshot).status is MeasurementStatus.INSUFFICIENT_DATA
    assert integrated_loudness(EnergySnapshot.empty()).status is MeasurementStatus.INSUFFICIENT_DATA


def test_constant_blocks_integrate_to_their_loudness() -> None:
    assert integrated_loudness(_snapshot([-23.0] * 10)).value == pytest.approx(-23.0)


def test_relative_gate_excludes_quiet_blocks() -> None:
    snapshot = _snapshot([-20.0, -40.0], counts=[10, 10])

    result = gate_blocks(snapshot)

    assert result is not None
    assert result.absolute_gated_blocks == 20
    assert result.gated_blocks == 10
    assert integrated_loudness(snapshot).value == pytest.approx(-20.0)
    assert relative_threshold(snapshot).value == pytest.approx(-20.0 + 10 * np.log10(1.01 / 2) - 10.0)


def test_silent_blocks_do_not_change_integrated_loudness() -> None:
    loud = _snapshot([-20.0, -23.0, -21.5])
    with_silence = EnergySnapshot.concatenate([loud, EnergySnapshot(np.zeros(50), np.ones(50, dtype=np.int64))])

    assert integrated_loudness(with_silence).value == integrated_loudness(loud).value


def test_weighted_percentile_matches_numpy_on_expanded_values() -> None:
    values = np.array([-30.0, -25.0, -22.0, -18.0])
    counts = np.array([3, 1, 5, 2])
    expanded = np.repeat(values, counts)

    for fraction in (0.0, 0.1, 0.5, 0.95, 1.0):
        assert weighted_percentile(values, counts, fraction) == pytest.approx(np.percentile(expanded, fraction * 100))


def test_loudness_range_is_spread_between_percentiles() -> None:
    loudness = list(np.linspace(-30.0, -10.0, 201))
    expected = np.percentile(loudness, 95) - np.percentile(loudness, 10)

    assert loudness_range(_snapshot(loudness)).value == pytest.approx(expected)


def test_loudness_range_drops_values_twenty_units_below_mean() -> None:
    with_outlier = _snapshot([-20.0] * 50 + [-21.0] * 50 + [-60.0] * 5)

    assert loudness_range(with_outlier).value == pytest.approx(1.0)


def test_loudness_range_of_constant_values_is_zero() -> None:
    assert loudness_range(_snapshot([-23.0] * 30)).value == 0.0


def test_loudness_range_without_values_is_insufficient() -> None:
    assert loudness_range(_snapshot([-80.0])).status is MeasurementStatus.INSUFFICIENT_DATA
