import math

import pytest

from loudmeter.errors import AllocationFailureError, InvalidStateError, MeterError
from loudmeter.loudness_contract import (
    ABSOLUTE_GATE_ENERGY,
    Mode,
    energy_to_loudness,
    frames_per_hop,
    has_mode,
    loudness_to_energy,
)
from loudmeter.results import Measurement, MeasurementStatus


def test_mode_flags_include_their_dependencies() -> None:
    assert has_mode(Mode.LRA, Mode.S)
    assert has_mode(Mode.LRA, Mode.M)
    assert has_mode(Mode.TRUE_PEAK, Mode.SAMPLE_PEAK)
    assert not has_mode(Mode.I, Mode.S)
    assert not has_mode(Mode.HISTOGRAM, Mode.M)


def test_hop_length_rounds_to_nearest_frame() -> None:
    assert frames_per_hop(48_000) == 4_800
    assert frames_per_hop(44_100) == 4_410
    assert frames_per_hop(11_025) == 1_103


def test_loudness_energy_conversion() -> None:
    assert energy_to_loudness(1.0) == pytest.approx(-0.691)
    assert energy_to_loudness(0.0) == float("-inf")
    assert energy_to_loudness(ABSOLUTE_GATE_ENERGY) == pytest.approx(-70.0)
    assert energy_to_loudness(loudness_to_energy(-23.0)) == pytest.approx(-23.0)


def test_measurement_distinguishes_silence_from_missing_data() -> None:
    silent = Measurement.of(float("-inf"))
    missing = Measurement.insufficient()

    assert silent.ok and not silent.is_finite
    assert missing.status is MeasurementStatus.INSUFFICIENT_DATA
    assert missing.value_or(-70.0) == -70.0
    assert Measurement.unused_channel().value_or(0.0) == 0.0


def test_linear_peak_to_decibels() -> None:
    assert Measurement.of(0.5).to_db().value == pytest.approx(20 * math.log10(0.5))
    assert Measurement.of(0.0).to_db().value == float("-inf")
    assert Measurement.unused_channel().to_db().status is MeasurementStatus.UNUSED_CHANNEL


def test_errors_carry_codes() -> None:
    error = AllocationFailureError("Cannot allocate buffers.")

    assert isinstance(error, MeterError)
    assert str(error) == "Cannot allocate buffers."
    assert error.as_dict() == {"code": "allocation_failure", "message": "Cannot allocate buffers."}
    with pytest.raises(MeterError, match="closed"):
        raise InvalidStateError("Loudness meter is closed.")
