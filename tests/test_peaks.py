import numpy as np
import pytest

from loudmeter.dsp.oversampling import PHASE_COEFFICIENTS, PolyphaseInterpolator
from loudmeter.peaks import PeakDetector


def _quarter_rate_square(frames: int) -> np.ndarray:
    pattern = np.array([1.0, 1.0, -1.0, -1.0])
    return np.tile(pattern, frames // 4)[:, np.newaxis]


def test_each_phase_has_near_unity_dc_gain() -> None:
    np.testing.assert_allclose(PHASE_COEFFICIENTS.sum(axis=1), 1.0, atol=0.03)


def test_quarter_rate_square_overshoots_between_samples() -> None:
    detector = PeakDetector(1, true_peak=True)
    detector.update(_quarter_rate_square(4_800))

    assert detector.sample_peak(0) == 1.0
    assert detector.true_peak(0) > 1.3


def test_interpolator_streaming_matches_single_call() -> None:
    rng = np.random.default_rng(3)
    audio = rng.uniform(-1.0, 1.0, size=(2_000, 2))

    whole = PolyphaseInterpolator(2).peak(audio)

    streamed = PolyphaseInterpolator(2)
    peaks = [streamed.peak(audio[start:stop]) for start, stop in [(0, 5), (5, 17), (17, 1_500), (1_500, 2_000)]]

    np.testing.assert_allclose(np.max(peaks, axis=0), whole, rtol=1e-12)


def test_previous_peak_covers_only_last_push() -> None:
    detector = PeakDetector(2, true_peak=True)
    detector.update(np.array([[0.9, -0.4], [0.1, 0.2]]))
    detector.update(np.array([[0.3, 0.1], [-0.2, -0.05]]))

    assert detector.sample_peak(0) == pytest.approx(0.9)
    assert detector.sample_peak(1) == pytest.approx(0.4)
    assert detector.prev_sample_peak(0) == pytest.approx(0.3)
    assert detector.prev_sample_peak(1) == pytest.approx(0.1)
    assert detector.prev_true_peak(0) >= detector.prev_sample_peak(0)


def test_empty_push_zeroes_previous_peak_only() -> None:
    detector = PeakDetector(1, true_peak=False)
    detector.update(np.array([[0.5]]))
    detector.update(np.zeros((0, 1)))

    assert detector.sample_peak(0) == 0.5
    assert detector.prev_sample_peak(0) == 0.0


def test_reset_stream_keeps_all_time_peaks_of_surviving_channels() -> None:
    detector = PeakDetector(2, true_peak=True)
    detector.update(np.array([[0.5, 0.7]]))

    detector.reset_stream(3)
    snapshot = detector.snapshot()

    assert snapshot.sample_peak == pytest.approx((0.5, 0.7, 0.0))
    assert snapshot.prev_sample_peak == (0.0, 0.0, 0.0)
    assert snapshot.true_peak[0] >= 0.5
