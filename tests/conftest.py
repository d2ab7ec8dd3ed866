import numpy as np
import pytest


def _tone(
    frequency_hz: float,
    amplitude: float,
    seconds: float,
    sample_rate: int = 48_000,
    channels: int = 2,
) -> np.ndarray:
    t = np.arange(int(round(seconds * sample_rate))) / sample_rate
    mono = amplitude * np.sin(2 * np.pi * frequency_hz * t)
    return np.repeat(mono[:, np.newaxis], channels, axis=1)


@pytest.fixture
def make_tone():
    return _tone


@pytest.fixture
def programme():
    """Stereo noise that alternates between two levels, 48 kHz."""

    sample_rate = 48_000
    rng = np.random.default_rng(1770)
    segments = []
    for level in (0.3, 0.05, 0.2, 0.02, 0.25):
        segments.append(level * rng.standard_normal((2 * sample_rate, 2)))
    return {
        "sample_rate": sample_rate,
        "audio": np.concatenate(segments, axis=0),
    }
