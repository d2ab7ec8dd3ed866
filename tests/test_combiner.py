import numpy as np
import pytest

from loudmeter.combiner import MultiStreamCombiner, loudness_global_multiple, loudness_range_multiple
from loudmeter.errors import InvalidModeError, InvalidStateError
from loudmeter.loudness_contract import Mode
from loudmeter.meter import LoudnessMeter
from loudmeter.results import MeasurementStatus

ALBUM = Mode.I | Mode.LRA


def _stream(audio: np.ndarray, mode: Mode = ALBUM) -> LoudnessMeter:
    meter = LoudnessMeter(audio.shape[1], 48_000, mode)
    meter.push(audio)
    return meter


def test_album_loudness_gates_all_blocks_together(make_tone) -> None:
    loud = make_tone(1_000.0, 0.1, 10.0)
    quiet = make_tone(1_000.0, 10 ** (-30 / 20), 10.0)
    first, second = _stream(loud), _stream(quiet)

    album = loudness_global_multiple([first, second])
    concatenated = _stream(np.concatenate([loud, quiet]))
    track_mean = (first.integrated().value + second.integrated().value) / 2

    assert album.value == pytest.approx(concatenated.integrated().value, abs=0.1)
    assert abs(album.value - track_mean) > 1.0


def test_album_range_spans_both_streams(make_tone) -> None:
    loud = _stream(make_tone(1_000.0, 0.1, 20.0))
    quiet = _stream(make_tone(1_000.0, 10 ** (-30 / 20), 20.0))

    assert loud.loudness_range().value == pytest.approx(0.0, abs=0.01)
    assert loudness_range_multiple([loud, quiet]).value == pytest.approx(10.0, abs=0.1)


def test_single_stream_matches_its_own_values(programme) -> None:
    meter = LoudnessMeter(2, programme["sample_rate"], ALBUM)
    meter.push(programme["audio"])

    combiner = MultiStreamCombiner([meter])

    assert combiner.integrated().value == meter.integrated().value
    assert combiner.relative_threshold().value == meter.relative_threshold().value
    assert combiner.loudness_range().value == meter.loudness_range().value


def test_histogram_and_exact_streams_can_be_mixed(make_tone) -> None:
    tone = make_tone(1_000.0, 0.09, 10.0)
    exact = _stream(tone)
    histogram = _stream(tone, ALBUM | Mode.HISTOGRAM)

    assert loudness_global_multiple([exact, histogram]).value == pytest.approx(exact.integrated().value, abs=0.05)


def test_snapshots_are_taken_once(make_tone) -> None:
    meter = _stream(make_tone(1_000.0, 0.1, 5.0))
    combiner = MultiStreamCombiner([meter])
    before = combiner.integrated().value

    meter.push(make_tone(1_000.0, 0.5, 5.0))

    assert combiner.integrated().value == before
    assert MultiStreamCombiner([meter]).integrated().value > before


def test_streams_without_gated_blocks_are_insufficient() -> None:
    silent = _stream(np.zeros((48_000 * 4, 2)))

    assert loudness_global_multiple([silent]).status is MeasurementStatus.INSUFFICIENT_DATA
    assert loudness_range_multiple([silent]).status is MeasurementStatus.INSUFFICIENT_DATA


def test_combiner_validates_streams(make_tone) -> None:
    with pytest.raises(ValueError):
        MultiStreamCombiner([])

    momentary_only = _stream(make_tone(1_000.0, 0.1, 1.0), Mode.M)
    with pytest.raises(InvalidModeError):
        loudness_global_multiple([momentary_only])

    closed = _stream(make_tone(1_000.0, 0.1, 1.0))
    closed.close()
    with pytest.raises(InvalidStateError):
        loudness_range_multiple([closed])


def test_unpushed_stream_contributes_no_blocks(make_tone) -> None:
    pushed = _stream(make_tone(1_000.0, 0.1, 10.0))
    unpushed = LoudnessMeter(2, 48_000, ALBUM)

    assert unpushed.gating_snapshot().energies.size == 0
    assert loudness_global_multiple([pushed, unpushed]).value == pushed.integrated().value
    assert loudness_range_multiple([unpushed, pushed]).value == pushed.loudness_range().value
    assert loudness_global_multiple([unpushed]).status is MeasurementStatus.INSUFFICIENT_DATA
