import numpy as np

from loudmeter.io.audio_file import iter_audio_frames, read_audio_info, write_audio


def test_written_file_streams_back_frame_major(tmp_path, make_tone):
    audio = make_tone(440.0, 0.5, 0.5, sample_rate=44_100).astype(np.float32)
    audio[:, 1] *= -1.0
    path = tmp_path / "roundtrip.wav"

    write_audio(path, audio, 44_100)
    info = read_audio_info(path)
    chunks = list(iter_audio_frames(path, 4_000))

    assert (info.sample_rate, info.channels, info.frames) == (44_100, 2, audio.shape[0])
    assert [chunk.shape[0] for chunk in chunks[:-1]] == [4_000] * (len(chunks) - 1)
    assert all(chunk.shape[1] == 2 for chunk in chunks)
    np.testing.assert_allclose(np.concatenate(chunks), audio, atol=1e-4)
