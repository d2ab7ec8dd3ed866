"""Chunked audio decoding backed by pedalboard."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import numpy as np
from pedalboard.io import AudioFile


@dataclass(frozen=True, slots=True)
class AudioFileInfo:
    sample_rate: int
    channels: int
    frames: int


def read_audio_info(path: Path) -> AudioFileInfo:
    with AudioFile(str(path), "r") as audio_file:
        return AudioFileInfo(
            sample_rate=int(audio_file.samplerate),
            channels=int(audio_file.num_channels),
            frames=int(audio_file.frames),
        )


def iter_audio_frames(path: Path, chunk_frames: int) -> Iterator[np.ndarray]:
    """Yield ``(frames, channels)`` float32 chunks of at most ``chunk_frames`` frames."""

    with AudioFile(str(path), "r") as audio_file:
        while audio_file.tell() < audio_file.frames:
            chunk = audio_file.read(chunk_frames)
            if chunk.shape[1] == 0:
                break
            # pedalboard returns channel-first audio.
            yield np.ascontiguousarray(chunk.T)


def write_audio(path: Path, audio: np.ndarray, sample_rate: int) -> None:
    """Write ``(frames, channels)`` float audio to ``path``."""

    with AudioFile(str(path), "w", sample_rate, audio.shape[1]) as output_file:
        output_file.write(np.ascontiguousarray(audio.T, dtype=np.float32))
