"""CLI-facing handlers that stream decoded files through loudness meters."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
import json
import logging
import math

from loudmeter.combiner import MultiStreamCombiner
from loudmeter.io.audio_file import iter_audio_frames, read_audio_info
from loudmeter.loudness_contract import Mode, has_mode
from loudmeter.meter import LoudnessMeter
from loudmeter.results import Measurement
from loudmeter.utils.config import MeterConfig

EVENTS = logging.getLogger("loudmeter.events")


@dataclass(frozen=True, slots=True)
class FileReport:
    """Loudness summary for one file; unavailable values are ``None``."""

    path: str
    sample_rate: int
    channels: int
    duration_seconds: float
    integrated_lufs: float | None
    loudness_range_lu: float | None
    relative_threshold_lufs: float | None
    max_momentary_lufs: float | None
    max_short_term_lufs: float | None
    sample_peak_dbfs: float | None
    true_peak_dbtp: float | None


@dataclass(frozen=True, slots=True)
class AlbumReport:
    tracks: tuple[FileReport, ...]
    integrated_lufs: float | None
    loudness_range_lu: float | None


def _json_value(measurement: Measurement) -> float | None:
    if not measurement.ok or not math.isfinite(measurement.value):
        return None
    return round(measurement.value, 2)


def _running_max(current: float | None, measurement: Measurement) -> float | None:
    if not measurement.is_finite:
        return current
    if current is None or measurement.value > current:
        return measurement.value
    return current


def stream_file(path: Path, config: MeterConfig) -> tuple[LoudnessMeter, FileReport]:
    """Decode ``path`` chunk by chunk into a new meter and summarize it.

    The file's own sample rate and channel count override the configured ones.
    The returned meter is left open for multi-stream aggregation.
    """

    info = read_audio_info(path)
    channel_map = config.channel_map if config.channel_map and len(config.channel_map) == info.channels else None
    file_config = config.model_copy(
        update={"sample_rate": info.sample_rate, "channels": info.channels, "channel_map": channel_map}
    )
    meter = LoudnessMeter.from_config(file_config)
    mode = meter.mode

    max_momentary: float | None = None
    max_short_term: float | None = None
    pushed_frames = 0
    try:
        for chunk in iter_audio_frames(path, file_config.chunk_frames):
            meter.push(chunk)
            pushed_frames += chunk.shape[0]
            max_momentary = _running_max(max_momentary, meter.momentary())
            if has_mode(mode, Mode.S):
                max_short_term = _running_max(max_short_term, meter.short_term())
        if pushed_frames == 0:
            raise ValueError(f"Audio file contains no frames: {path}")
    except BaseException:
        meter.close()
        raise

    report = FileReport(
        path=str(path),
        sample_rate=info.sample_rate,
        channels=info.channels,
        duration_seconds=pushed_frames / info.sample_rate,
        integrated_lufs=_json_value(meter.integrated()) if has_mode(mode, Mode.I) else None,
        loudness_range_lu=_json_value(meter.loudness_range()) if has_mode(mode, Mode.LRA) else None,
        relative_threshold_lufs=_json_value(meter.relative_threshold()) if has_mode(mode, Mode.I) else None,
        max_momentary_lufs=None if max_momentary is None else round(max_momentary, 2),
        max_short_term_lufs=None if max_short_term is None else round(max_short_term, 2),
        sample_peak_dbfs=_json_value(meter.max_sample_peak().to_db()) if has_mode(mode, Mode.SAMPLE_PEAK) else None,
        true_peak_dbtp=_json_value(meter.max_true_peak().to_db()) if has_mode(mode, Mode.TRUE_PEAK) else None,
    )
    EVENTS.info("measurement_completed", extra={"measurement": "file", "path": str(path)})
    return meter, report


def measure_file(path: Path, config: MeterConfig) -> FileReport:
    meter, report = stream_file(path, config)
    meter.close()
    return report


def measure_album(paths: list[Path], config: MeterConfig) -> AlbumReport:
    """Measure each file and gate all of their blocks together."""

    meters: list[LoudnessMeter] = []
    reports: list[FileReport] = []
    try:
        for path in paths:
            meter, report = stream_file(path, config)
            meters.append(meter)
            reports.append(report)

        combiner = MultiStreamCombiner(meters)
        mode = config.mode_flags()
        return AlbumReport(
            tracks=tuple(reports),
            integrated_lufs=_json_value(combiner.integrated()) if has_mode(mode, Mode.I) else None,
            loudness_range_lu=_json_value(combiner.loudness_range()) if has_mode(mode, Mode.LRA) else None,
        )
    finally:
        for meter in meters:
            meter.close()


def write_report(report: FileReport | AlbumReport, report_json: Path) -> None:
    report_json.parent.mkdir(parents=True, exist_ok=True)
    report_json.write_text(json.dumps(asdict(report), indent=2), encoding="utf-8")


def format_report(report: FileReport) -> list[str]:
    def _fmt(value: float | None, unit: str) -> str:
        return "n/a" if value is None else f"{value:.1f} {unit}"

    return [
        f"File:               {report.path}",
        f"Integrated:         {_fmt(report.integrated_lufs, 'LUFS')}",
        f"Loudness range:     {_fmt(report.loudness_range_lu, 'LU')}",
        f"Threshold:          {_fmt(report.relative_threshold_lufs, 'LUFS')}",
        f"Max momentary:      {_fmt(report.max_momentary_lufs, 'LUFS')}",
        f"Max short-term:     {_fmt(report.max_short_term_lufs, 'LUFS')}",
        f"Sample peak:        {_fmt(report.sample_peak_dbfs, 'dBFS')}",
        f"True peak:          {_fmt(report.true_peak_dbtp, 'dBTP')}",
    ]
