from pathlib import Path
import json

import pytest
from pydantic import ValidationError

from loudmeter.channels import ChannelType
from loudmeter.loudness_contract import Mode
from loudmeter.meter import LoudnessMeter
from loudmeter.utils.config import MeterConfig, load_meter_config


def test_defaults_enable_album_measurements() -> None:
    config = MeterConfig()

    assert config.channels == 2
    assert config.sample_rate == 48_000
    assert config.mode_flags() == Mode.I | Mode.LRA | Mode.TRUE_PEAK


def test_mode_names_are_case_insensitive() -> None:
    config = MeterConfig(modes=[" s ", "histogram"])

    assert config.modes == ["S", "HISTOGRAM"]
    assert config.mode_flags() == Mode.S | Mode.HISTOGRAM


@pytest.mark.parametrize(
    "payload",
    [
        {"modes": ["LOUDNESS"]},
        {"channels": 0},
        {"channels": 65},
        {"sample_rate": 1},
        {"channel_map": ["LEFT", "CEILING"]},
        {"channel_map": ["LEFT"]},
        {"channel_map": "LEFT"},
        {"max_window_ms": 0},
        {"chunk_frames": 0},
    ],
)
def test_invalid_payloads_are_rejected(payload) -> None:
    with pytest.raises(ValidationError):
        MeterConfig.model_validate(payload)


def test_channel_map_accepts_names_and_numbers() -> None:
    config = MeterConfig(channels=3, channel_map=["left", "Right", 32])

    assert config.channel_map == [ChannelType.LEFT, ChannelType.RIGHT, ChannelType.LFE]


def test_meter_from_config_applies_every_setting() -> None:
    config = MeterConfig(
        channels=2,
        sample_rate=44_100,
        modes=["LRA"],
        channel_map=["CENTER", "UNUSED"],
        max_window_ms=6_000,
        max_history_ms=60_000,
    )

    meter = LoudnessMeter.from_config(config)

    assert meter.sample_rate == 44_100
    assert meter.mode == Mode.LRA
    assert meter.channel_map.types == (ChannelType.CENTER, ChannelType.UNUSED)
    assert meter.max_window_ms == 6_000
    assert meter.max_history_ms == 60_000


def test_load_json_config(tmp_path: Path) -> None:
    path = tmp_path / "meter.json"
    path.write_text(json.dumps({"channels": 1, "modes": ["I"], "chunk_frames": 1024}), encoding="utf-8")

    config = load_meter_config(path)

    assert config.channels == 1
    assert config.chunk_frames == 1024


def test_load_yaml_config(tmp_path: Path) -> None:
    path = tmp_path / "meter.yaml"
    path.write_text(
        "channels: 6\nsample_rate: 96000\nmodes: [I, TRUE_PEAK]\nmax_history_ms: 30000\n",
        encoding="utf-8",
    )

    config = load_meter_config(path)

    assert config.channels == 6
    assert config.sample_rate == 96_000
    assert config.mode_flags() == Mode.I | Mode.TRUE_PEAK
    assert config.max_history_ms == 30_000


def test_empty_yaml_uses_defaults(tmp_path: Path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")

    assert load_meter_config(path) == MeterConfig()
