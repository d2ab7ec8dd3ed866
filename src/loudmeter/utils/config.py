from __future__ import annotations

from pathlib import Path

import json

from pydantic import BaseModel, Field, field_validator, model_validator

from loudmeter.channels import ChannelType, parse_channel_type
from loudmeter.loudness_contract import MAX_CHANNEL_COUNT, MAX_SAMPLE_RATE_HZ, MIN_SAMPLE_RATE_HZ, Mode


class MeterConfig(BaseModel):
    channels: int = Field(2, ge=1, le=MAX_CHANNEL_COUNT)
    sample_rate: int = Field(48_000, ge=MIN_SAMPLE_RATE_HZ, le=MAX_SAMPLE_RATE_HZ)
    modes: list[str] = Field(default_factory=lambda: ["I", "LRA", "TRUE_PEAK"])
    channel_map: list[ChannelType] | None = None
    max_window_ms: int | None = Field(None, gt=0)
    max_history_ms: int | None = Field(None, gt=0)
    chunk_frames: int = Field(4_800, ge=1)

    @field_validator("modes")
    @classmethod
    def _validate_modes(cls, value: list[str]) -> list[str]:
        normalized = [name.strip().upper() for name in value]
        unknown = [name for name in normalized if name not in Mode.__members__]
        if unknown:
            allowed = ", ".join(Mode.__members__)
            raise ValueError(f"Unknown modes {unknown}. Allowed: {allowed}.")
        return normalized

    @field_validator("channel_map", mode="before")
    @classmethod
    def _parse_channel_map(cls, value: object) -> object:
        if value is None:
            return value
        if not isinstance(value, list):
            raise ValueError("channel_map must be a list of channel types.")
        return [parse_channel_type(item) for item in value]

    @model_validator(mode="after")
    def _check_channel_map_length(self) -> "MeterConfig":
        if self.channel_map is not None and len(self.channel_map) != self.channels:
            raise ValueError("channel_map must list one type per channel.")
        return self

    def mode_flags(self) -> Mode:
        flags = Mode.M
        for name in self.modes:
            flags |= Mode[name]
        return flags


def load_meter_config(path: Path) -> MeterConfig:
    data = _load_config_data(path)
    return MeterConfig.model_validate(data)


def _load_config_data(path: Path) -> dict:
    if path.suffix.lower() in {".yaml", ".yml"}:
        try:
            import yaml
        except ImportError as exc:
            raise ImportError("PyYAML is required to load YAML configs.") from exc

        with path.open("r", encoding="utf-8") as handle:
            return yaml.safe_load(handle) or {}

    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)
