"""Channel types, loudness weights and the per-stream channel map.

Channel positions follow ITU-R BS.2051 naming: ``M`` for ear-level, ``U`` for
upper, ``T`` for top and ``B`` for bottom layers, with ``p``/``m`` marking the
sign of the azimuth in degrees.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Iterable

import numpy as np

from .errors import InvalidChannelIndexError


class ChannelType(IntEnum):
    UNUSED = 0
    LEFT = 1
    RIGHT = 2
    CENTER = 3
    LEFT_SURROUND = 4
    RIGHT_SURROUND = 5
    DUAL_MONO = 6
    MpSC = 7
    MmSC = 8
    Mp060 = 9
    Mm060 = 10
    Mp090 = 11
    Mm090 = 12
    Mp135 = 13
    Mm135 = 14
    Mp180 = 15
    Up000 = 16
    Up030 = 17
    Um030 = 18
    Up045 = 19
    Um045 = 20
    Up090 = 21
    Um090 = 22
    Up110 = 23
    Um110 = 24
    Up135 = 25
    Um135 = 26
    Up180 = 27
    Tp000 = 28
    Bp000 = 29
    Bp045 = 30
    Bm045 = 31
    LFE = 32

    # Positional aliases for the ear-level front and surround pairs.
    Mp030 = 1
    Mm030 = 2
    Mp000 = 3
    Mp110 = 4
    Mm110 = 5


_SURROUND_TYPES = frozenset(
    {
        ChannelType.LEFT_SURROUND,
        ChannelType.RIGHT_SURROUND,
        ChannelType.Mp060,
        ChannelType.Mm060,
        ChannelType.Mp090,
        ChannelType.Mm090,
    }
)
_SILENT_TYPES = frozenset({ChannelType.UNUSED, ChannelType.LFE})

SURROUND_WEIGHT = 1.41
DUAL_MONO_WEIGHT = 2.0


def channel_weight(channel_type: ChannelType) -> float:
    """Return the BS.1770 loudness weight of a channel position."""

    if channel_type in _SILENT_TYPES:
        return 0.0
    if channel_type in _SURROUND_TYPES:
        return SURROUND_WEIGHT
    if channel_type is ChannelType.DUAL_MONO:
        return DUAL_MONO_WEIGHT
    return 1.0


def default_channel_types(channel_count: int) -> list[ChannelType]:
    if channel_count == 4:
        return [
            ChannelType.LEFT,
            ChannelType.RIGHT,
            ChannelType.LEFT_SURROUND,
            ChannelType.RIGHT_SURROUND,
        ]
    if channel_count == 5:
        return [
            ChannelType.LEFT,
            ChannelType.RIGHT,
            ChannelType.CENTER,
            ChannelType.LEFT_SURROUND,
            ChannelType.RIGHT_SURROUND,
        ]

    # 5.1 ordering: the fourth slot carries the LFE and is left unweighted.
    layout = [
        ChannelType.LEFT,
        ChannelType.RIGHT,
        ChannelType.CENTER,
        ChannelType.UNUSED,
        ChannelType.LEFT_SURROUND,
        ChannelType.RIGHT_SURROUND,
    ]
    return [layout[index] if index < len(layout) else ChannelType.UNUSED for index in range(channel_count)]


def parse_channel_type(raw_value: str | int | ChannelType) -> ChannelType:
    """Parse a channel type from its name (case-insensitive) or numeric value."""

    if isinstance(raw_value, ChannelType):
        return raw_value
    if isinstance(raw_value, int):
        return ChannelType(raw_value)

    normalized = raw_value.strip()
    for name, member in ChannelType.__members__.items():
        if name.lower() == normalized.lower():
            return member
    allowed = ", ".join(ChannelType.__members__)
    raise ValueError(f"Invalid channel type: '{raw_value}'. Allowed values: {allowed}.")


class ChannelMap:
    """Mutable assignment of a channel type to every channel index of a stream."""

    def __init__(self, channel_count: int, types: Iterable[ChannelType] | None = None) -> None:
        self._types = list(types) if types is not None else default_channel_types(channel_count)
        if len(self._types) != channel_count:
            raise ValueError("Channel map length must match the channel count.")

    def __len__(self) -> int:
        return len(self._types)

    def __getitem__(self, index: int) -> ChannelType:
        self.check_index(index)
        return self._types[index]

    @property
    def types(self) -> tuple[ChannelType, ...]:
        return tuple(self._types)

    def check_index(self, index: int) -> None:
        if not 0 <= index < len(self._types):
            raise InvalidChannelIndexError(
                f"Channel index {index} is outside 0..{len(self._types) - 1}."
            )

    def assign(self, index: int, channel_type: ChannelType) -> bool:
        """Assign ``channel_type`` to ``index``; return ``False`` when unchanged."""

        self.check_index(index)
        if channel_type is ChannelType.DUAL_MONO and (len(self._types) != 1 or index != 0):
            raise InvalidChannelIndexError("DUAL_MONO is only valid on channel 0 of a mono stream.")
        if self._types[index] is channel_type:
            return False
        self._types[index] = channel_type
        return True

    def is_active(self, index: int) -> bool:
        return self[index] not in _SILENT_TYPES

    def weights(self) -> np.ndarray:
        return np.array([channel_weight(channel_type) for channel_type in self._types], dtype=np.float64)
