"""Tagged results returned by configuration calls and measurement queries."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum


class ConfigStatus(str, Enum):
    """Outcome of a configuration call that did not fail."""

    SUCCESS = "success"
    NO_CHANGE = "no_change"


class MeasurementStatus(str, Enum):
    OK = "ok"
    INSUFFICIENT_DATA = "insufficient_data"
    UNUSED_CHANNEL = "unused_channel"


@dataclass(frozen=True, slots=True)
class Measurement:
    """A loudness (LUFS/LU) or peak (linear) value with its availability.

    A legitimately silent stream yields ``status == OK`` and ``value == -inf``;
    missing data is reported through ``status`` instead of the value.
    """

    value: float
    status: MeasurementStatus = MeasurementStatus.OK

    @classmethod
    def of(cls, value: float) -> "Measurement":
        return cls(float(value), MeasurementStatus.OK)

    @classmethod
    def insufficient(cls) -> "Measurement":
        return cls(float("-inf"), MeasurementStatus.INSUFFICIENT_DATA)

    @classmethod
    def unused_channel(cls) -> "Measurement":
        return cls(float("-inf"), MeasurementStatus.UNUSED_CHANNEL)

    @property
    def ok(self) -> bool:
        return self.status is MeasurementStatus.OK

    @property
    def is_finite(self) -> bool:
        return self.ok and math.isfinite(self.value)

    def value_or(self, default: float) -> float:
        return self.value if self.ok else default

    def to_db(self) -> "Measurement":
        """Convert a linear peak reading to dBFS/dBTP."""

        if not self.ok:
            return self
        if self.value <= 0.0:
            return Measurement.of(float("-inf"))
        return Measurement.of(20.0 * math.log10(self.value))
