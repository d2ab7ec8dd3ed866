"""Public package exports for loudmeter with lazy imports."""

from __future__ import annotations

from importlib import import_module
from typing import Any

__all__ = [
    "LoudnessMeter",
    "StreamState",
    "Mode",
    "ChannelType",
    "Measurement",
    "MeasurementStatus",
    "ConfigStatus",
    "MeterError",
    "AllocationFailureError",
    "InvalidModeError",
    "InvalidChannelIndexError",
    "InvalidStateError",
    "MultiStreamCombiner",
    "loudness_global_multiple",
    "loudness_range_multiple",
    "MeterConfig",
    "load_meter_config",
]

_EXPORT_MODULES: dict[str, str] = {
    "LoudnessMeter": "loudmeter.meter",
    "StreamState": "loudmeter.meter",
    "Mode": "loudmeter.loudness_contract",
    "ChannelType": "loudmeter.channels",
    "Measurement": "loudmeter.results",
    "MeasurementStatus": "loudmeter.results",
    "ConfigStatus": "loudmeter.results",
    "MeterError": "loudmeter.errors",
    "AllocationFailureError": "loudmeter.errors",
    "InvalidModeError": "loudmeter.errors",
    "InvalidChannelIndexError": "loudmeter.errors",
    "InvalidStateError": "loudmeter.errors",
    "MultiStreamCombiner": "loudmeter.combiner",
    "loudness_global_multiple": "loudmeter.combiner",
    "loudness_range_multiple": "loudmeter.combiner",
    "MeterConfig": "loudmeter.utils.config",
    "load_meter_config": "loudmeter.utils.config",
}


def __getattr__(name: str) -> Any:
    if name not in _EXPORT_MODULES:
        raise AttributeError(f"module 'loudmeter' has no attribute {name!r}")

    module = import_module(_EXPORT_MODULES[name])
    value = getattr(module, name)
    globals()[name] = value
    return value
