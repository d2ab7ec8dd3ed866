from .config import MeterConfig, load_meter_config

__all__ = [
    "MeterConfig",
    "load_meter_config",
]
