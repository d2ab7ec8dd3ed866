"""Error taxonomy for meter configuration, lifecycle and queries."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class MeterError(Exception):
    code: str
    message: str

    def __str__(self) -> str:
        return self.message

    def as_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class AllocationFailureError(MeterError):
    """Raised when buffers for a stream cannot be allocated."""

    def __init__(self, message: str) -> None:
        super().__init__("allocation_failure", message)


class InvalidModeError(MeterError):
    """Raised when an operation needs a capability the stream was not created with."""

    def __init__(self, message: str) -> None:
        super().__init__("invalid_mode", message)


class InvalidChannelIndexError(MeterError):
    def __init__(self, message: str) -> None:
        super().__init__("invalid_channel_index", message)


class InvalidStateError(MeterError):
    """Raised for operations on a stream that is closed or has no audio yet."""

    def __init__(self, message: str) -> None:
        super().__init__("invalid_state", message)
