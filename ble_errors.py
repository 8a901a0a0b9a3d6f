# Author: easyble contributors

"""
Error kinds and result type returned by every BleClient operation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class BLEErrorKind(Enum):
    """Why a BLE operation did not produce a value"""
    # Usage errors
    INVALID_SELECTOR = "invalid_selector"
    UNKNOWN_CHARACTERISTIC = "unknown_characteristic"
    NO_DEVICE = "no_device"
    INVALID_VALUE = "invalid_value"

    # Platform errors
    DISCOVERY_CANCELLED = "discovery_cancelled"
    DEVICE_NOT_FOUND = "device_not_found"
    CONNECTION_FAILED = "connection_failed"
    SERVICE_NOT_FOUND = "service_not_found"
    OPERATION_FAILED = "operation_failed"


class BLEError(Exception):
    """Raised by the helpers and carried by a failed BLEResult."""

    def __init__(self, kind: BLEErrorKind, message: str):
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self):
        return f"{self.kind.value}: {self.message}"


@dataclass
class BLEResult:
    """Outcome of one BLE operation: either a value or an error."""
    value: Any = None
    error: Optional[BLEError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def kind(self) -> Optional[BLEErrorKind]:
        return self.error.kind if self.error else None

    def unwrap(self):
        """Return the value, raising the carried BLEError on failure."""
        if self.error is not None:
            raise self.error
        return self.value

    @classmethod
    def success(cls, value=None) -> "BLEResult":
        return cls(value=value)

    @classmethod
    def failure(cls, error: BLEError) -> "BLEResult":
        return cls(error=error)
