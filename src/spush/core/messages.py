"""
Standardized warning and message system for spush.

Provides structured warning items with stable codes so the CLI can explain
every failure kind consistently, with a remediation hint.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List


class MessageLevel(Enum):
    """Severity level for messages."""
    INFO = "info"
    WARN = "warn"
    ERROR = "error"


class WarningCode(Enum):
    """Stable warning codes for known conditions."""
    # Configuration
    W_CONFIG_INVALID = "W_CONFIG_INVALID"

    # Connection
    W_SERIAL_ERROR = "W_SERIAL_ERROR"
    W_SERIAL_TIMEOUT = "W_SERIAL_TIMEOUT"
    W_DEVICE_NOT_READY = "W_DEVICE_NOT_READY"

    # Protocol
    W_CHECKSUM_REJECTED = "W_CHECKSUM_REJECTED"
    W_PROTOCOL_VIOLATION = "W_PROTOCOL_VIOLATION"

    # Data
    W_DEVICE_ERROR_CODE = "W_DEVICE_ERROR_CODE"
    W_PARTIAL_OUTPUT = "W_PARTIAL_OUTPUT"

    # Operation
    W_CANCELLED = "W_CANCELLED"

    # Generic
    W_UNKNOWN = "W_UNKNOWN"


# Default remediation hints for each warning code
WARNING_REMEDIATIONS: Dict[WarningCode, str] = {
    WarningCode.W_CONFIG_INVALID:
        "Check --baud-rate (0-3), --delay and --device values.",
    WarningCode.W_SERIAL_ERROR:
        "Check the device path and permissions. Use 'ports' to list serial ports.",
    WarningCode.W_SERIAL_TIMEOUT:
        "Check cable connection. Try a lower baud rate or a longer --timeout.",
    WarningCode.W_DEVICE_NOT_READY:
        "Device is not in download mode or this is the wrong port. Re-enter download mode.",
    WarningCode.W_CHECKSUM_REJECTED:
        "Usually line noise. Restart the device in download mode and retry the whole run.",
    WarningCode.W_PROTOCOL_VIOLATION:
        "Framing was lost. The device may not speak this protocol; check the port and baud rate.",
    WarningCode.W_DEVICE_ERROR_CODE:
        "The device reported a non-zero error code; the dump may not be trustworthy.",
    WarningCode.W_PARTIAL_OUTPUT:
        "Output files contain only the batches received before the failure.",
    WarningCode.W_CANCELLED:
        "Partial output was kept. Re-run to get a complete dump.",
    WarningCode.W_UNKNOWN:
        "Check logs for more details.",
}

# Error kind (set by core.actions) -> warning code
ERROR_KIND_CODES: Dict[str, WarningCode] = {
    "configuration": WarningCode.W_CONFIG_INVALID,
    "transport": WarningCode.W_SERIAL_ERROR,
    "timeout": WarningCode.W_SERIAL_TIMEOUT,
    "mismatch": WarningCode.W_DEVICE_NOT_READY,
    "desync": WarningCode.W_CHECKSUM_REJECTED,
    "violation": WarningCode.W_PROTOCOL_VIOLATION,
    "cancelled": WarningCode.W_CANCELLED,
}


@dataclass
class WarningItem:
    """
    Structured warning message with stable code.

    Attributes:
        level: Severity (INFO, WARN, ERROR)
        code: Stable warning code for programmatic handling
        title: Short, user-facing title
        detail: Longer explanation of the issue
        remediation: Suggested action to resolve the issue
    """
    level: MessageLevel
    code: WarningCode
    title: str
    detail: str = ""
    remediation: str = ""

    def __post_init__(self):
        """Set default remediation if not provided."""
        if not self.remediation and self.code in WARNING_REMEDIATIONS:
            self.remediation = WARNING_REMEDIATIONS[self.code]

    @classmethod
    def warn(cls, code: WarningCode, title: str, detail: str = "") -> "WarningItem":
        """Create a WARN-level warning."""
        return cls(MessageLevel.WARN, code, title, detail)

    @classmethod
    def error(cls, code: WarningCode, title: str, detail: str = "") -> "WarningItem":
        """Create an ERROR-level warning."""
        return cls(MessageLevel.ERROR, code, title, detail)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON/display."""
        return {
            "level": self.level.value,
            "code": self.code.value,
            "title": self.title,
            "detail": self.detail,
            "remediation": self.remediation,
        }


def warnings_from_strings(warning_strings: List[str]) -> List[WarningItem]:
    """
    Convert plain warning strings to WarningItem list.

    Attempts to detect known patterns and assign appropriate codes.
    """
    items = []

    for msg in warning_strings:
        msg_lower = msg.lower()

        if "error code" in msg_lower:
            code = WarningCode.W_DEVICE_ERROR_CODE
        elif "partial" in msg_lower:
            code = WarningCode.W_PARTIAL_OUTPUT
        else:
            code = WarningCode.W_UNKNOWN

        items.append(WarningItem.warn(code, msg))

    return items


def result_to_warnings(result: "OperationResult") -> List[WarningItem]:
    """
    Convert an OperationResult's warnings and errors to WarningItem list.

    Errors are classified by the result's error_kind.
    """
    items = warnings_from_strings(result.warnings)

    code = ERROR_KIND_CODES.get(result.error_kind, WarningCode.W_UNKNOWN)
    for err in result.errors:
        items.append(WarningItem.error(code, err))

    return items
