"""
Core module for spush.

This module provides the single source of truth for:
- Session configuration and validation (config.py)
- Command-line value parsing (parsing.py)
- Session orchestration (session.py)
- Result objects (results.py)
- The dump workflow (actions.py)
- Standardized warnings/messages (messages.py)

Front ends should call into this module rather than driving the protocol
engine directly.
"""

from .config import DumpConfig, ConfigurationError
from .parsing import parse_baud_index, parse_delay
from .results import OperationResult
from .session import DumpSession, SessionReport, SessionState
from .messages import (
    MessageLevel,
    WarningCode,
    WarningItem,
    warnings_from_strings,
    result_to_warnings,
)
from .actions import dump_memory

__all__ = [
    # Config
    "DumpConfig",
    "ConfigurationError",
    # Parsing
    "parse_baud_index",
    "parse_delay",
    # Results
    "OperationResult",
    # Session
    "DumpSession",
    "SessionReport",
    "SessionState",
    # Messages
    "MessageLevel",
    "WarningCode",
    "WarningItem",
    "warnings_from_strings",
    "result_to_warnings",
    # Actions
    "dump_memory",
]
