"""Shared types for Tether.

Import from here rather than submodules:
    from tether_core.types import ConnectionStatus, LogLevel
"""

from .enums import ConnectionStatus, LogFormat, LogLevel, StderrKind
from .validation import ValidationIssue, ValidationResult

__all__ = [
    # Enums
    "LogLevel",
    "LogFormat",
    "ConnectionStatus",
    "StderrKind",
    # Validation
    "ValidationIssue",
    "ValidationResult",
]
