"""Tether error types."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Error source categories."""

    PROCESS = "PROCESS"
    PROTOCOL = "PROTOCOL"
    CONNECTION = "CONNECTION"
    CONFIG = "CONFIG"
    SYSTEM = "SYSTEM"


@dataclass
class TetherError(Exception):
    """Structured error with context. Base exception for all Tether errors."""

    # Identity
    code: str  # e.g., "NOT_CONNECTED"
    category: ErrorCategory

    # Messages
    message: str  # Human-readable summary
    detail: str | None = None  # Extended explanation
    suggestion: str | None = None  # Actionable fix

    # Context
    retryable: bool = False
    http_status: int = 500  # For REST API responses
    server_id: str | None = None  # Which MCP server
    tool_name: str | None = None  # Which tool call
    method: str | None = None  # Which JSON-RPC method

    cause: "TetherError | None" = None

    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Set Exception message."""
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message

    @property
    def summary(self) -> str:
        """Message plus detail, as stored on a failed connection."""
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses.

        Returns:
            Dictionary representation of the error
        """
        return {
            "code": self.code,
            "category": self.category.value,
            "message": self.message,
            "detail": self.detail,
            "suggestion": self.suggestion,
            "retryable": self.retryable,
            "server_id": self.server_id,
            "tool_name": self.tool_name,
            "method": self.method,
            "timestamp": self.timestamp.isoformat(),
            "cause": self.cause.to_dict() if self.cause else None,
        }

    def with_context(
        self,
        server_id: str | None = None,
        tool_name: str | None = None,
        method: str | None = None,
    ) -> "TetherError":
        """Return copy with additional context.

        Args:
            server_id: Optional MCP server identifier
            tool_name: Optional tool name
            method: Optional JSON-RPC method

        Returns:
            New TetherError instance with updated context
        """
        return TetherError(
            code=self.code,
            category=self.category,
            message=self.message,
            detail=self.detail,
            suggestion=self.suggestion,
            retryable=self.retryable,
            http_status=self.http_status,
            server_id=server_id or self.server_id,
            tool_name=tool_name or self.tool_name,
            method=method or self.method,
            cause=self.cause,
            timestamp=self.timestamp,
        )


@dataclass
class ErrorTemplate:
    """Template for creating errors."""

    code: str
    category: ErrorCategory
    message_template: str  # "MCP server '{server_id}' is not connected"
    detail_template: str | None = None
    suggestion_template: str | None = None
    default_retryable: bool = False
    default_http_status: int = 500


@dataclass
class MatchResult:
    """Result of matching an exception."""

    code: str
    context: dict[str, Any]
    retryable: bool | None = None  # None = use template default


class ErrorMatcher(ABC):
    """Base class for exception matchers."""

    @abstractmethod
    def matches(self, error: Exception) -> bool:
        """Check if this matcher handles the error."""

    @abstractmethod
    def extract(self, error: Exception) -> MatchResult:
        """Extract error code and context from the exception."""
