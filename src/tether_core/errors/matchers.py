"""Error matchers for converting exceptions to TetherErrors."""

import asyncio
import json

from .errors import ErrorMatcher, MatchResult


class TimeoutErrorMatcher(ErrorMatcher):
    """Matches timeout errors."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, (asyncio.TimeoutError, TimeoutError))

    def extract(self, error: Exception) -> MatchResult:
        return MatchResult(
            code="REQUEST_TIMEOUT",
            context={"method": "request", "timeout_seconds": "unknown"},
            retryable=True,
        )


class SpawnErrorMatcher(ErrorMatcher):
    """Matches OS errors raised while creating a child process."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, (FileNotFoundError, PermissionError, NotADirectoryError))

    def extract(self, error: Exception) -> MatchResult:
        return MatchResult(
            code="SPAWN_FAILED",
            context={"detail": str(error)},
        )


class DecodeErrorMatcher(ErrorMatcher):
    """Matches JSON decoding errors from the wire."""

    def matches(self, error: Exception) -> bool:
        return isinstance(error, (json.JSONDecodeError, UnicodeDecodeError))

    def extract(self, error: Exception) -> MatchResult:
        return MatchResult(
            code="MALFORMED_FRAME",
            context={"detail": str(error)},
            retryable=False,
        )


class GenericErrorMatcher(ErrorMatcher):
    """Fallback matcher for any exception."""

    def matches(self, error: Exception) -> bool:
        return True

    def extract(self, error: Exception) -> MatchResult:
        return MatchResult(
            code="INTERNAL_ERROR",
            context={"detail": str(error) or type(error).__name__},
            retryable=False,
        )


class ErrorMatcherChain:
    """Ordered chain of matchers. First match wins."""

    def __init__(self) -> None:
        """Initialize matcher chain with built-in matchers."""
        self.matchers: list[ErrorMatcher] = []
        self._load_builtin_matchers()

    def match(self, error: Exception) -> MatchResult:
        """Find first matching matcher and extract result.

        Args:
            error: Exception to match

        Returns:
            MatchResult from first matching matcher
        """
        for matcher in self.matchers:
            if matcher.matches(error):
                return matcher.extract(error)

        # Unreachable while GenericErrorMatcher is last
        return MatchResult(
            code="INTERNAL_ERROR",
            context={"detail": str(error)},
            retryable=False,
        )

    def _load_builtin_matchers(self) -> None:
        """Load built-in matchers in priority order."""
        # More specific matchers first
        self.matchers = [
            TimeoutErrorMatcher(),
            SpawnErrorMatcher(),
            DecodeErrorMatcher(),
            GenericErrorMatcher(),  # Fallback - must be last
        ]
