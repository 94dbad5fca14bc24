"""Error factory - turns proxy, process and protocol failures into TetherErrors."""

from typing import Any

from .errors import TetherError
from .matchers import ErrorMatcherChain
from .registry import ErrorRegistry

# Context keys that become attributes of the TetherError
_ERROR_FIELDS = ("server_id", "tool_name", "method")


class ErrorFactory:
    """Classifies exceptions raised while talking to an MCP proxy."""

    def __init__(
        self,
        registry: ErrorRegistry | None = None,
        matcher_chain: ErrorMatcherChain | None = None,
    ):
        self.registry = registry or ErrorRegistry()
        self.matcher_chain = matcher_chain or ErrorMatcherChain()

    def from_exception(self, error: Exception, **context: Any) -> TetherError:
        """Convert an exception to a TetherError.

        A TetherError keeps its code and message and only gains the
        server, tool and method it was raised for. Anything else is
        classified by the matcher chain (spawn failures, timeouts,
        malformed frames) and rendered from the registry.

        Args:
            error: Exception to convert
            **context: ``server_id``, ``tool_name``, ``method`` and any
                template variables

        Returns:
            TetherError instance
        """
        fields = {k: context.get(k) for k in _ERROR_FIELDS}
        if isinstance(error, TetherError):
            return error.with_context(**fields)

        match_result = self.matcher_chain.match(error)
        merged = {**match_result.context, **{k: v for k, v in context.items() if v}}
        tether_error = self.registry.create(code=match_result.code, context=merged)
        if match_result.retryable is not None:
            tether_error.retryable = match_result.retryable
        return tether_error


_default_factory: ErrorFactory | None = None


def get_error_factory() -> ErrorFactory:
    """Get default error factory singleton."""
    global _default_factory  # noqa: PLW0603
    if _default_factory is None:
        _default_factory = ErrorFactory()
    return _default_factory


def create_error(code: str, **context: Any) -> TetherError:
    """Create a registered error from its code and template variables."""
    return get_error_factory().registry.create(code=code, context=context)
