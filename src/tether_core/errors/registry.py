"""Error registry for creating errors from templates."""

from typing import Any

from .errors import ErrorCategory, ErrorTemplate, TetherError


class ErrorRegistry:
    """Registry of error templates. Creates errors from templates + context."""

    def __init__(self) -> None:
        """Initialize error registry with built-in templates."""
        self._templates: dict[str, ErrorTemplate] = {}
        self._load_builtin_templates()

    def get_template(self, code: str) -> ErrorTemplate | None:
        """Get template by error code.

        Args:
            code: Error code to look up

        Returns:
            ErrorTemplate if found, None otherwise
        """
        return self._templates.get(code)

    def list_codes(self) -> list[str]:
        """List all registered error codes."""
        return list(self._templates.keys())

    def register(self, template: ErrorTemplate) -> None:
        """Register (or replace) a template."""
        self._templates[template.code] = template

    def create(
        self,
        code: str,
        context: dict[str, Any] | None = None,
        cause: TetherError | None = None,
    ) -> TetherError:
        """Create error instance from template + context.

        Args:
            code: Error code
            context: Context variables for template interpolation
            cause: Optional cause error

        Returns:
            TetherError instance

        Raises:
            ValueError: If error code not found
        """
        template = self.get_template(code)
        if not template:
            msg = f"Unknown error code: {code}"
            raise ValueError(msg)

        context = context or {}

        message = self._interpolate(template.message_template, context)
        # An explicit detail in context wins over the template's.
        detail = context.get("detail") or self._interpolate(template.detail_template, context)
        suggestion = self._interpolate(template.suggestion_template, context)

        if message is None:
            message = f"Error {code}"

        return TetherError(
            code=template.code,
            category=template.category,
            message=message,
            detail=detail,
            suggestion=suggestion,
            retryable=template.default_retryable,
            http_status=template.default_http_status,
            server_id=context.get("server_id"),
            tool_name=context.get("tool_name"),
            method=context.get("method"),
            cause=cause,
        )

    def _interpolate(
        self,
        template: str | None,
        context: dict[str, Any],
    ) -> str | None:
        """Safe string interpolation.

        Missing context variables leave the template as-is.
        """
        if template is None:
            return None

        try:
            return template.format(**context)
        except (KeyError, IndexError):
            return template

    def _load_builtin_templates(self) -> None:
        """Load hardcoded built-in templates."""
        # PROCESS errors
        self.register(
            ErrorTemplate(
                code="SPAWN_FAILED",
                category=ErrorCategory.PROCESS,
                message_template="Failed to spawn proxy process for '{server_id}'",
                detail_template="The operating system did not return a process id",
                suggestion_template="Check that the proxy command is installed and on PATH",
                default_retryable=True,
                default_http_status=502,
            )
        )
        self.register(
            ErrorTemplate(
                code="CONNECTION_CLOSED",
                category=ErrorCategory.PROCESS,
                message_template="Proxy process for '{server_id}' exited",
                detail_template="The request was pending when the process terminated",
                default_retryable=True,
                default_http_status=502,
            )
        )

        # PROTOCOL errors
        self.register(
            ErrorTemplate(
                code="HANDSHAKE_FAILED",
                category=ErrorCategory.PROTOCOL,
                message_template="MCP handshake with '{server_id}' failed",
                suggestion_template=(
                    "Complete the OAuth flow in the browser, then reconnect the server"
                ),
                default_retryable=True,
                default_http_status=502,
            )
        )
        self.register(
            ErrorTemplate(
                code="REQUEST_TIMEOUT",
                category=ErrorCategory.PROTOCOL,
                message_template="MCP request timeout: {method}",
                detail_template="No response received within {timeout_seconds}s",
                default_retryable=True,
                default_http_status=504,
            )
        )
        self.register(
            ErrorTemplate(
                code="REMOTE_ERROR",
                category=ErrorCategory.PROTOCOL,
                message_template="{remote_message}",
                detail_template="MCP server '{server_id}' returned an error for {method}",
                default_http_status=502,
            )
        )
        self.register(
            ErrorTemplate(
                code="MALFORMED_FRAME",
                category=ErrorCategory.PROTOCOL,
                message_template="Malformed JSON-RPC frame",
                detail_template="A stdout line could not be parsed as a JSON object",
                default_http_status=502,
            )
        )

        # CONNECTION errors
        self.register(
            ErrorTemplate(
                code="NOT_CONNECTED",
                category=ErrorCategory.CONNECTION,
                message_template="MCP server {server_id} not connected",
                suggestion_template="Connect the server before calling its tools",
                default_http_status=409,
            )
        )
        self.register(
            ErrorTemplate(
                code="CONNECTION_NOT_FOUND",
                category=ErrorCategory.CONNECTION,
                message_template="No connection registered for '{server_id}'",
                default_http_status=404,
            )
        )
        self.register(
            ErrorTemplate(
                code="INVALID_STATE",
                category=ErrorCategory.CONNECTION,
                message_template="Invalid status transition for '{server_id}'",
                detail_template="Cannot move from {from_status} to {to_status}",
                default_http_status=409,
            )
        )

        # CONFIG errors
        self.register(
            ErrorTemplate(
                code="CONFIG_INVALID",
                category=ErrorCategory.CONFIG,
                message_template="Configuration is invalid",
                suggestion_template="Check the configuration file against the documented keys",
                default_http_status=500,
            )
        )

        # SYSTEM errors
        self.register(
            ErrorTemplate(
                code="STORE_FAILED",
                category=ErrorCategory.SYSTEM,
                message_template="Failed to persist connections",
                detail_template="Could not write {path}",
                default_retryable=True,
            )
        )
        self.register(
            ErrorTemplate(
                code="INTERNAL_ERROR",
                category=ErrorCategory.SYSTEM,
                message_template="Internal error",
            )
        )
