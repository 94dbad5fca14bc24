"""Tether configuration loader."""

import os
import re
import typing
from dataclasses import fields, is_dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from tether_core.errors import create_error
from tether_core.types import LogLevel, ValidationIssue, ValidationResult

from .models import TetherConfig

CONFIG_ENV_VAR = "TETHER_CONFIG_PATH"


def resolve_env_vars(value: str) -> str:
    """Resolve environment variable references in string.

    Supports:
    - ${VAR} - Required, error if not set
    - ${VAR:-default} - With default value
    - ${VAR:?error message} - Required with custom error

    Raises:
        TetherError: If required var not set
    """
    pattern = r"\$\{([^}:]+)(?::([?-])([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        operator = match.group(2)  # '-' or '?' or None
        operand = match.group(3)  # default value or error message

        env_value = os.environ.get(var_name)
        if env_value is not None:
            return env_value

        if operator == "-":
            return operand or ""
        if operator == "?":
            error_msg = operand or f"Required environment variable {var_name} not set"
            raise create_error("CONFIG_INVALID", detail=error_msg)
        raise create_error(
            "CONFIG_INVALID",
            detail=f"Required environment variable {var_name} not set",
        )

    return re.sub(pattern, replacer, value)


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries."""
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _resolve_env_vars_recursive(data: Any) -> Any:
    if isinstance(data, dict):
        return {k: _resolve_env_vars_recursive(v) for k, v in data.items()}
    if isinstance(data, list):
        return [_resolve_env_vars_recursive(item) for item in data]
    if isinstance(data, str):
        return resolve_env_vars(data)
    return data


class ConfigLoader:
    """Load and validate Tether configuration."""

    def __init__(self, logger: Any = None):
        """Initialize config loader.

        Args:
            logger: Optional TetherLogger instance
        """
        self._config: TetherConfig | None = None
        self._config_path: Path | None = None
        self._logger = logger

    @property
    def config_path(self) -> Path | None:
        """Path of the last loaded file, if any."""
        return self._config_path

    def load(self, path: str | Path | None = None, use_defaults: bool = True) -> TetherConfig:
        """Load configuration from file.

        Resolution order if path not specified:
        1. TETHER_CONFIG_PATH environment variable
        2. ./tether.yaml
        3. ~/.tether/config.yaml
        4. If use_defaults=True and no file found, use default configuration

        Raises:
            TetherError: If file not found (when use_defaults=False) or invalid
        """
        if path is None:
            path = self._resolve_config_path()

        config_path = Path(path)

        if not config_path.exists():
            if use_defaults:
                self._debug(f"No config file at {config_path}, using defaults")
                return self.load_defaults()
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Configuration file not found: {config_path}",
            )

        try:
            with config_path.open() as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Invalid YAML in config file: {e}",
            ) from e

        if not isinstance(data, dict):
            raise create_error("CONFIG_INVALID", detail="Top level of config must be a mapping")

        data = _resolve_env_vars_recursive(data)
        return self.load_from_dict(data, config_path)

    def load_defaults(self) -> TetherConfig:
        """Load default configuration without a file."""
        return self.load_from_dict({})

    def load_from_dict(self, data: dict[str, Any], config_path: Path | None = None) -> TetherConfig:
        """Load configuration from dictionary.

        Raises:
            TetherError: If configuration is invalid
        """
        validation = self.validate(data)
        if not validation.valid:
            error_messages = [f"- {issue.path}: {issue.message}" for issue in validation.errors]
            raise create_error(
                "CONFIG_INVALID",
                detail="Configuration validation failed:\n" + "\n".join(error_messages),
            )

        try:
            config = self._convert_field(TetherConfig, data)
        except (TypeError, ValueError) as e:
            raise create_error(
                "CONFIG_INVALID",
                detail=f"Failed to parse configuration: {e}",
            ) from e

        self._config = config
        self._config_path = config_path
        self._debug("Configuration loaded")
        return config

    def validate(self, data: dict[str, Any]) -> ValidationResult:
        """Validate config data without loading.

        Args:
            data: Configuration dictionary

        Returns:
            ValidationResult with errors and warnings
        """
        errors: list[ValidationIssue] = []
        warnings: list[ValidationIssue] = []

        sections = {f.name for f in fields(TetherConfig)}
        for key, value in data.items():
            if key not in sections:
                warnings.append(
                    ValidationIssue(
                        path=key,
                        message=f"Unknown configuration key: {key}",
                        severity="warning",
                    )
                )
            elif not isinstance(value, dict):
                errors.append(ValidationIssue(path=key, message=f"{key} must be a mapping"))

        proxy = data.get("proxy")
        if isinstance(proxy, dict):
            if "command" in proxy and (not isinstance(proxy["command"], str) or not proxy["command"]):
                errors.append(
                    ValidationIssue(path="proxy.command", message="command must be a non-empty string")
                )
            if "args" in proxy and not (
                isinstance(proxy["args"], list) and all(isinstance(a, str) for a in proxy["args"])
            ):
                errors.append(
                    ValidationIssue(path="proxy.args", message="args must be a list of strings")
                )

        handshake = data.get("handshake")
        if isinstance(handshake, dict):
            for key in ("settle_delay", "retry_delay"):
                value = handshake.get(key)
                if value is not None and (not isinstance(value, (int, float)) or value < 0):
                    errors.append(
                        ValidationIssue(
                            path=f"handshake.{key}", message=f"{key} must be a non-negative number"
                        )
                    )
            for key in ("request_timeout", "shutdown_timeout"):
                value = handshake.get(key)
                if value is not None and (not isinstance(value, (int, float)) or value <= 0):
                    errors.append(
                        ValidationIssue(
                            path=f"handshake.{key}", message=f"{key} must be a positive number"
                        )
                    )
            retries = handshake.get("initialize_retries")
            if retries is not None and (not isinstance(retries, int) or retries < 0):
                errors.append(
                    ValidationIssue(
                        path="handshake.initialize_retries",
                        message="initialize_retries must be a non-negative integer",
                    )
                )

        rest = data.get("rest")
        if isinstance(rest, dict) and "port" in rest and not isinstance(rest["port"], int):
            errors.append(ValidationIssue(path="rest.port", message="port must be an integer"))

        return ValidationResult(valid=True, errors=errors, warnings=warnings)

    def get(self) -> TetherConfig:
        """Get current configuration.

        Raises:
            TetherError: If configuration not loaded
        """
        if self._config is None:
            raise create_error("CONFIG_INVALID", detail="Configuration not loaded")
        return self._config

    def _debug(self, message: str) -> None:
        if self._logger:
            self._logger._log(LogLevel.DEBUG, "manager", message)

    def _resolve_config_path(self) -> Path:
        env_path = os.environ.get(CONFIG_ENV_VAR)
        if env_path:
            return Path(env_path)

        local_path = Path("tether.yaml")
        if local_path.exists():
            return local_path

        home_path = Path.home() / ".tether" / "config.yaml"
        if home_path.exists():
            return home_path

        return local_path

    def _convert_field(self, field_type: Any, value: Any) -> Any:
        """Convert a raw YAML value to the annotated field type."""
        if value is None:
            return None

        origin = typing.get_origin(field_type)

        if origin is list and isinstance(value, list):
            args = typing.get_args(field_type)
            if args:
                return [self._convert_field(args[0], item) for item in value]
            return value

        if origin is dict and isinstance(value, dict):
            args = typing.get_args(field_type)
            if len(args) == 2:
                return {k: self._convert_field(args[1], v) for k, v in value.items()}
            return value

        if is_dataclass(field_type) and isinstance(value, dict):
            hints = typing.get_type_hints(field_type)
            kwargs = {
                f.name: self._convert_field(hints[f.name], value[f.name])
                for f in fields(field_type)
                if f.name in value
            }
            return field_type(**kwargs)

        if isinstance(field_type, type) and issubclass(field_type, Enum) and isinstance(value, str):
            return field_type(value)

        return value


# Convenience singleton
_default_loader: ConfigLoader | None = None


def get_config_loader() -> ConfigLoader:
    """Get default config loader singleton."""
    global _default_loader  # noqa: PLW0603
    if _default_loader is None:
        _default_loader = ConfigLoader()
    return _default_loader


def load_config(path: str | Path | None = None) -> TetherConfig:
    """Convenience function to load config."""
    return get_config_loader().load(path)
