"""Config Loader - Loads library settings and builds failure-handler chains.

Settings live in a YAML file with ${ENV_VAR} substitution:

    handlers: [log, exception]
    log_severity: warn
    writer:
      max_line_length: ${ENSURANCE_LINE_LENGTH}
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from ensurance.handlers import DebuggerHandler, ExceptionHandler, FailureHandler, LoggingHandler
from ensurance.models import EnsuranceSettings, HandlerKind


class ConfigError(Exception):
    """Raised when settings loading fails."""


def load_settings(config_path: Path | None = None) -> EnsuranceSettings:
    """Load settings from YAML with ${ENV_VAR} substitution. None yields defaults."""
    if config_path is None:
        return EnsuranceSettings()

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e

    # An empty document means all defaults
    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must be a YAML mapping")

    raw_config = _substitute_env_vars(raw_config)

    try:
        return EnsuranceSettings.model_validate(raw_config)
    except Exception as e:
        raise ConfigError(f"Invalid config structure: {e}") from e


def build_handlers(settings: EnsuranceSettings) -> list[FailureHandler]:
    """Create the configured handlers, in chain order."""
    handlers: list[FailureHandler] = []
    for kind in settings.handlers:
        if kind is HandlerKind.EXCEPTION:
            handlers.append(ExceptionHandler(settings.writer))
        elif kind is HandlerKind.LOG:
            handlers.append(
                LoggingHandler(
                    logging.getLogger(settings.logger_name),
                    settings.log_severity,
                    settings.writer,
                )
            )
        elif kind is HandlerKind.DEBUGGER:
            handlers.append(DebuggerHandler())
    return handlers


_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _substitute_env_vars(data: Any) -> Any:
    """Replace ${ENV_VAR} references in every string nested inside data."""
    if isinstance(data, dict):
        return {key: _substitute_env_vars(value) for key, value in data.items()}
    if isinstance(data, list):
        return [_substitute_env_vars(item) for item in data]
    if not isinstance(data, str):
        return data

    def lookup(match: re.Match) -> str:
        name = match.group(1)
        if name not in os.environ:
            raise ConfigError(f"Environment variable '{name}' is not set")
        return os.environ[name]

    return _ENV_VAR_PATTERN.sub(lookup, data)
