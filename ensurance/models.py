"""Settings models for ensurance.

All models use Pydantic v2. Settings are normally loaded from YAML by
config_loader.load_settings(); every field has a default so an empty
document (or no document at all) yields a working configuration.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =============================================================================
# Enums
# =============================================================================


class HandlerKind(str, Enum):
    """Failure handlers that can be named in settings."""

    EXCEPTION = "exception"
    LOG = "log"
    DEBUGGER = "debugger"


class LogSeverity(str, Enum):
    """Severity used by the logging failure handler."""

    DEBUG = "debug"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"
    FATAL = "fatal"


# =============================================================================
# Settings Models
# =============================================================================


class WriterSettings(BaseModel):
    """Layout limits for rendered failure messages."""

    model_config = ConfigDict(extra="forbid")

    max_line_length: int = Field(
        default=78, ge=40, description="Maximum width of a rendered line, including prefix"
    )
    collection_preview: int = Field(
        default=10, ge=1, description="Elements shown when a collection is written as a value"
    )
    diff_preview: int = Field(
        default=3, ge=1, description="Elements shown after 'Missing:' or 'Extra:'"
    )


class EnsuranceSettings(BaseModel):
    """Top-level library settings.

    The handler list is linked in order into a chain of responsibility;
    every handler passes control to its successor, so a logging handler
    listed after the exception handler still runs.
    """

    model_config = ConfigDict(extra="forbid")

    writer: WriterSettings = Field(default_factory=WriterSettings)
    handlers: list[HandlerKind] = Field(
        default_factory=lambda: [HandlerKind.EXCEPTION],
        description="Failure handlers, in chain order",
    )
    log_severity: LogSeverity = Field(
        default=LogSeverity.ERROR, description="Severity for the 'log' handler"
    )
    logger_name: str = Field(
        default="ensurance", description="Logger used by the 'log' handler"
    )

    @field_validator("handlers")
    @classmethod
    def check_handlers_not_empty(cls, v: list[HandlerKind]) -> list[HandlerKind]:
        if not v:
            raise ValueError("at least one failure handler is required")
        if len(set(v)) != len(v):
            raise ValueError("failure handlers must not repeat")
        return v
