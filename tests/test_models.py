"""Unit tests for settings models."""

import pytest
from pydantic import ValidationError

from ensurance.models import EnsuranceSettings, HandlerKind, LogSeverity, WriterSettings


class TestWriterSettings:
    """Tests for WriterSettings."""

    def test_defaults(self):
        """Defaults match the standard layout."""
        settings = WriterSettings()
        assert settings.max_line_length == 78
        assert settings.collection_preview == 10
        assert settings.diff_preview == 3

    def test_minimum_line_length(self):
        """Lines narrower than 40 columns are rejected."""
        with pytest.raises(ValidationError):
            WriterSettings(max_line_length=39)

    def test_extra_fields_forbidden(self):
        """Unknown fields are rejected."""
        with pytest.raises(ValidationError):
            WriterSettings(width=80)


class TestEnsuranceSettings:
    """Tests for EnsuranceSettings."""

    def test_defaults(self):
        """A bare settings object raises on failure."""
        settings = EnsuranceSettings()
        assert settings.handlers == [HandlerKind.EXCEPTION]
        assert settings.log_severity is LogSeverity.ERROR
        assert settings.logger_name == "ensurance"

    def test_string_values(self):
        """Enum values are accepted by their names in YAML."""
        settings = EnsuranceSettings.model_validate(
            {"handlers": ["log", "exception"], "log_severity": "warn"}
        )
        assert settings.handlers == [HandlerKind.LOG, HandlerKind.EXCEPTION]
        assert settings.log_severity is LogSeverity.WARN

    def test_empty_handlers_rejected(self):
        """At least one handler is required."""
        with pytest.raises(ValidationError, match="at least one failure handler"):
            EnsuranceSettings(handlers=[])

    def test_repeated_handlers_rejected(self):
        """Handlers may not repeat."""
        with pytest.raises(ValidationError, match="must not repeat"):
            EnsuranceSettings(handlers=["log", "log"])

    def test_unknown_handler_rejected(self):
        """Unknown handler names are rejected."""
        with pytest.raises(ValidationError):
            EnsuranceSettings(handlers=["email"])
