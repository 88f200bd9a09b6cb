"""
Tests unitaires pour LOT 11: Logging - Structured Logger

- Format JSON structuré
- Timestamp ISO 8601 UTC avec millisecondes
- Filtrage par niveau, tampon borné
- Contexte d'opération (correlation_id + champs liés)
- Données sensibles masquées
"""

import json
import re

import pytest

from postwoman_auth.logging import (
    ContextualLogger,
    IStructuredLogger,
    LogConfig,
    LogLevel,
    MissingRequiredFieldError,
    StructuredLogger,
)


TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


class TestJsonFormat:
    """Format des entrées."""

    def test_implements_interface(self) -> None:
        assert isinstance(StructuredLogger("test"), IStructuredLogger)

    def test_output_is_valid_json(self) -> None:
        """Chaque entrée se sérialise en objet JSON."""
        logger = StructuredLogger("test")

        entry = logger.info("Signed in", user_id="u-1")
        parsed = json.loads(entry.to_json())

        assert parsed["message"] == "Signed in"
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "test"
        assert parsed["extra"] == {"user_id": "u-1"}

    def test_timestamp_is_iso8601_utc_with_millis(self) -> None:
        entry = StructuredLogger("test").info("hello")
        assert TIMESTAMP_PATTERN.match(entry.timestamp)

    def test_correlation_id_generated_when_absent(self) -> None:
        logger = StructuredLogger("test")
        first = logger.info("one")
        second = logger.info("two")

        assert first.correlation_id
        assert first.correlation_id != second.correlation_id

    def test_default_correlation_used(self) -> None:
        logger = StructuredLogger("test")
        logger.set_default_correlation("req-42")

        assert logger.info("hello").correlation_id == "req-42"

    def test_output_handler_receives_json(self) -> None:
        lines = []
        logger = StructuredLogger("test", output_handler=lines.append)

        logger.warn("Request timed out", path="/auth/profile")

        assert len(lines) == 1
        assert json.loads(lines[0])["level"] == "WARN"

    def test_empty_message_rejected(self) -> None:
        with pytest.raises(MissingRequiredFieldError):
            StructuredLogger("test").info("")

    def test_empty_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            StructuredLogger("  ")


class TestLevels:
    """Filtrage par niveau."""

    def test_debug_filtered_by_default(self) -> None:
        logger = StructuredLogger("test")
        assert logger.debug("noise") is None
        assert logger.get_entries() == []

    def test_min_level_debug_keeps_everything(self) -> None:
        logger = StructuredLogger("test", config=LogConfig(min_level=LogLevel.DEBUG))
        logger.debug("a")
        logger.info("b")
        logger.error("c")

        assert len(logger.get_entries()) == 3
        assert len(logger.get_entries_by_level(LogLevel.ERROR)) == 1

    @pytest.mark.parametrize("name,expected", [
        ("debug", LogLevel.DEBUG),
        ("INFO", LogLevel.INFO),
        ("warning", LogLevel.WARN),
        ("Warn", LogLevel.WARN),
    ])
    def test_level_from_name(self, name, expected) -> None:
        assert LogLevel.from_name(name) is expected

    def test_unknown_level_name_rejected(self) -> None:
        with pytest.raises(ValueError):
            LogLevel.from_name("verbose")


class TestBuffer:
    """Tampon mémoire borné."""

    def test_buffer_keeps_latest_entries(self) -> None:
        logger = StructuredLogger("test", config=LogConfig(max_entries=2))
        logger.info("one")
        logger.info("two")
        logger.info("three")

        assert [e.message for e in logger.get_entries()] == ["two", "three"]

    def test_clear_entries(self) -> None:
        logger = StructuredLogger("test")
        logger.info("one")
        logger.clear_entries()
        assert logger.get_entries() == []


class TestMasking:
    """Données sensibles jamais en clair."""

    def test_password_masked_in_extra(self) -> None:
        logger = StructuredLogger("test")
        entry = logger.info("Login attempt", identifier="bob", password="hunter22")

        assert entry.extra["identifier"] == "bob"
        assert entry.extra["password"] == "***MASKED***"
        assert "hunter22" not in entry.to_json()

    def test_masking_can_be_disabled(self) -> None:
        logger = StructuredLogger("test", config=LogConfig(mask_sensitive=False))
        entry = logger.info("debug", token="t1")
        assert entry.extra["token"] == "t1"


class TestContextualLogger:
    """Une opération de session = un contexte."""

    def test_with_context_binds_fields(self) -> None:
        logger = StructuredLogger("test")
        op = logger.with_context(operation="login")

        assert isinstance(op, ContextualLogger)
        entry = op.info("Signed in", user_id="u-1")

        assert entry.extra == {"operation": "login", "user_id": "u-1"}
        assert entry.correlation_id == op.correlation_id

    def test_entries_grouped_by_correlation(self) -> None:
        logger = StructuredLogger("test")
        op = logger.with_context(correlation_id="op-1", operation="logout")
        op.info("start")
        op.warn("Logout request failed")
        logger.info("unrelated")

        assert len(logger.get_entries_by_correlation("op-1")) == 2

    def test_bound_sensitive_fields_masked(self) -> None:
        logger = StructuredLogger("test")
        entry = logger.with_context(api_key="sk-1").info("hello")
        assert entry.extra["api_key"] == "***MASKED***"
