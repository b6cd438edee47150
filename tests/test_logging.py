"""Tests for structured logging setup, classification IDs and key masking."""

import logging
from collections.abc import Generator
from unittest.mock import AsyncMock

import pytest
import structlog

from categorizer.config_schema import LoggingConfig
from categorizer.core.logging import (
    REDACTED,
    RedactingFilter,
    add_classification_id,
    classification_context,
    configure_from_config,
    configure_logging,
    get_classification_id,
    get_logger,
    redact_credentials,
    redact_key_param,
    reset_logging,
)
from categorizer.engine.orchestrator import ClassificationRequest, Orchestrator


@pytest.fixture(autouse=True)
def restore_logging() -> Generator[None, None, None]:
    yield
    reset_logging()


def _own_handlers() -> list[logging.Handler]:
    return [
        h
        for h in logging.getLogger().handlers
        if any(isinstance(f, RedactingFilter) for f in h.filters)
    ]


# ---------------------------------------------------------------------------
# Classification context
# ---------------------------------------------------------------------------


class TestClassificationContext:
    """classification_id tagging."""

    def test_added_inside_context(self) -> None:
        with classification_context("abc-123") as classification_id:
            assert classification_id == "abc-123"
            event = add_classification_id(None, "info", {"event": "x"})
        assert event == {"event": "x", "classification_id": "abc-123"}

    def test_absent_outside_context(self) -> None:
        assert get_classification_id() is None
        assert add_classification_id(None, "info", {"event": "x"}) == {"event": "x"}

    def test_generates_uuid_by_default(self) -> None:
        with classification_context() as first, classification_context() as second:
            assert first != second
            assert len(first) == 36

    def test_nested_context_restores_outer_id(self) -> None:
        with classification_context("outer"):
            with classification_context("inner"):
                assert get_classification_id() == "inner"
            assert get_classification_id() == "outer"
        assert get_classification_id() is None

    def test_cleared_when_block_raises(self) -> None:
        with pytest.raises(RuntimeError):
            with classification_context("boom"):
                raise RuntimeError("x")
        assert get_classification_id() is None

    @pytest.mark.asyncio
    async def test_orchestrator_scopes_id_to_one_call(self) -> None:
        seen: list[str | None] = []

        async def generate(*args, **kwargs) -> str:
            seen.append(get_classification_id())
            return "Updates"

        client = AsyncMock()
        client.generate = AsyncMock(side_effect=generate)
        orchestrator = Orchestrator(client)

        await orchestrator.classify(ClassificationRequest("k", "first"))
        await orchestrator.classify(ClassificationRequest("k", "second"))

        assert len(seen) == 2
        assert None not in seen
        assert seen[0] != seen[1]
        assert get_classification_id() is None


# ---------------------------------------------------------------------------
# Key masking
# ---------------------------------------------------------------------------


class TestRedaction:
    """The API key never reaches a log line."""

    @pytest.mark.parametrize(
        "text, expected",
        [
            (
                "POST https://h/models/m:generateContent?key=AIza-secret",
                "POST https://h/models/m:generateContent?key=***",
            ),
            ("https://h/x?alt=json&key=abc&v=1", "https://h/x?alt=json&key=***&v=1"),
            ("no key here", "no key here"),
            ("monkey=business", "monkey=business"),
        ],
    )
    def test_redact_key_param(self, text: str, expected: str) -> None:
        assert redact_key_param(text) == expected

    def test_credential_fields_masked(self) -> None:
        event = redact_credentials(
            None,
            "info",
            {"event": "x", "credential": "secret", "api_key": "secret", "attempts": 2},
        )
        assert event == {"event": "x", "credential": REDACTED, "api_key": REDACTED, "attempts": 2}

    def test_empty_credential_left_alone(self) -> None:
        assert redact_credentials(None, "info", {"event": "x", "credential": ""}) == {
            "event": "x",
            "credential": "",
        }

    def test_urls_in_string_fields_masked(self) -> None:
        event = redact_credentials(None, "info", {"event": "x", "url": "https://h?key=secret"})
        assert event["url"] == "https://h?key=***"

    def test_filter_masks_formatted_stdlib_record(self) -> None:
        record = logging.LogRecord(
            "httpx",
            logging.INFO,
            __file__,
            1,
            'HTTP Request: %s %s "%s %d %s"',
            ("POST", "https://h/m:generateContent?key=secret", "HTTP/1.1", 200, "OK"),
            None,
        )

        assert RedactingFilter().filter(record) is True
        assert record.getMessage() == (
            'HTTP Request: POST https://h/m:generateContent?key=*** "HTTP/1.1 200 OK"'
        )


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------


class TestConfigureLogging:
    """configure_logging() and configure_from_config()."""

    @pytest.mark.parametrize("json_output", [True, False])
    def test_configures_structlog(self, json_output: bool) -> None:
        configure_logging(log_level="debug", json_output=json_output)

        processors = structlog.get_config()["processors"]
        assert add_classification_id in processors
        assert redact_credentials in processors
        renderer = processors[-1]
        if json_output:
            assert isinstance(renderer, structlog.processors.JSONRenderer)
        else:
            assert isinstance(renderer, structlog.dev.ConsoleRenderer)

    def test_reconfigure_changes_level_without_stacking_handlers(self) -> None:
        configure_logging("WARNING")
        configure_logging("DEBUG")

        assert logging.getLogger().level == logging.DEBUG
        assert len(_own_handlers()) == 1

    def test_leaves_other_handlers_alone(self) -> None:
        other = logging.NullHandler()
        root = logging.getLogger()
        root.addHandler(other)
        try:
            configure_logging("INFO")
            configure_logging("ERROR")
            assert other in root.handlers
        finally:
            root.removeHandler(other)

    def test_unknown_level_rejected(self) -> None:
        with pytest.raises(ValueError, match="Unknown log level"):
            configure_logging("LOUD")

    def test_httpx_request_lines_only_when_debugging(self) -> None:
        configure_logging("INFO")
        assert logging.getLogger("httpx").level == logging.WARNING

        configure_logging("DEBUG")
        assert logging.getLogger("httpx").level == logging.DEBUG

    def test_from_config(self) -> None:
        configure_from_config(LoggingConfig(level="ERROR", json_output=True))

        assert logging.getLogger().level == logging.ERROR
        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

    def test_debug_overrides_config_level(self) -> None:
        configure_from_config(LoggingConfig(level="ERROR"), debug=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_reset_logging(self) -> None:
        configure_logging("DEBUG")
        reset_logging()

        assert _own_handlers() == []
        assert logging.getLogger().level == logging.WARNING

    def test_get_logger_logs_with_context(self) -> None:
        configure_logging("INFO", json_output=True)
        logger = get_logger("categorizer.test")
        with classification_context("abc"):
            logger.info("test_event", key="value")
