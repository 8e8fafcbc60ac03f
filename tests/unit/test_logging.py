"""Unit tests for structlog configuration: renderer selection and the stdlib bridge."""

from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest
import structlog

from deckrag.utils.logging import configure_logging, get_logger


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Put the root logger and structlog back the way the suite had them."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    chromadb_level = logging.getLogger("chromadb").level
    config = structlog.get_config()
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("chromadb").setLevel(chromadb_level)
    structlog.configure(**config)


class TestConfigureLogging:
    @pytest.mark.usefixtures("restore_logging")
    def test_json_output_ends_chain_with_json_renderer(self) -> None:
        configure_logging(log_level="DEBUG", json_output=True)

        processors = structlog.get_config()["processors"]
        assert processors[0] is structlog.contextvars.merge_contextvars
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    @pytest.mark.usefixtures("restore_logging")
    def test_console_renderer_outside_production(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "development")
        configure_logging()

        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)

    @pytest.mark.usefixtures("restore_logging")
    def test_production_env_forces_json(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("APP_ENV", "production")
        configure_logging()

        assert isinstance(structlog.get_config()["processors"][-1], structlog.processors.JSONRenderer)

    @pytest.mark.usefixtures("restore_logging")
    def test_stdlib_records_share_the_formatter(self) -> None:
        configure_logging(log_level="WARNING", json_output=True)

        root = logging.getLogger()
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
        assert root.level == logging.WARNING
        assert logging.getLogger("chromadb").level == logging.WARNING

    def test_get_logger_returns_usable_logger(self) -> None:
        log = get_logger("deckrag.tests")
        log.debug("logger_ready", check=True)
