"""
Unit tests for the server entry point.

Tests cover:
- Logging setup (json and text formats)
- Server shutdown without a running HTTP server
"""

import logging

import json_log_formatter
import pytest

from shapeshifter.api import Settings
from shapeshifter.config import (
    DeciderBackend,
    DeciderConfig,
    ObservabilityConfig,
    ServerConfig,
    StoreBackend,
    StoreConfig,
)
from shapeshifter.database import Database
from shapeshifter.main import Server, setup_logging


@pytest.fixture
def root_logger():
    """Restore root logger state after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)


def _config(log_format="json", log_level="INFO"):
    return ServerConfig(
        store=StoreConfig(backend=StoreBackend.MEMORY),
        decider=DeciderConfig(backend=DeciderBackend.REJECT),
        observability=ObservabilityConfig(log_level=log_level, log_format=log_format),
    )


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_format(self, root_logger):
        """JSON format installs the JSON formatter."""
        setup_logging(_config("json", "DEBUG"))

        assert root_logger.level == logging.DEBUG
        assert isinstance(root_logger.handlers[0].formatter, json_log_formatter.JSONFormatter)

    def test_text_format(self, root_logger):
        """Text format installs a plain formatter."""
        setup_logging(_config("text"))

        formatter = root_logger.handlers[0].formatter
        assert not isinstance(formatter, json_log_formatter.JSONFormatter)
        assert len(root_logger.handlers) == 1

    def test_noisy_loggers_quieted(self, root_logger):
        """HTTP client loggers are raised to WARNING."""
        setup_logging(_config())

        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("uvicorn.access").level == logging.WARNING


class TestServer:
    """Tests for Server lifecycle helpers."""

    def test_request_shutdown_before_start(self):
        """Requesting shutdown before start is a no-op."""
        server = Server(_config(), Settings())
        server.request_shutdown()
        assert server.database is None

    @pytest.mark.asyncio
    async def test_stop_closes_database(self):
        """stop() releases the database."""
        server = Server(_config(), Settings())
        server.database = await Database.from_config(server.config)

        await server.stop()

        assert server.database is None
