"""
Shapeshifter Server - Main entry point.

This module starts the Shapeshifter HTTP server with all components:
- Document store (SQLite or in-memory)
- Decision oracle (Anthropic or reject-all)
- Reconciliation engine and query engine
- FastAPI app served by uvicorn

Usage:
    python -m shapeshifter.main

Configuration is entirely via environment variables.
See config.py for core settings and api/config.py for HTTP settings.

Invariants:
    - The store is initialized before the server accepts requests
    - Shutdown closes the oracle client and the store

How to change safely:
    - Add new components to Database.from_config, not here
    - Keep logging setup before any component is constructed
"""

from __future__ import annotations

import asyncio
import logging
import sys

import json_log_formatter
import uvicorn

from .api import Settings, create_app
from .config import ServerConfig
from .database import Database

logger = logging.getLogger(__name__)


def setup_logging(config: ServerConfig) -> None:
    """Configure logging based on configuration.

    Args:
        config: Server configuration
    """
    level = getattr(logging, config.observability.log_level.upper(), logging.INFO)

    if config.observability.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    # Reduce noise from libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


class Server:
    """Shapeshifter server orchestrator.

    Attributes:
        config: Server configuration
        settings: HTTP settings
        database: Database service, available after start()
    """

    def __init__(self, config: ServerConfig | None = None, settings: Settings | None = None) -> None:
        self.config = config or ServerConfig.from_env()
        self.settings = settings or Settings()
        self.database: Database | None = None
        self._http: uvicorn.Server | None = None

    async def start(self) -> None:
        """Start all components and serve until shutdown."""
        self.config.log_config()
        self.database = await Database.from_config(self.config)

        app = create_app(self.database, self.settings)
        self._http = uvicorn.Server(
            uvicorn.Config(
                app,
                host=self.settings.host,
                port=self.settings.port,
                log_config=None,
            )
        )
        logger.info(f"Serving on {self.settings.host}:{self.settings.port}")
        await self._http.serve()

    async def stop(self) -> None:
        """Release the oracle client and the store."""
        if self.database is not None:
            await self.database.close()
            self.database = None
        logger.info("Server stopped")

    def request_shutdown(self) -> None:
        """Request graceful shutdown."""
        if self._http is not None:
            self._http.should_exit = True


async def _serve(server: Server) -> None:
    try:
        await server.start()
    finally:
        await server.stop()


def main() -> None:
    """Main entry point."""
    # Load configuration
    try:
        config = ServerConfig.from_env()
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(1)

    # Setup logging
    setup_logging(config)

    # uvicorn installs SIGINT/SIGTERM handlers for graceful shutdown
    try:
        asyncio.run(_serve(Server(config)))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
