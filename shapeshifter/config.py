"""
Configuration management for Shapeshifter.

All configuration is done via environment variables - no config files inside containers.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - Secrets are never logged or exposed in error messages
    - The relation sample count is always >= 1

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Deprecate settings by logging warnings but continuing to support them
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)


class StoreBackend(Enum):
    """Supported document store backends."""

    MEMORY = "memory"
    SQLITE = "sqlite"


class DeciderBackend(Enum):
    """Supported decision oracle backends."""

    ANTHROPIC = "anthropic"
    REJECT = "reject"


@dataclass(frozen=True)
class StoreConfig:
    """Document store configuration.

    Attributes:
        backend: Which store backend to use
        data_dir: Directory for the SQLite database file
        db_filename: SQLite database file name
        wal_mode: SQLite WAL mode enabled
        busy_timeout_ms: SQLite busy timeout in milliseconds
    """

    backend: StoreBackend = StoreBackend.SQLITE
    data_dir: str = "./data"
    db_filename: str = "shapeshifter.db"
    wal_mode: bool = True
    busy_timeout_ms: int = 5000

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load configuration from environment variables."""
        backend_str = os.getenv("STORE_BACKEND", "sqlite").lower()
        try:
            backend = StoreBackend(backend_str)
        except ValueError:
            raise ValueError(f"Invalid STORE_BACKEND '{backend_str}'. Must be one of: memory, sqlite")

        return cls(
            backend=backend,
            data_dir=os.getenv("DATA_DIR", "./data"),
            db_filename=os.getenv("SQLITE_DB_FILENAME", "shapeshifter.db"),
            wal_mode=os.getenv("SQLITE_WAL_MODE", "true").lower() == "true",
            busy_timeout_ms=int(os.getenv("SQLITE_BUSY_TIMEOUT_MS", "5000")),
        )


@dataclass(frozen=True)
class ReconcileConfig:
    """Reconciliation engine configuration.

    Attributes:
        sample_count: Synthetic instances generated per subset check
        transform_concurrency: Maximum per-document transforms in flight
    """

    sample_count: int = 100
    transform_concurrency: int = 16

    @classmethod
    def from_env(cls) -> ReconcileConfig:
        """Load configuration from environment variables."""
        return cls(
            sample_count=int(os.getenv("RELATION_SAMPLE_COUNT", "100")),
            transform_concurrency=int(os.getenv("TRANSFORM_CONCURRENCY", "16")),
        )


@dataclass(frozen=True)
class DeciderConfig:
    """Decision oracle configuration.

    Attributes:
        backend: Which decider to use
        api_key: Anthropic API key (required for the anthropic backend)
        model: Model name sent to the Messages API
        base_url: API base URL
        timeout_seconds: Deadline for a single decision call
        max_tokens: Completion budget for a decision
        max_retries: SDK retries on connection errors and retryable statuses
    """

    backend: DeciderBackend = DeciderBackend.ANTHROPIC
    api_key: str | None = None
    model: str = "claude-3-5-sonnet-20240620"
    base_url: str = "https://api.anthropic.com"
    timeout_seconds: float = 60.0
    max_tokens: int = 2048
    max_retries: int = 2

    @classmethod
    def from_env(cls) -> DeciderConfig:
        """Load configuration from environment variables."""
        backend_str = os.getenv("DECIDER_BACKEND", "anthropic").lower()
        try:
            backend = DeciderBackend(backend_str)
        except ValueError:
            raise ValueError(f"Invalid DECIDER_BACKEND '{backend_str}'. Must be one of: anthropic, reject")

        return cls(
            backend=backend,
            api_key=os.getenv("ANTHROPIC_API_KEY"),
            model=os.getenv("ANTHROPIC_MODEL", "claude-3-5-sonnet-20240620"),
            base_url=os.getenv("ANTHROPIC_BASE_URL", "https://api.anthropic.com"),
            timeout_seconds=float(os.getenv("DECIDER_TIMEOUT_SECONDS", "60")),
            max_tokens=int(os.getenv("DECIDER_MAX_TOKENS", "2048")),
            max_retries=int(os.getenv("DECIDER_MAX_RETRIES", "2")),
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass
class ServerConfig:
    """Complete server configuration.

    Attributes:
        store: Document store configuration
        reconcile: Reconciliation engine configuration
        decider: Decision oracle configuration
        observability: Logging configuration
    """

    store: StoreConfig = field(default_factory=StoreConfig)
    reconcile: ReconcileConfig = field(default_factory=ReconcileConfig)
    decider: DeciderConfig = field(default_factory=DeciderConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> ServerConfig:
        """Load complete configuration from environment variables.

        Returns:
            ServerConfig with all sections populated from environment.

        Raises:
            ValueError: If required configuration is missing or invalid.
        """
        config = cls(
            store=StoreConfig.from_env(),
            reconcile=ReconcileConfig.from_env(),
            decider=DeciderConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )

        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if self.reconcile.sample_count < 1:
            raise ValueError("RELATION_SAMPLE_COUNT must be at least 1")
        if self.reconcile.transform_concurrency < 1:
            raise ValueError("TRANSFORM_CONCURRENCY must be at least 1")

        if self.decider.backend == DeciderBackend.ANTHROPIC and not self.decider.api_key:
            raise ValueError("ANTHROPIC_API_KEY is required when DECIDER_BACKEND=anthropic")
        if self.decider.timeout_seconds <= 0:
            raise ValueError("DECIDER_TIMEOUT_SECONDS must be positive")
        if self.decider.max_retries < 0:
            raise ValueError("DECIDER_MAX_RETRIES must not be negative")

        if self.observability.log_format not in ("json", "text"):
            raise ValueError(
                f"Invalid LOG_FORMAT '{self.observability.log_format}'. Must be one of: json, text"
            )

        if self.store.backend == StoreBackend.SQLITE and not os.path.exists(self.store.data_dir):
            logger.warning(
                f"Data directory does not exist: {self.store.data_dir}. "
                "It will be created on first write."
            )

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "Server configuration loaded",
            extra={
                "store_backend": self.store.backend.value,
                "data_dir": self.store.data_dir
                if self.store.backend == StoreBackend.SQLITE
                else None,
                "sample_count": self.reconcile.sample_count,
                "transform_concurrency": self.reconcile.transform_concurrency,
                "decider_backend": self.decider.backend.value,
                "decider_model": self.decider.model
                if self.decider.backend == DeciderBackend.ANTHROPIC
                else None,
                "decider_api_key_set": self.decider.api_key is not None,
                "log_level": self.observability.log_level,
            },
        )
