"""
Configuration for the Shapeshifter HTTP API.

Uses pydantic-settings for environment variable loading.
Core settings (store, decider, logging) come from ServerConfig.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """HTTP API configuration loaded from environment."""

    # Bind address
    host: str = Field(default="0.0.0.0", description="API bind host")
    port: int = Field(default=3000, description="API bind port")

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed CORS origins",
    )

    # Uvicorn
    reload: bool = Field(default=False, description="Reload on code changes (development)")

    model_config = {"env_prefix": "SHAPESHIFTER_"}
