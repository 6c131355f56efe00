"""
HTTP API for Shapeshifter.

FastAPI adapter over the Database service.
"""

from .app import STATUS_BY_CODE, create_app
from .config import Settings

__all__ = ["create_app", "Settings", "STATUS_BY_CODE"]
