"""Portfolio gallery, admin uploads and contact form API."""

from .api import create_app
from .config import Settings

__all__ = ["create_app", "Settings"]
