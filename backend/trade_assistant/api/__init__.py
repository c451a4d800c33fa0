"""HTTP surface: voice-agent webhooks and dashboard endpoints."""

from .main import create_app

__all__ = ["create_app"]
