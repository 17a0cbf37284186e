"""HTTP server exposing optimization streaming and run history."""

from .app import create_app

__all__ = ["create_app"]
