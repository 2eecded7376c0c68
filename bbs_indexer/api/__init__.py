"""HTTP surface for the board index."""

from .app import create_app

__all__ = ["create_app"]
