"""HTTP surface of the route finder."""

from .app import create_app

__all__ = ["create_app"]
