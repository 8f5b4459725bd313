"""HTTP surface of the dropbox."""

from .api import create_app

__all__ = ["create_app"]
