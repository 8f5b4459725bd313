"""Self-hosted media dropbox: upload, tag, search and stream a small library."""

__version__ = "0.1.0"
