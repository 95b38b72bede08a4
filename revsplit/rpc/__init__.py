"""HTTP surface (FastAPI) over a host + splitter."""

from .app import create_app

__all__ = ["create_app"]
