"""revsplit command line tools (typer + rich)."""

from .main import app, main

__all__ = ["app", "main"]
