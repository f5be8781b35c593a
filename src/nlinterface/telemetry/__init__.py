"""Logging setup for CLI entrypoints."""

from .logging import configure_logging

__all__ = ["configure_logging"]
