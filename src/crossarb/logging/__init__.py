"""Logging helpers."""

from crossarb.logging.setup import configure_logging

__all__ = ["configure_logging"]
