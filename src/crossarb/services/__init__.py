"""HTTP services exposed next to the bot."""

from crossarb.services.api import create_app

__all__ = ["create_app"]
