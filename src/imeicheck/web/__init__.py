"""HTTP surface for the imeicheck verification engine."""

from .api import app, get_verifier

__all__ = [
    "app",
    "get_verifier",
]
