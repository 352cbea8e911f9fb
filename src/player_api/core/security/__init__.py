"""Security helpers."""

from .tokens import decode_token

__all__ = ["decode_token"]
