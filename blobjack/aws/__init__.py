"""AWS S3 provider implementation."""

from .storage import Storage

__all__ = ["Storage"]
