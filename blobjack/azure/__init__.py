"""Azure Blob Storage provider implementation."""

from .storage import Storage

__all__ = ["Storage"]
