"""Blobjack: one blob-storage API for Azure Blob Storage and AWS S3.

Entry point for the library. Import :func:`storage_factory` to create a
storage adapter with a single call::

    from blobjack import storage_factory

    storage = storage_factory("azure", {
        "account_name": "myaccount",
        "account_key": "<base64 key>",
        "container_name": "images",
    })
    url = storage.upload("2024/01/01/cat.png", png_bytes)
"""

from .base import AssetStorageBlueprint
from .base.exceptions import (
    BlobjackError,
    ConfigurationError,
    UnsupportedOperationError,
    StorageError,
    ContainerNotFoundError,
    ObjectNotFoundError,
    CopyFailedError,
)
from .factory import storage_factory

__all__ = [
    "AssetStorageBlueprint",
    "BlobjackError",
    "ConfigurationError",
    "UnsupportedOperationError",
    "StorageError",
    "ContainerNotFoundError",
    "ObjectNotFoundError",
    "CopyFailedError",
    "storage_factory",
]
