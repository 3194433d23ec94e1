"""Blob storage service blueprint."""

from abc import ABC, abstractmethod
from typing import Any


class AssetStorageBlueprint(ABC):
    """Abstract interface for a single container / bucket of binary assets.

    Maps to Azure Blob Storage and AWS S3. An instance is bound to one
    container and one immutable config; every method is a single
    synchronous round trip (or a bounded wait) with no state shared
    between calls.
    """

    @abstractmethod
    def get_container(self) -> Any:
        """Return the provider's native container handle.

        Raises:
            UnsupportedOperationError: If the provider has no such handle.
        """

    # --- Object operations ---

    @abstractmethod
    def upload(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Create or overwrite an object.

        Args:
            key: Object key inside the container.
            data: Full object content.
            content_type: MIME type to store. Sniffed from *data* when omitted.

        Returns:
            The canonical (unsigned) URL of the object.
        """

    @abstractmethod
    def delete(self, key: str) -> str:
        """Delete an object.

        Args:
            key: Object key to delete.

        Returns:
            The canonical URL the object had.
        """

    @abstractmethod
    def list_objects(self, prefix: str = "") -> list[str]:
        """List every object key under *prefix*.

        All provider pages are drained. Order is provider-defined.
        """

    @abstractmethod
    def download(self, key: str) -> bytes:
        """Read the whole object into memory."""

    @abstractmethod
    def copy(self, source_key: str, dest_key: str) -> None:
        """Server-side copy of *source_key* to *dest_key*.

        Blocks until the provider reports the copy as finished.
        """

    # --- URLs and signatures ---

    @abstractmethod
    def get_url(self) -> str:
        """Return the base URL of the container."""

    @abstractmethod
    def get_blob_url(self, key: str, with_signature: bool = False) -> str:
        """Return the URL of *key*.

        Args:
            key: Object key. An empty key is returned unchanged.
            with_signature: Append a time-limited read signature.
        """

    @abstractmethod
    def get_key(self, blob_url: str) -> str:
        """Recover the object key from a URL built by :meth:`get_blob_url`.

        Never raises: an unparsable URL is returned unchanged.
        """

    @abstractmethod
    def generate_signature(self, expiry: str, key: str) -> str:
        """Return a read-access signature for *key* valid until *expiry*.

        Raises:
            UnsupportedOperationError: If the provider has no such primitive.
        """
