"""Azure Blob Storage implementation of the storage blueprint."""

import time
from typing import NoReturn

from azure.core.exceptions import AzureError, ResourceNotFoundError
from azure.storage.blob import ContainerClient, ContentSettings

from blobjack.base import AssetStorageBlueprint
from blobjack.base import sas
from blobjack.base.async_support import AsyncMixin
from blobjack.base.config import AzureConfig
from blobjack.base.content_type import detect_content_type
from blobjack.base.exceptions import (
    StorageError,
    ContainerNotFoundError,
    ObjectNotFoundError,
    CopyFailedError,
)
from blobjack.base.logger import bj_logger, new_request_id

_PROVIDER = "azure"


def _handle_azure_error(e: AzureError, message: str) -> NoReturn:
    """Raise a mapped exception or a generic StorageError.

    The provider's own message is appended so callers see the service detail.
    """
    detail = f"{message} {e}"
    if isinstance(e, ResourceNotFoundError):
        if getattr(e, "error_code", None) == "ContainerNotFound":
            raise ContainerNotFoundError(detail) from e
        raise ObjectNotFoundError(detail) from e
    raise StorageError(detail) from e


class Storage(AssetStorageBlueprint, AsyncMixin):
    """Azure Blob Storage implementation bound to a single container.

    Attributes:
        config: Immutable Azure configuration.
        container: ``ContainerClient`` for the configured container.
    """

    def __init__(self, config: AzureConfig) -> None:
        """Initialize the container client.

        The container URL is built from ``config.root_url`` so custom
        endpoints (sovereign clouds, Azurite) work the same way as the
        public endpoint.

        Args:
            config: Azure configuration object. Expected attributes:
                   - account_name: Storage account name
                   - account_key: Base64 account key
                   - root_url: URL template, e.g. 'https://%s.blob.core.windows.net/%s'
                   - container_name: Container holding the assets
                   - api_version: Version signed into SAS URLs
        """
        self.config = config
        self.container = ContainerClient.from_container_url(
            self.get_url(),
            credential={
                "account_name": config.account_name,
                "account_key": config.account_key,
            },
        )

    def _log(self, level: str, message: str, operation: str, key: str, request_id: str, **kwargs) -> None:
        getattr(bj_logger, level)(
            message,
            provider=_PROVIDER,
            container=self.config.container_name,
            operation=operation,
            key=key,
            request_id=request_id,
            **kwargs,
        )

    def get_container(self) -> ContainerClient:
        """Return the underlying ``ContainerClient``."""
        return self.container

    # --- Object operations ---

    def upload(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Upload *data* as a block blob, overwriting any existing blob.

        Raises:
            ContainerNotFoundError: If the container does not exist.
            StorageError: If the upload fails for any other reason.
        """
        rid = new_request_id()
        content_type = content_type or detect_content_type(data)
        self._log("debug", f"Uploading {len(data)} bytes as {content_type}", "upload", key, rid)
        try:
            self.container.upload_blob(
                name=key,
                data=data,
                overwrite=True,
                content_settings=ContentSettings(content_type=content_type),
            )
        except AzureError as e:
            self._log("error", "Upload failed", "upload", key, rid, exc_info=True)
            _handle_azure_error(e, f"Failed to upload '{key}' to '{self.config.container_name}'.")
        self._log("info", "Uploaded blob", "upload", key, rid)
        return self.get_blob_url(key)

    def delete(self, key: str) -> str:
        """Delete a blob together with its snapshots.

        Raises:
            ObjectNotFoundError: If the blob does not exist.
            StorageError: If deletion fails for any other reason.
        """
        rid = new_request_id()
        self._log("debug", "Deleting blob", "delete", key, rid)
        try:
            self.container.delete_blob(key, delete_snapshots="include")
        except AzureError as e:
            self._log("error", "Delete failed", "delete", key, rid, exc_info=True)
            _handle_azure_error(e, f"Failed to delete '{key}' from '{self.config.container_name}'.")
        self._log("info", "Deleted blob", "delete", key, rid)
        return self.get_blob_url(key)

    def list_objects(self, prefix: str = "") -> list[str]:
        """List blob names under *prefix*, one result segment at a time.

        Raises:
            ContainerNotFoundError: If the container does not exist.
            StorageError: If listing fails for any other reason.
        """
        rid = new_request_id()
        keys: list[str] = []
        try:
            pages = self.container.list_blobs(name_starts_with=prefix or None).by_page()
            for page in pages:
                keys.extend(blob.name for blob in page)
        except AzureError as e:
            self._log("error", "List failed", "list_objects", prefix, rid, exc_info=True)
            _handle_azure_error(e, f"Failed to list blobs in '{self.config.container_name}'.")
        self._log("debug", f"Listed {len(keys)} blobs", "list_objects", prefix, rid)
        return keys

    def download(self, key: str) -> bytes:
        """Download the whole blob.

        Raises:
            ObjectNotFoundError: If the blob does not exist.
            StorageError: If the download fails for any other reason.
        """
        rid = new_request_id()
        try:
            return self.container.download_blob(key).readall()
        except AzureError as e:
            self._log("error", "Download failed", "download", key, rid, exc_info=True)
            _handle_azure_error(e, f"Failed to download '{key}' from '{self.config.container_name}'.")

    def copy(self, source_key: str, dest_key: str) -> None:
        """Copy a blob inside the container and wait for the copy to finish.

        Blob copies are asynchronous on Azure: the status is polled every
        ``config.poll_interval`` seconds for at most ``config.copy_timeout``.

        Raises:
            ObjectNotFoundError: If the source blob does not exist.
            CopyFailedError: If the copy fails, is aborted or times out.
            StorageError: If the copy request fails for any other reason.
        """
        rid = new_request_id()
        self._log("debug", f"Copying from '{source_key}'", "copy", dest_key, rid)
        source_url = self.container.get_blob_client(source_key).url
        dest = self.container.get_blob_client(dest_key)
        try:
            status = dest.start_copy_from_url(source_url)["copy_status"]
            deadline = time.monotonic() + self.config.copy_timeout
            while status == "pending":
                if time.monotonic() >= deadline:
                    raise CopyFailedError(
                        f"Copy of '{source_key}' to '{dest_key}' did not finish "
                        f"within {self.config.copy_timeout}s."
                    )
                time.sleep(self.config.poll_interval)
                status = dest.get_blob_properties().copy.status
        except AzureError as e:
            self._log("error", "Copy failed", "copy", dest_key, rid, exc_info=True)
            _handle_azure_error(e, f"Failed to copy '{source_key}' to '{dest_key}'.")

        if status != "success":
            self._log("error", f"Copy ended with status '{status}'", "copy", dest_key, rid)
            raise CopyFailedError(f"Copy of '{source_key}' to '{dest_key}' ended with status '{status}'.")
        self._log("info", f"Copied from '{source_key}'", "copy", dest_key, rid)

    # --- URLs and signatures ---

    def get_url(self) -> str:
        """Return the container URL built from ``root_url``."""
        return sas.base_url(self.config.root_url, self.config.account_name, self.config.container_name)

    def get_blob_url(self, key: str, with_signature: bool = False) -> str:
        """Return the blob URL for *key*.

        ``"file/image.png"`` becomes
        ``"https://<account>.blob.core.windows.net/<container>/file/image.png"``.
        With *with_signature* the URL carries a read-only SAS valid for one
        hour.
        """
        if not key or not with_signature:
            return sas.object_url(self.get_url(), key)
        expiry = sas.expiry_timestamp()
        signature = self.generate_signature(expiry, key)
        query = sas.signed_query(expiry, signature, self.config.api_version)
        return sas.object_url(self.get_url(), key, query)

    def get_key(self, blob_url: str) -> str:
        """Return the blob name from a blob URL (the inverse of :meth:`get_blob_url`)."""
        return sas.key_from_url(blob_url, self.config.container_name, self.get_url())

    def generate_signature(self, expiry: str, key: str) -> str:
        """Return the SAS signature for read access to *key* until *expiry*."""
        return sas.generate_shared_access_signature(
            expiry,
            key,
            self.config.account_name,
            self.config.container_name,
            self.config.account_key,
            self.config.api_version,
        )
