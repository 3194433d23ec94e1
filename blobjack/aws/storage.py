"""AWS S3 implementation of the storage blueprint."""

from urllib.parse import unquote, urlparse

import boto3
from typing import NoReturn
from botocore.exceptions import ClientError, WaiterError

from blobjack.base import AssetStorageBlueprint
from blobjack.base.async_support import AsyncMixin
from blobjack.base.config import AWSConfig
from blobjack.base.content_type import detect_content_type
from blobjack.base.exceptions import (
    StorageError,
    ContainerNotFoundError,
    ObjectNotFoundError,
    CopyFailedError,
    UnsupportedOperationError,
)
from blobjack.base.logger import bj_logger, new_request_id
from blobjack.base.sas import EXPIRE_TIME

_PROVIDER = "aws"

_ERROR_MAP = {
    "NoSuchBucket": ContainerNotFoundError,
    "NoSuchKey": ObjectNotFoundError,
    "404": ObjectNotFoundError,
}


def _handle_client_error(e: ClientError, message: str) -> NoReturn:
    """Raise a mapped exception or a generic StorageError.

    The S3 error code and message are appended to *message*.
    """
    error = e.response.get("Error", {})
    code = error.get("Code", "Unknown")
    exc_class = _ERROR_MAP.get(code)
    detail = f"{message} ({code}: {error.get('Message', str(e))})"
    raise (exc_class or StorageError)(detail) from e


class Storage(AssetStorageBlueprint, AsyncMixin):
    """AWS S3 implementation bound to a single bucket and key prefix.

    Every key passed in is stored as ``base_path + key``; keys returned by
    :meth:`list_objects` and :meth:`get_key` have the prefix removed again.

    Attributes:
        config: Immutable AWS configuration.
        client: boto3 S3 client for interacting with the AWS S3 API.
        bucket: Bucket name.
    """

    def __init__(self, config: AWSConfig) -> None:
        """Initialize the AWS S3 client.

        Args:
            config: AWS configuration object. Expected attributes:
                   - session: Optional pre-built boto3 session; used instead
                     of the explicit credentials when present
                   - aws_access_key_id / aws_secret_access_key: Credentials
                   - region_name: AWS region name (e.g., 'us-east-1')
                   - bucket_name: Target bucket
                   - base_path: Key prefix inside the bucket
                   - acl: Canned ACL applied to uploads
        """
        self.config = config
        if config.session is not None:
            self.client = config.session.client("s3", region_name=config.region_name)
        else:
            self.client = boto3.client(
                "s3",
                aws_access_key_id=config.aws_access_key_id,
                aws_secret_access_key=config.aws_secret_access_key,
                region_name=config.region_name,
            )
        self.bucket = config.bucket_name

    def _object_key(self, key: str) -> str:
        return f"{self.config.base_path}{key}"

    def _wait(self, waiter_name: str, key: str) -> None:
        self.client.get_waiter(waiter_name).wait(
            Bucket=self.bucket,
            Key=self._object_key(key),
            WaiterConfig={
                "Delay": self.config.wait_delay,
                "MaxAttempts": self.config.wait_max_attempts,
            },
        )

    def _log(self, level: str, message: str, operation: str, key: str, request_id: str, **kwargs) -> None:
        getattr(bj_logger, level)(
            message,
            provider=_PROVIDER,
            container=self.bucket,
            operation=operation,
            key=key,
            request_id=request_id,
            **kwargs,
        )

    def get_container(self) -> NoReturn:
        """Not available on S3; use :attr:`client` for raw API access.

        Raises:
            UnsupportedOperationError: Always.
        """
        raise UnsupportedOperationError("S3 has no container client; use the boto3 client instead.")

    # --- Object operations ---

    def upload(self, key: str, data: bytes, content_type: str | None = None) -> str:
        """Upload *data* to S3 with server-side encryption.

        The object is stored with the configured ACL and an ``attachment``
        content disposition.

        Raises:
            ContainerNotFoundError: If the bucket does not exist.
            StorageError: If the upload fails for any other reason.
        """
        rid = new_request_id()
        content_type = content_type or detect_content_type(data)
        self._log("debug", f"Uploading {len(data)} bytes as {content_type}", "upload", key, rid)
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=self._object_key(key),
                ACL=self.config.acl,
                Body=data,
                ContentLength=len(data),
                ContentType=content_type,
                ContentDisposition="attachment",
                ServerSideEncryption="AES256",
            )
        except ClientError as e:
            self._log("error", "Upload failed", "upload", key, rid, exc_info=True)
            _handle_client_error(e, f"Failed to upload '{key}' to '{self.bucket}'.")
        self._log("info", "Uploaded object", "upload", key, rid)
        return self.get_blob_url(key)

    def delete(self, key: str) -> str:
        """Delete an object and wait until S3 reports it gone.

        Raises:
            ContainerNotFoundError: If the bucket does not exist.
            StorageError: If deletion fails or is not confirmed in time.
        """
        rid = new_request_id()
        self._log("debug", "Deleting object", "delete", key, rid)
        try:
            self.client.delete_object(Bucket=self.bucket, Key=self._object_key(key))
            self._wait("object_not_exists", key)
        except ClientError as e:
            self._log("error", "Delete failed", "delete", key, rid, exc_info=True)
            _handle_client_error(e, f"Failed to delete '{key}' from '{self.bucket}'.")
        except WaiterError as e:
            self._log("error", "Delete not confirmed", "delete", key, rid, exc_info=True)
            raise StorageError(f"Deletion of '{key}' from '{self.bucket}' was not confirmed: {e}") from e
        self._log("info", "Deleted object", "delete", key, rid)
        return self.get_blob_url(key)

    def list_objects(self, prefix: str = "") -> list[str]:
        """List object keys under *prefix*.

        Handles pagination automatically to return all matching keys.

        Raises:
            ContainerNotFoundError: If the bucket does not exist.
            StorageError: If listing fails for any other reason.
        """
        rid = new_request_id()
        base = self.config.base_path
        try:
            keys: list[str] = []
            paginator = self.client.get_paginator("list_objects_v2")
            for page in paginator.paginate(Bucket=self.bucket, Prefix=self._object_key(prefix)):
                keys.extend(obj["Key"].removeprefix(base) for obj in page.get("Contents", []))
        except ClientError as e:
            self._log("error", "List failed", "list_objects", prefix, rid, exc_info=True)
            _handle_client_error(e, f"Failed to list objects in '{self.bucket}'.")
        self._log("debug", f"Listed {len(keys)} objects", "list_objects", prefix, rid)
        return keys

    def download(self, key: str) -> bytes:
        """Get the contents of an S3 object as bytes.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            ContainerNotFoundError: If the bucket does not exist.
            StorageError: If retrieval fails for any other reason.
        """
        rid = new_request_id()
        try:
            response = self.client.get_object(Bucket=self.bucket, Key=self._object_key(key))
            return response["Body"].read()  # type: ignore[no-any-return]
        except ClientError as e:
            self._log("error", "Download failed", "download", key, rid, exc_info=True)
            _handle_client_error(e, f"Failed to download '{key}' from '{self.bucket}'.")

    def copy(self, source_key: str, dest_key: str) -> None:
        """Copy an object inside the bucket and wait until the copy exists.

        Raises:
            ObjectNotFoundError: If the source object does not exist.
            CopyFailedError: If the copy is not visible before the waiter gives up.
            StorageError: If the copy fails for any other reason.
        """
        rid = new_request_id()
        self._log("debug", f"Copying from '{source_key}'", "copy", dest_key, rid)
        try:
            self.client.copy_object(
                Bucket=self.bucket,
                CopySource={"Bucket": self.bucket, "Key": self._object_key(source_key)},
                Key=self._object_key(dest_key),
            )
            self._wait("object_exists", dest_key)
        except ClientError as e:
            self._log("error", "Copy failed", "copy", dest_key, rid, exc_info=True)
            _handle_client_error(e, f"Failed to copy '{source_key}' to '{dest_key}'.")
        except WaiterError as e:
            self._log("error", "Copy not confirmed", "copy", dest_key, rid, exc_info=True)
            raise CopyFailedError(f"Copy of '{source_key}' to '{dest_key}' was not confirmed: {e}") from e
        self._log("info", f"Copied from '{source_key}'", "copy", dest_key, rid)

    # --- URLs and signatures ---

    def get_url(self) -> str:
        """Return the virtual-hosted bucket URL including ``base_path``.

        Without a region the global ``<bucket>.s3.amazonaws.com`` host is used.
        """
        region = self.config.region_name
        host = f"{self.bucket}.s3.{region}.amazonaws.com" if region else f"{self.bucket}.s3.amazonaws.com"
        return f"https://{host}/{self.config.base_path}"

    def get_blob_url(self, key: str, with_signature: bool = False) -> str:
        """Return the object URL for *key*.

        S3 has no shared-access signature; a signed URL is an S3 pre-signed
        ``GET`` URL valid for one hour instead.

        Raises:
            StorageError: If pre-signing fails.
        """
        if not key:
            return key
        if not with_signature:
            return f"{self.get_url()}{key}"
        try:
            return self.client.generate_presigned_url(  # type: ignore[no-any-return]
                "get_object",
                Params={"Bucket": self.bucket, "Key": self._object_key(key)},
                ExpiresIn=EXPIRE_TIME,
            )
        except ClientError as e:
            _handle_client_error(e, f"Failed to generate signed URL for '{key}'.")

    def get_key(self, blob_url: str) -> str:
        """Return the object key from an object URL, or the input if it cannot be parsed."""
        try:
            path = unquote(urlparse(blob_url).path)
        except (TypeError, ValueError):
            return blob_url
        return path.removeprefix("/").removeprefix(self.config.base_path)

    def generate_signature(self, expiry: str, key: str) -> str:
        """Not available on S3.

        Raises:
            UnsupportedOperationError: Always.
        """
        raise UnsupportedOperationError(
            "S3 has no shared-access signature primitive; use get_blob_url(key, with_signature=True)."
        )
