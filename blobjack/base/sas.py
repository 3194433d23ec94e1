"""
Blob URL building and shared-access signatures.

The functions here take plain values rather than an adapter so they can be
used to build or verify URLs without a live storage client.

Signed URL layout::

    {base}/{key}?se={expiry}&sr=b&sp=r&sig={signature}&sv={api_version}

The field order is fixed; existing verifiers compare the query verbatim.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from urllib.parse import quote_plus, unquote, urlparse

from blobjack.base.exceptions import ConfigurationError

RESOURCE_TYPE = "b"
PERMISSION = "r"
DEFAULT_API_VERSION = "2014-02-14"
EXPIRE_TIME = 3600

_EXPIRY_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def base_url(root_url: str, account: str, container: str) -> str:
    """Substitute account and container into the root URL template."""
    return root_url % (account, container)


def object_url(base: str, key: str, signature_query: str | None = None) -> str:
    """Return the URL of *key* under *base*.

    An empty key is passed through unchanged so optional fields can be
    converted without special-casing.
    """
    if not key:
        return key
    if signature_query is None:
        return f"{base}/{key}"
    return f"{base}/{key}?{signature_query}"


def key_from_url(full_url: str, container: str, container_url: str | None = None) -> str:
    """Extract the object key from a blob URL.

    Strips the leading ``/<container>/`` segment from the URL path. When
    *container_url* is given its whole path is stripped instead, which
    covers path-style endpoints such as ``http://host/<account>/<container>``.
    If a URL cannot be parsed the input is returned unchanged.
    """
    try:
        path = unquote(urlparse(full_url).path)
        if container_url is None:
            prefix = f"/{container}/"
        else:
            prefix = unquote(urlparse(container_url).path).rstrip("/") + "/"
    except (TypeError, ValueError):
        return full_url
    return path.removeprefix(prefix)


def expiry_timestamp(now: datetime | None = None, seconds: int = EXPIRE_TIME) -> str:
    """Return the UTC expiry ``seconds`` from *now* in ISO-8601 form."""
    now = now or datetime.now(timezone.utc)
    return (now.astimezone(timezone.utc) + timedelta(seconds=seconds)).strftime(_EXPIRY_FORMAT)


def signed_query(expiry: str, signature: str, api_version: str) -> str:
    """Assemble the SAS query string in its fixed field order."""
    params = [
        "se=" + quote_plus(expiry),
        "sr=" + RESOURCE_TYPE,
        "sp=" + PERMISSION,
        "sig=" + quote_plus(signature),
        "sv=" + quote_plus(api_version),
    ]
    return "&".join(params)


def string_to_sign(expiry: str, key: str, account: str, container: str, api_version: str) -> str:
    """Build the newline-joined canonical string for a read-only blob SAS."""
    resource = f"/{account}/{container}/{key}"
    fields = [
        PERMISSION,
        "",  # start
        expiry,
        resource,
        "",  # identifier
        api_version,
        # ip range, protocol, cache-control, content-disposition, content-encoding,
        # content-language and content-type are left blank.
        "", "", "", "", "",
    ]
    return "\n".join(fields)


def decode_account_key(account_key: str) -> bytes:
    """Decode a base64 account key, raising :class:`ConfigurationError` on bad input."""
    try:
        return base64.b64decode(account_key, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ConfigurationError("Storage account key is not valid base64.") from e


def generate_shared_access_signature(
    expiry: str,
    key: str,
    account: str,
    container: str,
    account_key: str,
    api_version: str = DEFAULT_API_VERSION,
) -> str:
    """Return the base64 HMAC-SHA256 signature granting read access to *key*.

    Args:
        expiry: Expiry timestamp, ``YYYY-MM-DDTHH:MM:SSZ``.
        key: Object key inside the container.
        account: Storage account name.
        container: Container name.
        account_key: Base64-encoded account secret.
        api_version: Storage service version the signature targets.

    Raises:
        ConfigurationError: If *account_key* is not valid base64.
    """
    secret = decode_account_key(account_key)
    message = string_to_sign(expiry, key, account, container, api_version)
    digest = hmac.new(secret, message.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


__all__ = [
    "RESOURCE_TYPE",
    "PERMISSION",
    "DEFAULT_API_VERSION",
    "EXPIRE_TIME",
    "base_url",
    "object_url",
    "key_from_url",
    "expiry_timestamp",
    "signed_query",
    "string_to_sign",
    "decode_account_key",
    "generate_shared_access_signature",
]
