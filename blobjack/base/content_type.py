"""Content-type detection from the leading bytes of a payload."""

import magic

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def detect_content_type(data: bytes) -> str:
    """Sniff the MIME type of *data* with libmagic.

    Only the first 2 KiB are inspected. Empty payloads report
    ``application/octet-stream``.
    """
    if not data:
        return DEFAULT_CONTENT_TYPE
    return magic.from_buffer(bytes(data[:2048]), mime=True) or DEFAULT_CONTENT_TYPE
