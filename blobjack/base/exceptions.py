"""
Blobjack exception hierarchy.

Every error raised by the library inherits from :class:`BlobjackError`.
Provider SDK errors are re-raised as one of the storage exceptions below
with the original error chained as ``__cause__``.
"""


# ── Base ──────────────────────────────────────────────────────────────
class BlobjackError(Exception):
    """Root exception for all Blobjack errors."""


class ConfigurationError(BlobjackError, ValueError):
    """Invalid or malformed configuration value."""


class UnsupportedOperationError(BlobjackError, NotImplementedError):
    """The provider has no equivalent for the requested capability."""


# ── Storage ───────────────────────────────────────────────────────────
class StorageError(BlobjackError):
    """Base exception for blob storage operations."""


class ContainerNotFoundError(StorageError):
    """Container / bucket not found."""


class ObjectNotFoundError(StorageError):
    """Blob / object not found."""


class CopyFailedError(StorageError):
    """Server-side copy failed, was aborted, or did not finish in time."""
