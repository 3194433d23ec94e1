"""Abstract storage blueprint and core utilities.

Every provider adapter inherits from :class:`AssetStorageBlueprint`.
Import it to type-hint your own code or to create custom providers.
"""

from .storage import AssetStorageBlueprint
from .supported_services import existing_cloud_providers


__all__ = [
    "AssetStorageBlueprint",
    "existing_cloud_providers",
]
