"""Storage factory.

Provides :func:`storage_factory`, the single entry-point for creating
storage adapters. The function dispatches to the provider implementation
(Azure, AWS) based on ``cloud_provider`` and returns a typed instance via
``@overload`` signatures so IDEs can autocomplete methods.
"""

from typing import overload, Literal, Any

from blobjack.base import AssetStorageBlueprint, existing_cloud_providers
from blobjack.base.client_cache import ClientCache
from blobjack.base.config import validate_config
from blobjack.aws.storage import Storage as S3Storage
from blobjack.azure.storage import Storage as AzureStorage


# Provider registry: cloud_provider -> adapter class
_FACTORY_REGISTRY: dict[str, type[AssetStorageBlueprint]] = {
    "azure": AzureStorage,
    "aws": S3Storage,
}


@overload
def storage_factory(
    cloud_provider: Literal["azure"], config: dict, *, cached: bool = False
) -> AzureStorage: ...


@overload
def storage_factory(
    cloud_provider: Literal["aws"], config: dict, *, cached: bool = False
) -> S3Storage: ...


def storage_factory(
    cloud_provider: existing_cloud_providers,
    config: dict,
    *,
    cached: bool = False,
) -> Any:
    """
    Create a storage adapter for the given cloud provider.
    Args:
        cloud_provider: The cloud provider ('azure' or 'aws').
        config: Configuration dictionary validated against the provider's config model.
        cached: Reuse an existing adapter built from an identical validated config.
    Returns:
        An instance of the provider's storage adapter.
    Raises:
        ValueError: If the cloud provider is not supported.
        pydantic.ValidationError: If the config is invalid.
    """
    if cloud_provider not in _FACTORY_REGISTRY:
        raise ValueError(f"Unsupported cloud provider: {cloud_provider}")

    storage_class = _FACTORY_REGISTRY[cloud_provider]
    validated = validate_config(cloud_provider, config)

    if cached:
        # Keyed on the resolved config so env fallbacks are part of the key.
        return ClientCache().get_or_create(
            cloud_provider, validated.model_dump(), lambda: storage_class(validated)
        )
    return storage_class(validated)
