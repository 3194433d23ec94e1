"""
Pydantic configuration models for storage provider configs.

Validates provider configs at initialization time instead of silently
passing bad values to SDK clients. Models are frozen: an adapter owns its
config and nothing mutates it after construction.
"""

from __future__ import annotations

import os
import re
from typing import Any
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from blobjack.base.exceptions import ConfigurationError
from blobjack.base.sas import DEFAULT_API_VERSION, decode_account_key

_PLACEHOLDER = re.compile(r"%s")


class AzureConfig(BaseModel):
    """Configuration for Azure Blob Storage.

    Values are resolved in order:
    1. Explicit values passed in the config dict.
    2. Environment variables (AZURE_STORAGE_ACCOUNT, AZURE_STORAGE_KEY,
       AZURE_STORAGE_CONTAINER).
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    account_name: str = Field(min_length=1, description="Storage account name")
    account_key: str = Field(min_length=1, description="Base64-encoded account key")
    root_url: str = Field(
        default="https://%s.blob.core.windows.net/%s",
        description="URL template with two %s placeholders: account, container",
    )
    container_name: str = Field(min_length=1, description="Blob container name")
    api_version: str = Field(default=DEFAULT_API_VERSION, description="SAS service version")
    copy_timeout: float = Field(default=60.0, gt=0, description="Max seconds to wait for a copy")
    poll_interval: float = Field(default=1.0, gt=0, description="Seconds between copy polls")

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to environment variables for missing values."""
        env_map = {
            "account_name": "AZURE_STORAGE_ACCOUNT",
            "account_key": "AZURE_STORAGE_KEY",
            "container_name": "AZURE_STORAGE_CONTAINER",
        }
        for field, env_var in env_map.items():
            if not values.get(field) and os.environ.get(env_var):
                values[field] = os.environ[env_var]
        return values

    @field_validator("account_key")
    @classmethod
    def validate_account_key(cls, value: str) -> str:
        try:
            decode_account_key(value)
        except ConfigurationError as e:
            raise ValueError(str(e)) from e
        return value

    @field_validator("root_url")
    @classmethod
    def validate_root_url(cls, value: str) -> str:
        count = len(_PLACEHOLDER.findall(value))
        if count != 2:
            raise ValueError(
                f"root_url must contain exactly two '%s' placeholders "
                f"(account, container), found {count}: {value!r}"
            )
        return value


class AWSConfig(BaseModel):
    """Configuration for AWS S3.

    Credentials are resolved in order:
    1. An explicit ``session`` (a ``boto3.Session``), used as-is.
    2. Explicit values passed in the config dict.
    3. Environment variables (AWS_ACCESS_KEY_ID, AWS_SECRET_ACCESS_KEY,
       AWS_DEFAULT_REGION, AWS_S3_BUCKET).
    4. If none is set, credentials are left as None so boto3 can fall back to
       its own credential chain (instance metadata, ~/.aws/credentials, etc.).
    """

    model_config = ConfigDict(extra="forbid", frozen=True, arbitrary_types_allowed=True)

    aws_access_key_id: str | None = Field(default=None, description="AWS access key ID")
    aws_secret_access_key: str | None = Field(default=None, description="AWS secret access key")
    region_name: str | None = Field(default=None, description="AWS region (e.g. 'us-east-1')")
    session: Any | None = Field(default=None, description="Pre-built boto3 session")
    bucket_name: str = Field(min_length=1, description="S3 bucket name")
    base_path: str = Field(default="", description="Key prefix inside the bucket")
    acl: str = Field(default="private", description="Canned ACL applied on upload")
    wait_delay: int = Field(default=5, gt=0, description="Waiter delay in seconds")
    wait_max_attempts: int = Field(default=20, gt=0, description="Waiter attempts")

    @model_validator(mode="before")
    @classmethod
    def resolve_from_env(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Fall back to environment variables for missing credentials."""
        env_map = {
            "aws_access_key_id": "AWS_ACCESS_KEY_ID",
            "aws_secret_access_key": "AWS_SECRET_ACCESS_KEY",
            "region_name": "AWS_DEFAULT_REGION",
        }
        for field, env_var in env_map.items():
            if not values.get(field):
                values[field] = os.environ.get(env_var)
        if not values.get("bucket_name") and os.environ.get("AWS_S3_BUCKET"):
            values["bucket_name"] = os.environ["AWS_S3_BUCKET"]
        return values

    @field_validator("base_path")
    @classmethod
    def normalise_base_path(cls, value: str) -> str:
        # "images" and "/images/" both become "images/"
        value = value.strip("/")
        return f"{value}/" if value else ""


# Map provider names to their config models for dynamic validation
CONFIG_REGISTRY: dict[str, type[BaseModel]] = {
    "azure": AzureConfig,
    "aws": AWSConfig,
}


def validate_config(cloud_provider: str, config: dict) -> BaseModel:
    """Validate and return a typed config model for the given provider.

    Args:
        cloud_provider: The cloud provider name (e.g. 'azure', 'aws').
        config: Raw configuration dictionary.

    Returns:
        A validated Pydantic config model.

    Raises:
        ValueError: If the provider is unknown.
        pydantic.ValidationError: If the config is invalid.
    """
    model = CONFIG_REGISTRY.get(cloud_provider)
    if model is None:
        raise ValueError(f"No config model registered for provider: {cloud_provider}")
    return model(**config)


__all__ = [
    "AzureConfig",
    "AWSConfig",
    "CONFIG_REGISTRY",
    "validate_config",
]
