# src/bucket_ferry/config.py
"""
Configuration for the bucket-ferry pipeline.

This module centralizes all configuration, loading optional endpoint overrides
from environment variables and providing typed, validated dataclasses that are
built once at startup and passed explicitly to the components that need them.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from azure.storage.blob import StandardBlobTier

from bucket_ferry.exceptions import ConfigError

# Every tier the blob SDK knows how to set on upload.
ACCESS_TIERS: Tuple[str, ...] = tuple(tier.value for tier in StandardBlobTier)
DEFAULT_ACCESS_TIER: str = StandardBlobTier.HOT.value


def _get_env_var(name: str, default: Optional[str] = None) -> str:
    """
    Retrieves a required environment variable.

    Args:
        name (str): The name of the environment variable.
        default (str, optional): The default value if the variable is not set.

    Returns:
        str: The value of the environment variable.
    """
    value: Optional[str] = os.environ.get(name, default)
    if not value:
        raise ConfigError(f"Environment variable '{name}' must be set.")
    return value


@dataclass(frozen=True)
class SourceConfig:
    """
    Represents the configuration for the S3-compatible source.

    Credentials are never stored here; they come from the boto3 default
    credential chain.

    Attributes:
        endpoint_url (str, optional): A non-AWS S3 endpoint URL.
        region (str, optional): The AWS region, if not set ambiently.
        max_attempts (int): Client-level attempts for each S3 request.
    """

    endpoint_url: Optional[str] = None
    region: Optional[str] = None
    max_attempts: int = 5

    @classmethod
    def from_env(cls) -> "SourceConfig":
        """
        Builds a source configuration from optional environment variables.

        Returns:
            SourceConfig: The configuration read from the environment.
        """
        return cls(
            endpoint_url=os.environ.get("FERRY_SOURCE_ENDPOINT_URL") or None,
            region=os.environ.get("FERRY_SOURCE_REGION") or None,
        )

    def as_boto_dict(self) -> Dict[str, str]:
        """
        Returns the configuration as keyword arguments for a boto3 client.

        Returns:
            Dict[str, str]: A dictionary of client parameters, omitting unset values.
        """
        params: Dict[str, str] = {}
        if self.endpoint_url:
            params["endpoint_url"] = self.endpoint_url
        if self.region:
            params["region_name"] = self.region
        return params


@dataclass(frozen=True)
class DestinationConfig:
    """
    Represents the configuration for the Azure Blob Storage destination.

    Attributes:
        account_url (str): e.g. https://<storage-account-name>.blob.core.windows.net/
        access_tier (str): The blob access tier set on every uploaded object.
    """

    account_url: str
    access_tier: str = DEFAULT_ACCESS_TIER

    def __post_init__(self) -> None:
        if not self.account_url:
            raise ConfigError("An Azure storage account URL must be provided.")
        if self.access_tier not in ACCESS_TIERS:
            raise ConfigError(
                f"Azure tier {self.access_tier} not found. "
                f"Expected one of: {', '.join(ACCESS_TIERS)}"
            )

    @property
    def blob_tier(self) -> StandardBlobTier:
        """The access tier as the SDK's enum."""
        return StandardBlobTier(self.access_tier)


@dataclass(frozen=True)
class AppConfig:
    """
    Defines the application's operational parameters.

    Attributes:
        input_path (str): Work list to read; "-" selects standard input.
        concurrency (int): The number of transfer workers.
        work_queue_size (int): Capacity of the work queue feeding the workers.
        poll_interval_s (float): How often blocked threads re-check for shutdown.
    """

    input_path: str = "-"
    concurrency: int = 1
    work_queue_size: int = 1000
    poll_interval_s: float = 0.1

    def __post_init__(self) -> None:
        if self.concurrency < 1:
            raise ConfigError(
                f"Concurrency must be at least 1, got {self.concurrency}."
            )
        if self.work_queue_size < 1:
            raise ConfigError(
                f"Work queue size must be at least 1, got {self.work_queue_size}."
            )

    @property
    def results_queue_size(self) -> int:
        """Capacity of the results queue, sized so a slow consumer never stalls the pool."""
        return 2 * self.concurrency


@dataclass(frozen=True)
class Config:
    """
    Top-level configuration container for the entire application.

    Attributes:
        destination (DestinationConfig): Configuration for the Azure destination.
        source (SourceConfig): Configuration for the S3 source.
        app (AppConfig): General application settings.
    """

    destination: DestinationConfig = field(
        default_factory=lambda: DestinationConfig(
            account_url=_get_env_var("FERRY_AZURE_URL"),
        )
    )
    source: SourceConfig = field(default_factory=SourceConfig.from_env)
    app: AppConfig = field(default_factory=AppConfig)
