# src/bucket_ferry/transfer.py
"""
The transfer operation: copy one object from S3 to Azure Blob Storage.

The object body is streamed from the S3 GET straight into a block upload and
is never held in memory as a whole. Failures are raised as `TransferError`
subclasses so that workers can turn them into per-item outcomes.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict

import boto3
from azure.core.exceptions import (
    AzureError,
    ClientAuthenticationError,
    HttpResponseError,
)
from azure.identity import DefaultAzureCredential
from azure.storage.blob import BlobServiceClient, StandardBlobTier
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from bucket_ferry.config import Config
from bucket_ferry.exceptions import (
    ConfigError,
    DestinationPermissionError,
    DestinationWriteError,
    ObjectNotFoundError,
    SourceReadError,
)

if TYPE_CHECKING:
    from azure.storage.blob import BlobClient
    from botocore.response import StreamingBody
    from types_boto3_s3.client import S3Client

logger: logging.Logger = logging.getLogger(__name__)

# Azure container names allow only lowercase letters, digits and hyphens;
# S3 bucket names additionally allow dots.
CONTAINER_CHAR_REPLACEMENTS: Dict[str, str] = {".": "-"}

_NOT_FOUND_CODES = frozenset({"NoSuchKey", "NoSuchBucket", "404", "NotFound"})
_PERMISSION_STATUS_CODES = frozenset({401, 403})


def destination_container_name(bucket: str) -> str:
    """
    Maps a source bucket name to a valid destination container name.

    Args:
        bucket (str): The S3 bucket name, e.g. "my.bucket.name".

    Returns:
        str: The container name, e.g. "my-bucket-name".
    """
    for char, replacement in CONTAINER_CHAR_REPLACEMENTS.items():
        bucket = bucket.replace(char, replacement)
    return bucket


class S3ToBlobCopier:
    """Copies objects from an S3 client into a blob service client."""

    def __init__(
        self,
        source_client: "S3Client",
        dest_client: BlobServiceClient,
        access_tier: StandardBlobTier,
    ) -> None:
        """
        Args:
            source_client (S3Client): An authenticated boto3 S3 client.
            dest_client (BlobServiceClient): An authenticated blob service client.
            access_tier (StandardBlobTier): The tier set on every uploaded blob.
        """
        self._source_client: "S3Client" = source_client
        self._dest_client: BlobServiceClient = dest_client
        self._access_tier: StandardBlobTier = access_tier

    def copy(self, bucket: str, key: str) -> None:
        """
        Streams one object from the source bucket to the mapped container.

        Args:
            bucket (str): The source bucket.
            key (str): The decoded object key, used on both sides.

        Raises:
            SourceReadError: If the object could not be fetched.
            DestinationWriteError: If the object could not be uploaded.
        """
        body: "StreamingBody" = self._open_source(bucket, key)
        try:
            self._upload(destination_container_name(bucket), key, body)
        finally:
            body.close()

        logger.info(f"Copied\t{bucket}\t{key}")

    def _open_source(self, bucket: str, key: str) -> "StreamingBody":
        try:
            response: Dict[str, Any] = self._source_client.get_object(
                Bucket=bucket, Key=key
            )
        except ClientError as e:
            code: str = e.response.get("Error", {}).get("Code", "")
            if code in _NOT_FOUND_CODES:
                raise ObjectNotFoundError(
                    f"{bucket}\t{key} download failed: {code}"
                ) from e
            raise SourceReadError(f"{bucket}\t{key} download failed: {e}") from e
        except BotoCoreError as e:
            raise SourceReadError(f"{bucket}\t{key} download failed: {e}") from e
        return response["Body"]

    def _upload(self, container: str, key: str, body: "StreamingBody") -> None:
        blob_client: "BlobClient" = self._dest_client.get_blob_client(
            container=container, blob=key
        )
        try:
            blob_client.upload_blob(
                body, overwrite=True, standard_blob_tier=self._access_tier
            )
        except ClientAuthenticationError as e:
            raise DestinationPermissionError(
                f"{container}\t{key} upload failed: {_error_code(e)}"
            ) from e
        except HttpResponseError as e:
            if e.status_code in _PERMISSION_STATUS_CODES:
                raise DestinationPermissionError(
                    f"{container}\t{key} upload failed: {_error_code(e)}"
                ) from e
            raise DestinationWriteError(
                f"{container}\t{key} upload failed: {_error_code(e)}"
            ) from e
        except AzureError as e:
            raise DestinationWriteError(
                f"Uploading {container}/{key} failed: {e}"
            ) from e


def _error_code(error: AzureError) -> str:
    """Returns the service error code, falling back to the message."""
    return getattr(error, "error_code", None) or str(error.message)


def build_copier(config: Config) -> S3ToBlobCopier:
    """
    Builds a copier backed by real, ambiently authenticated clients.

    Args:
        config (Config): The application configuration.

    Returns:
        S3ToBlobCopier: A copier shared by every worker.

    Raises:
        ConfigError: If either client cannot be set up.
    """
    try:
        credential: DefaultAzureCredential = DefaultAzureCredential()
    except AzureError as e:
        raise ConfigError(
            f"Couldn't prepare Azure credentials - try running `az login`: {e}"
        ) from e

    try:
        dest_client: BlobServiceClient = BlobServiceClient(
            account_url=config.destination.account_url, credential=credential
        )
    except ValueError as e:
        raise ConfigError(f"Azure client: {e}") from e

    boto_config: BotoConfig = BotoConfig(
        max_pool_connections=config.app.concurrency + 10,
        retries={"max_attempts": config.source.max_attempts, "mode": "standard"},
    )
    try:
        source_client: "S3Client" = boto3.client(
            "s3", **config.source.as_boto_dict(), config=boto_config
        )
    except BotoCoreError as e:
        raise ConfigError(f"S3 client: {e}") from e

    return S3ToBlobCopier(source_client, dest_client, config.destination.blob_tier)
