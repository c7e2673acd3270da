# src/bucket_ferry/cli.py
"""Command-line interface for the bucket-ferry tool."""

import logging
import os
import sys
from typing import Any, Optional

import click
from dotenv import load_dotenv
from rich.logging import RichHandler

from bucket_ferry.config import (
    ACCESS_TIERS,
    DEFAULT_ACCESS_TIER,
    AppConfig,
    Config,
    DestinationConfig,
    SourceConfig,
)
from bucket_ferry.exceptions import ConfigError, FerryError
from bucket_ferry.signals import GracefulShutdown

logger: logging.Logger = logging.getLogger(__name__)


def setup_logging(level: str) -> None:
    """Configure rich-based logging for the application."""
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    # Silence noisy loggers
    for logger_name in [
        "boto3",
        "botocore",
        "s3transfer",
        "urllib3",
        "azure.core.pipeline.policies.http_logging_policy",
        "azure.identity",
    ]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)


def run(config: Config) -> None:
    """
    Execute the copy pipeline under a graceful-shutdown signal handler.

    Args:
        config (Config): The application configuration.
    """
    # Lazily import to keep CLI startup fast
    from bucket_ferry.pipeline import FerryPipeline

    with GracefulShutdown() as shutdown_event:
        pipeline: FerryPipeline = FerryPipeline(config, shutdown_event)
        pipeline.run()


def _resolve_azure_url(value: Optional[str]) -> str:
    url: Optional[str] = value or os.environ.get("FERRY_AZURE_URL")
    if not url:
        raise ConfigError(
            "An Azure storage account URL must be set with --azure-url "
            "or the 'FERRY_AZURE_URL' environment variable."
        )
    return url


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.option(
    "--input",
    "input_path",
    type=click.Path(dir_okay=False, allow_dash=True),
    default="-",
    help="Input file to read. Use - for stdin.",
    show_default=True,
)
@click.option(
    "--azure-url",
    default=None,
    help="https://<storage-account-name>.blob.core.windows.net/ "
    "(defaults to $FERRY_AZURE_URL).",
)
@click.option(
    "-j",
    "--concurrency",
    type=click.IntRange(min=1),
    default=1,
    help="Number of concurrent transfers.",
    show_default=True,
)
@click.option(
    "--azure-tier",
    type=click.Choice(ACCESS_TIERS),
    default=DEFAULT_ACCESS_TIER,
    help="Azure access tier for the uploaded blobs.",
    show_default=True,
)
@click.option(
    "--log-level",
    default="INFO",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Set the logging level.",
    show_default=True,
)
def cli(**kwargs: Any) -> None:
    """
    Copy S3 objects into Azure Blob Storage.

    Reads a tab-separated list of `bucket<TAB>url-encoded-key` lines and
    streams each object into the Azure container named after its bucket
    (dots become dashes), keeping the key. Failed objects are logged and
    counted; they never stop the run.

    Credentials are taken from the environment: the usual AWS credential
    chain for S3 and the Azure default credential (e.g. `az login`) for
    Blob Storage.
    """
    load_dotenv()
    setup_logging(kwargs["log_level"])

    try:
        config: Config = Config(
            destination=DestinationConfig(
                account_url=_resolve_azure_url(kwargs["azure_url"]),
                access_tier=kwargs["azure_tier"],
            ),
            source=SourceConfig.from_env(),
            app=AppConfig(
                input_path=kwargs["input_path"],
                concurrency=kwargs["concurrency"],
            ),
        )

        run(config)
    except FerryError as e:
        logger.critical(f"A critical application error occurred: {e}")
        sys.exit(1)
    except Exception:
        logger.critical(
            "An unexpected error caused the application to fail:", exc_info=True
        )
        sys.exit(1)


if __name__ == "__main__":
    cli()
