# src/bucket_ferry/__init__.py
"""
bucket-ferry: A concurrent S3 to Azure Blob Storage copier.

This package copies the objects named in a tab-separated work list from S3
buckets into Azure containers, using a fixed pool of transfer workers and
reporting how many objects were copied and how many failed.

The primary entry point for programmatic use is the `FerryPipeline` class.
"""

from typing import List

from bucket_ferry.pipeline import FerryPipeline

__all__: List[str] = ["FerryPipeline"]
