# tests/conftest.py
"""
Pytest configuration and fixtures for the bucket-ferry tests.

This module provides:
- An in-memory copier standing in for the S3 and Azure clients.
- A factory for writing tab-separated work lists.
- A Config object that needs no environment variables.
"""

import threading
from pathlib import Path
from typing import Callable, Generator, List, Optional, Set, Tuple

import pytest

from bucket_ferry.config import AppConfig, Config, DestinationConfig, SourceConfig
from bucket_ferry.exceptions import ObjectNotFoundError
from bucket_ferry.transfer import destination_container_name

TEST_AZURE_URL: str = "https://ferrytest.blob.core.windows.net/"


class FakeCopier:
    """
    A thread-safe, in-memory stand-in for `S3ToBlobCopier`.

    Objects listed in `missing` fail with `ObjectNotFoundError`; every other
    copy is recorded under its destination container.
    """

    def __init__(
        self,
        missing: Optional[Set[Tuple[str, str]]] = None,
        fail_all: Optional[Exception] = None,
        on_copy: Optional[Callable[[str, str], None]] = None,
    ) -> None:
        self.missing: Set[Tuple[str, str]] = missing or set()
        self.fail_all: Optional[Exception] = fail_all
        self.on_copy: Optional[Callable[[str, str], None]] = on_copy
        self.copied: List[Tuple[str, str]] = []
        self.attempted: List[Tuple[str, str]] = []
        self._lock: threading.Lock = threading.Lock()

    def copy(self, bucket: str, key: str) -> None:
        with self._lock:
            self.attempted.append((bucket, key))
        if self.on_copy is not None:
            self.on_copy(bucket, key)
        if self.fail_all is not None:
            raise self.fail_all
        if (bucket, key) in self.missing:
            raise ObjectNotFoundError(f"{bucket}\t{key} download failed: NoSuchKey")
        with self._lock:
            self.copied.append((destination_container_name(bucket), key))


@pytest.fixture(scope="function")
def fake_copier() -> FakeCopier:
    """
    Provide a copier that succeeds for every object.

    Returns:
        FakeCopier: A fresh in-memory copier.
    """
    return FakeCopier()


@pytest.fixture(scope="function")
def copier_factory() -> Callable[..., FakeCopier]:
    """
    Provide the `FakeCopier` constructor for tests that need custom failures.

    Returns:
        Callable[..., FakeCopier]: The fake copier class.
    """
    return FakeCopier


@pytest.fixture(scope="function")
def test_config(tmp_path: Path) -> Config:
    """
    Provide a Config object with a short poll interval and four workers.

    Args:
        tmp_path (Path): The pytest fixture for a temporary directory.

    Returns:
        Config: A Config instance for use in tests.
    """
    return Config(
        destination=DestinationConfig(account_url=TEST_AZURE_URL),
        source=SourceConfig(),
        app=AppConfig(
            input_path=str(tmp_path / "input.tsv"),
            concurrency=4,
            work_queue_size=8,
            poll_interval_s=0.01,
        ),
    )


@pytest.fixture(scope="function")
def work_list_writer(
    tmp_path: Path,
) -> Generator[Callable[[List[str]], Path], None, None]:
    """
    Provide a factory that writes raw lines into a work list file.

    Yields:
        A factory function that accepts the lines to write and returns the
        path of the written file.
    """

    def _writer(lines: List[str]) -> Path:
        path: Path = tmp_path / "input.tsv"
        path.write_text("".join(f"{line}\n" for line in lines), encoding="utf-8")
        return path

    yield _writer
