# src/bucket_ferry/models.py
"""
Values that flow through the transfer pipeline.

Work items travel from the work source to the workers; transfer results travel
from the workers to the aggregator. A result is one of three distinct types,
so a worker finishing can never be confused with an item failing.
"""

import re
from dataclasses import dataclass
from typing import Pattern, Union
from urllib.parse import unquote_plus

from bucket_ferry.exceptions import KeyDecodeError

_BAD_ESCAPE: Pattern[str] = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_object_key(key: str) -> str:
    """
    Decodes a query-escaped object key.

    Both `%XX` escapes and `+` (as a space) are decoded. Unlike
    `urllib.parse.unquote_plus`, malformed escapes and non UTF-8 byte
    sequences are rejected instead of being passed through.

    Args:
        key (str): The key as it appears in the work list.

    Returns:
        str: The decoded key.

    Raises:
        KeyDecodeError: If the key is not validly encoded.
    """
    match = _BAD_ESCAPE.search(key)
    if match:
        raise KeyDecodeError(
            f"invalid URL escape {key[match.start():match.start() + 3]!r} in {key!r}"
        )
    try:
        return unquote_plus(key, errors="strict")
    except UnicodeDecodeError as e:
        raise KeyDecodeError(f"key {key!r} does not decode to UTF-8: {e}") from e


@dataclass(frozen=True)
class WorkItem:
    """
    One object to copy.

    Attributes:
        source_container (str): The source bucket name.
        object_key (str): The object key, still percent-encoded.
    """

    source_container: str
    object_key: str

    def decoded_key(self) -> str:
        """Returns the object key with its percent-encoding removed."""
        return decode_object_key(self.object_key)


@dataclass(frozen=True)
class TransferSucceeded:
    """An item that was copied."""

    item: WorkItem
    key: str


@dataclass(frozen=True)
class TransferFailed:
    """
    An item that could not be copied.

    Attributes:
        item (WorkItem): The work item that failed.
        error (str): A human-readable description of the failure.
    """

    item: WorkItem
    error: str


@dataclass(frozen=True)
class WorkerDone:
    """Emitted exactly once by each worker, after its last outcome."""

    worker_id: int


TransferOutcome = Union[TransferSucceeded, TransferFailed]
TransferResult = Union[TransferSucceeded, TransferFailed, WorkerDone]


@dataclass(frozen=True)
class RunReport:
    """
    Final counts for a pipeline run.

    Attributes:
        items_seen (int): Outcomes received, successful or not.
        items_succeeded (int): Outcomes that were successes.
    """

    items_seen: int = 0
    items_succeeded: int = 0

    @property
    def failures(self) -> int:
        """Outcomes that were failures."""
        return self.items_seen - self.items_succeeded
