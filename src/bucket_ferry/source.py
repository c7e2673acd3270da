# src/bucket_ferry/source.py
"""
The work source: reads the work list and feeds the work queue.

The work list is tab-separated text with exactly two fields per line, the
source bucket and the percent-encoded object key. Any structural problem is
fatal for the whole run; key decoding is left to the workers so that a badly
encoded key only fails its own item.

Fields follow the `csv` module's quoting rules: a quoted field may contain tabs,
newlines and doubled quotes, and a stray character after a closing quote is a
structural error. A `"` inside an unquoted field is kept as a literal
character rather than rejected, so a key such as `foo"bar` is accepted.
"""

import csv
import logging
import queue
import sys
import threading
from contextlib import contextmanager
from typing import Iterable, Iterator, List, Optional, TextIO, Union

from bucket_ferry.exceptions import InputFormatError
from bucket_ferry.models import WorkItem

logger: logging.Logger = logging.getLogger(__name__)

_END_OF_INPUT: object = object()


@contextmanager
def open_input(path: str) -> Iterator[TextIO]:
    """
    Opens the work list for reading.

    Args:
        path (str): A file path, or "-" for standard input.

    Yields:
        TextIO: The opened stream. Standard input is left open on exit.
    """
    if path == "-":
        yield sys.stdin
        return
    try:
        stream: TextIO = open(path, "r", encoding="utf-8", newline="")
    except OSError as e:
        raise InputFormatError(f"Unable to open input '{path}': {e}") from e
    with stream:
        yield stream


def parse_work_items(stream: Iterable[str]) -> Iterator[WorkItem]:
    """
    Lazily parses work items from a tab-separated stream.

    Args:
        stream (Iterable[str]): The lines of the work list.

    Yields:
        WorkItem: One item per non-blank line, key left encoded.

    Raises:
        InputFormatError: On malformed structure, a wrong field count or a read error.
    """
    reader = csv.reader(stream, delimiter="\t", strict=True)
    while True:
        try:
            row: List[str] = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            raise InputFormatError(
                f"Error reading input at line {reader.line_num}: {e}"
            ) from e
        except (OSError, UnicodeDecodeError) as e:
            raise InputFormatError(
                f"Error reading input at line {reader.line_num + 1}: {e}"
            ) from e

        if not row:
            continue
        if len(row) != 2:
            raise InputFormatError(
                f"Wrong number of fields at line {reader.line_num}: {len(row)} fields"
            )
        yield WorkItem(source_container=row[0], object_key=row[1])


class WorkQueue:
    """
    A bounded, thread-safe hand-off from the work source to the workers.

    Once closed and drained, every consumer sees the end of input. Blocking
    calls wake up periodically so that a set stop event is never missed.
    """

    def __init__(self, maxsize: int, poll_interval_s: float = 0.1) -> None:
        """
        Args:
            maxsize (int): The maximum number of queued items.
            poll_interval_s (float): How often blocked calls re-check the stop event.
        """
        self._queue: "queue.Queue[Union[WorkItem, object]]" = queue.Queue(maxsize)
        self._poll_interval_s: float = poll_interval_s

    def put(self, item: WorkItem, stop_event: threading.Event) -> bool:
        """
        Adds an item, blocking while the queue is full.

        Returns:
            bool: True if queued, False if the stop event was set first.
        """
        return self._put(item, stop_event)

    def close(self, stop_event: threading.Event) -> None:
        """Marks the end of input."""
        self._put(_END_OF_INPUT, stop_event)

    def get(self, stop_event: threading.Event) -> Optional[WorkItem]:
        """
        Takes the next item, blocking while the queue is empty but open.

        Returns:
            Optional[WorkItem]: The next item, or None once the queue is closed
                and drained or the stop event is set.
        """
        while not stop_event.is_set():
            try:
                item: Union[WorkItem, object] = self._queue.get(
                    timeout=self._poll_interval_s
                )
            except queue.Empty:
                continue
            if item is _END_OF_INPUT:
                # Leave the marker in place for the remaining consumers
                self._queue.put_nowait(item)
                return None
            return item  # type: ignore[return-value]
        return None

    def _put(self, item: Union[WorkItem, object], stop_event: threading.Event) -> bool:
        while not stop_event.is_set():
            try:
                self._queue.put(item, timeout=self._poll_interval_s)
                return True
            except queue.Full:
                continue
        return False


class WorkSource:
    """
    Streams work items from the work list into the work queue.

    Runs on its own thread. A fatal input error is recorded in `error` and the
    stop event is set, so workers stop pulling items; the pipeline re-raises it.
    """

    def __init__(
        self,
        stream: Iterable[str],
        work_queue: WorkQueue,
        stop_event: threading.Event,
    ) -> None:
        self._stream: Iterable[str] = stream
        self._work_queue: WorkQueue = work_queue
        self._stop_event: threading.Event = stop_event
        self.error: Optional[Exception] = None
        self.items_queued: int = 0

    def run(self) -> None:
        """Feeds the queue until the input ends, fails, or a stop is requested."""
        try:
            for item in parse_work_items(self._stream):
                if not self._work_queue.put(item, self._stop_event):
                    logger.warning("Shutdown initiated, stopping input scan.")
                    return
                self.items_queued += 1
        except InputFormatError as e:
            self.error = e
            self._stop_event.set()
            return
        except Exception as e:
            logger.exception("Unexpected error while reading input.")
            self.error = e
            self._stop_event.set()
            return

        logger.debug(f"Input exhausted after {self.items_queued} items.")
        self._work_queue.close(self._stop_event)
