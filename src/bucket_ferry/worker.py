# src/bucket_ferry/worker.py
"""
Defines the transfer worker loop and the pool that runs it.

Each worker repeatedly pulls a work item from the shared work queue, copies
it, and pushes exactly one outcome onto the results queue. When its input is
exhausted, or a stop is requested, it pushes its completion marker as its
final value.
"""

import logging
import queue
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from types import TracebackType
from typing import TYPE_CHECKING, List, Optional, Type

from bucket_ferry.exceptions import TransferError
from bucket_ferry.models import (
    TransferFailed,
    TransferOutcome,
    TransferResult,
    TransferSucceeded,
    WorkerDone,
    WorkItem,
)
from bucket_ferry.source import WorkQueue

if TYPE_CHECKING:
    from bucket_ferry.transfer import S3ToBlobCopier

logger: logging.Logger = logging.getLogger(__name__)


def process_item(copier: "S3ToBlobCopier", item: WorkItem) -> TransferOutcome:
    """
    Decodes and copies a single work item.

    Args:
        copier (S3ToBlobCopier): The transfer operation.
        item (WorkItem): The item to copy.

    Returns:
        TransferOutcome: The outcome; errors are captured, never raised.
    """
    try:
        key: str = item.decoded_key()
        copier.copy(item.source_container, key)
    except TransferError as e:
        return TransferFailed(item=item, error=str(e))
    except Exception as e:
        logger.exception(
            f"An unexpected error occurred transferring "
            f"'{item.source_container}/{item.object_key}'"
        )
        return TransferFailed(item=item, error=f"{type(e).__name__}: {e}")
    return TransferSucceeded(item=item, key=key)


def transfer_worker(
    worker_id: int,
    copier: "S3ToBlobCopier",
    work_queue: WorkQueue,
    results: "queue.Queue[TransferResult]",
    stop_event: threading.Event,
) -> None:
    """
    A long-lived worker that processes items until its input is exhausted.

    Args:
        worker_id (int): A unique identifier for this worker.
        copier (S3ToBlobCopier): The transfer operation shared by all workers.
        work_queue (WorkQueue): The queue from which to pull work items.
        results (queue.Queue[TransferResult]): Queue to report outcomes to.
        stop_event (threading.Event): Checked between items; once set, no new
            items are pulled.
    """
    logger.debug(f"Worker {worker_id} started.")
    processed: int = 0
    try:
        while not stop_event.is_set():
            item: Optional[WorkItem] = work_queue.get(stop_event)
            if item is None:
                break
            results.put(process_item(copier, item))
            processed += 1
    finally:
        results.put(WorkerDone(worker_id=worker_id))
        logger.debug(f"Worker {worker_id} shutting down after {processed} items.")


class TransferWorkerPool:
    """Runs a fixed number of transfer workers on a thread pool."""

    def __init__(
        self,
        size: int,
        copier: "S3ToBlobCopier",
        work_queue: WorkQueue,
        results: "queue.Queue[TransferResult]",
        stop_event: threading.Event,
    ) -> None:
        """
        Args:
            size (int): The number of workers, at least 1.
            copier (S3ToBlobCopier): The transfer operation.
            work_queue (WorkQueue): The shared input queue.
            results (queue.Queue[TransferResult]): The shared results queue.
            stop_event (threading.Event): Event to signal a graceful stop.
        """
        if size < 1:
            raise ValueError(f"Worker pool size must be at least 1, got {size}.")
        self.size: int = size
        self._copier: "S3ToBlobCopier" = copier
        self._work_queue: WorkQueue = work_queue
        self._results: "queue.Queue[TransferResult]" = results
        self._stop_event: threading.Event = stop_event
        self._executor: Optional[ThreadPoolExecutor] = None
        self._futures: List[Future] = []

    def start(self) -> None:
        """Starts every worker."""
        self._executor = ThreadPoolExecutor(
            max_workers=self.size, thread_name_prefix="ferry-worker"
        )
        self._futures = [
            self._executor.submit(
                transfer_worker,
                i,
                self._copier,
                self._work_queue,
                self._results,
                self._stop_event,
            )
            for i in range(self.size)
        ]
        logger.debug(f"Started {self.size} transfer workers.")

    def shutdown(self) -> None:
        """Waits for every worker to exit."""
        if self._executor is None:
            return
        self._executor.shutdown(wait=True)
        for future in self._futures:
            error: Optional[BaseException] = future.exception()
            if error is not None:
                logger.error(f"Transfer worker failed with error: {error}")
        self._executor = None

    def __enter__(self) -> "TransferWorkerPool":
        self.start()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.shutdown()
