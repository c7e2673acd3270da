# src/bucket_ferry/aggregator.py
"""
Consumes transfer results and decides when the run is over.

The aggregator is the only owner of the run's counters and the only thread
that mutates them. It counts outcomes and completion markers, never caring
which worker sent them, and stops as soon as every worker has finished.
"""

import logging
import queue
from typing import TYPE_CHECKING, Optional

from bucket_ferry.exceptions import PipelineInvariantError
from bucket_ferry.models import (
    RunReport,
    TransferFailed,
    TransferResult,
    TransferSucceeded,
    WorkerDone,
)

if TYPE_CHECKING:
    from rich.progress import Progress, TaskID

logger: logging.Logger = logging.getLogger(__name__)


class ResultAggregator:
    """Counts outcomes and completion markers from a pool of workers."""

    def __init__(
        self,
        num_workers: int,
        progress: Optional["Progress"] = None,
        task_id: Optional["TaskID"] = None,
    ) -> None:
        """
        Args:
            num_workers (int): The number of completion markers to wait for.
            progress (Progress, optional): A rich progress display to advance.
            task_id (TaskID, optional): The progress task for this run.
        """
        self.items_seen: int = 0
        self.items_succeeded: int = 0
        self.workers_remaining: int = num_workers
        self._progress: Optional["Progress"] = progress
        self._task_id: Optional["TaskID"] = task_id

    @property
    def finished(self) -> bool:
        """Whether every worker has reported completion."""
        return self.workers_remaining == 0

    def observe(self, result: TransferResult) -> bool:
        """
        Records one value from the results stream.

        Args:
            result (TransferResult): An outcome or a completion marker.

        Returns:
            bool: True once every worker has reported completion.

        Raises:
            PipelineInvariantError: If a marker arrives after all workers finished.
        """
        if isinstance(result, WorkerDone):
            if self.workers_remaining <= 0:
                raise PipelineInvariantError(
                    f"Unexpected completion marker from worker {result.worker_id}: "
                    "all workers had already finished."
                )
            self.workers_remaining -= 1
            return self.finished

        self.items_seen += 1
        if isinstance(result, TransferSucceeded):
            self.items_succeeded += 1
        elif isinstance(result, TransferFailed):
            logger.error(f"Error: {result.error}")
        else:
            raise PipelineInvariantError(f"Unknown transfer result: {result!r}")

        if self._progress is not None and self._task_id is not None:
            self._progress.update(
                self._task_id,
                advance=1,
                failures=self.items_seen - self.items_succeeded,
            )
        return False

    def consume(self, results: "queue.Queue[TransferResult]") -> RunReport:
        """
        Drains the results queue until every worker has finished.

        Args:
            results (queue.Queue[TransferResult]): The shared results queue.

        Returns:
            RunReport: The final counts.
        """
        while not self.finished:
            if self.observe(results.get()):
                break
        return self.report()

    def report(self) -> RunReport:
        """Returns the counts observed so far."""
        return RunReport(
            items_seen=self.items_seen, items_succeeded=self.items_succeeded
        )
