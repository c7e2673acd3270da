# src/bucket_ferry/pipeline.py
"""Core orchestration logic for the bucket-ferry pipeline."""

import logging
import queue
import threading
from contextlib import ExitStack
from typing import TYPE_CHECKING, Optional, TextIO

from rich.progress import (
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)

from bucket_ferry.aggregator import ResultAggregator
from bucket_ferry.config import AppConfig, Config
from bucket_ferry.exceptions import PipelineInvariantError
from bucket_ferry.models import RunReport, TransferResult, WorkerDone
from bucket_ferry.source import WorkQueue, WorkSource, open_input
from bucket_ferry.transfer import build_copier
from bucket_ferry.worker import TransferWorkerPool

if TYPE_CHECKING:
    from bucket_ferry.transfer import S3ToBlobCopier

logger: logging.Logger = logging.getLogger(__name__)


class FerryPipeline:
    """Orchestrates a copy run from start to finish."""

    def __init__(
        self,
        config: Config,
        shutdown_event: threading.Event,
        copier: Optional["S3ToBlobCopier"] = None,
    ) -> None:
        """
        Initializes the pipeline with the given configuration.

        Args:
            config (Config): The application configuration.
            shutdown_event (threading.Event): Event to signal graceful shutdown.
                A fatal input error also sets it.
            copier (S3ToBlobCopier, optional): The transfer operation. Built from
                `config` when omitted.
        """
        self._config: Config = config
        self._shutdown_event: threading.Event = shutdown_event
        self._copier: Optional["S3ToBlobCopier"] = copier

    def run(self, stream: Optional[TextIO] = None) -> RunReport:
        """
        Executes the full copy pipeline.

        Args:
            stream (TextIO, optional): The work list. Opened from
                `config.app.input_path` when omitted.

        Returns:
            RunReport: The final counts.

        Raises:
            InputFormatError: If the work list is malformed or unreadable.
            PipelineInvariantError: If the results stream is inconsistent.
        """
        logger.info("Starting bucket-ferry pipeline.")
        if self._copier is None:
            self._copier = build_copier(self._config)

        with ExitStack() as stack:
            if stream is None:
                stream = stack.enter_context(open_input(self._config.app.input_path))
            report: RunReport = self._run_transfers(stream, self._copier)

        if self._shutdown_event.is_set():
            logger.warning("Shutdown signal received. Transfers were stopped early.")
        logger.info(f"Processed {report.items_seen} ({report.failures} errors)")
        return report

    def _run_transfers(self, stream: TextIO, copier: "S3ToBlobCopier") -> RunReport:
        """
        Runs the producer, the worker pool and the aggregator to completion.

        Args:
            stream (TextIO): The work list.
            copier (S3ToBlobCopier): The transfer operation.

        Returns:
            RunReport: The final counts.
        """
        app: AppConfig = self._config.app
        work_queue: WorkQueue = WorkQueue(app.work_queue_size, app.poll_interval_s)
        results: "queue.Queue[TransferResult]" = queue.Queue(
            maxsize=app.results_queue_size
        )

        source: WorkSource = WorkSource(stream, work_queue, self._shutdown_event)
        producer: threading.Thread = threading.Thread(
            target=source.run, name="ferry-source", daemon=True
        )

        progress: Progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
            TextColumn("([bold red]Errors: {task.fields[failures]})"),
            transient=True,
        )

        with progress:
            task_id: TaskID = progress.add_task("Copying...", total=None, failures=0)
            aggregator: ResultAggregator = ResultAggregator(
                app.concurrency, progress, task_id
            )
            producer.start()
            with TransferWorkerPool(
                app.concurrency, copier, work_queue, results, self._shutdown_event
            ):
                try:
                    report: RunReport = aggregator.consume(results)
                except BaseException:
                    self._shutdown_event.set()
                    _drain_results(results, aggregator.workers_remaining)
                    raise

        if not results.empty():
            raise PipelineInvariantError(
                f"{results.qsize()} results arrived after every worker had finished."
            )

        if source.error is not None:
            raise source.error
        # The producer may still be blocked on its input after a shutdown signal
        if not self._shutdown_event.is_set():
            producer.join()
        return report


def _drain_results(
    results: "queue.Queue[TransferResult]", workers_remaining: int
) -> None:
    """
    Discards results until the given number of workers have reported completion.

    Workers block on a full results queue, so it must keep being consumed until
    each of them has pushed its completion marker and can be joined.

    Args:
        results (queue.Queue[TransferResult]): The shared results queue.
        workers_remaining (int): Completion markers still expected.
    """
    while workers_remaining > 0:
        if isinstance(results.get(), WorkerDone):
            workers_remaining -= 1
