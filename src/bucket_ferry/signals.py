# src/bucket_ferry/signals.py
"""
Helpers for graceful shutdown of the threaded pipeline.

This module provides a context manager to capture OS signals (SIGINT, SIGTERM)
and translate them into a `threading.Event` that the work source and the
transfer workers check between items.
"""

import logging
import os
import signal
import threading
from types import FrameType, TracebackType
from typing import Callable, Dict, Optional, Set, Type, Union

logger: logging.Logger = logging.getLogger(__name__)

_SignalHandler = Union[Callable[[int, Optional[FrameType]], None], int, None]


class GracefulShutdown:
    """
    A context manager that captures POSIX signals for graceful shutdown.

    The first received signal sets the shutdown event, so no new items are
    started but in-flight transfers finish and every worker still reports
    completion. A second signal triggers an immediate, forceful exit.
    Previous signal handlers are restored on exit.
    """

    def __init__(self) -> None:
        """Initialize the shutdown manager."""
        self._event: threading.Event = threading.Event()
        self._old_handlers: Dict[signal.Signals, _SignalHandler] = {}

    def __enter__(self) -> threading.Event:
        """
        Registers signal handlers and returns the shutdown event.

        Returns:
            threading.Event: The event that will be set when a handled signal
                is received.
        """
        signals_to_handle: Set[signal.Signals] = {
            signal.SIGINT,
            signal.SIGTERM,
        }

        def _handler(sig: int, _: Optional[FrameType]) -> None:
            if self._event.is_set():
                logger.critical(
                    "Received second shutdown signal. Forcing immediate exit."
                )
                os._exit(1)
            else:
                logger.warning(
                    f"Received shutdown signal: {signal.strsignal(sig)}. "
                    "Finishing in-flight transfers..."
                )
                self._event.set()

        for sig in signals_to_handle:
            try:
                # signal.signal must be called from the main thread
                self._old_handlers[sig] = signal.signal(sig, _handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Could not set handler for {sig.name}: {e}")

        return self._event

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        """Restores original signal handlers."""
        for sig, handler in self._old_handlers.items():
            try:
                signal.signal(sig, handler)
            except (ValueError, OSError) as e:
                logger.warning(f"Could not restore handler for {sig.name}: {e}")
        self._old_handlers.clear()
