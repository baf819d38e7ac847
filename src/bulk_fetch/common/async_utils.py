"""
Run one batch on a fresh event loop with SIGINT/SIGTERM wired to its cancel event.

Worker threads copying data never see a task cancellation, so a shutdown
signal has to reach them through the batch's threading.Event. run_batch owns
that event and hands it to the coroutine it builds:

    reports = run_batch(lambda cancel: run_download(config, job, cancel), "download")
"""

import asyncio
import signal
import sys
import threading
from typing import Any, Callable, Coroutine, List, Optional, TypeVar

from bulk_fetch.logging.setup import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


def _install_handlers(
    loop: asyncio.AbstractEventLoop, callback: Callable[[signal.Signals], None]
) -> List[signal.Signals]:
    """Register callback for the shutdown signals; returns the ones installed."""
    # Windows delivers KeyboardInterrupt directly
    if sys.platform == "win32":
        return []
    installed = []
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, callback, sig)
        except (NotImplementedError, RuntimeError, ValueError):
            # Not the main thread
            continue
        installed.append(sig)
    return installed


def run_batch(
    make_batch: Callable[[threading.Event], Coroutine[Any, Any, T]],
    batch_name: str,
    cancel_event: Optional[threading.Event] = None,
) -> T:
    """
    Run a batch coroutine to completion.

    On SIGINT or SIGTERM the cancel event is set first, so copy loops stop at
    their next chunk, then the batch task is cancelled so the pools drain and
    release their sessions.

    Args:
        make_batch: Builds the batch coroutine from the cancel event
        batch_name: Name used in shutdown log lines ("download", "decompress")
        cancel_event: Event to share with the caller (default: a new one)

    Returns:
        Whatever the batch coroutine returns

    Raises:
        KeyboardInterrupt: The batch was stopped by a shutdown signal
    """
    event = cancel_event or threading.Event()

    async def supervise() -> T:
        loop = asyncio.get_running_loop()
        task = asyncio.current_task()
        received: List[signal.Signals] = []

        def on_signal(sig: signal.Signals) -> None:
            received.append(sig)
            logger.warning(
                f"Received {sig.name}, stopping {batch_name} batch",
                extra={"signal": sig.name},
            )
            event.set()
            if task is not None and not task.done():
                task.cancel()

        installed = _install_handlers(loop, on_signal)
        try:
            return await make_batch(event)
        except asyncio.CancelledError:
            if received:
                raise KeyboardInterrupt(
                    f"{batch_name} batch interrupted by {received[0].name}"
                ) from None
            raise
        finally:
            for sig in installed:
                loop.remove_signal_handler(sig)

    return asyncio.run(supervise())
