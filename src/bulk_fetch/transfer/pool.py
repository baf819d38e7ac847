"""
Download worker pool.

Fetches a TransferJob's files with exactly max_concurrency workers pulling
names from a shared WorkQueue. Each item is handled with its own FTP session:

    pull name -> dial -> login -> cwd -> RETR -> stream to disk -> close

Failures are scoped to the item that caused them. Every item produces one
ItemResult and the pool returns a BatchReport once the queue has drained.
"""

import asyncio
import logging
import threading
import time
from pathlib import Path
from typing import Dict, Optional

from bulk_fetch import metrics
from bulk_fetch.common.filesystem import copy_stream, ensure_directory
from bulk_fetch.errors import (
    ConnectError,
    TransferCancelledError,
    TransferError,
    wrap_exception,
)
from bulk_fetch.logging.context import set_log_context
from bulk_fetch.logging.utilities import log_batch_summary, log_item_failure
from bulk_fetch.schemas.jobs import TransferJob
from bulk_fetch.schemas.results import BatchReport, ItemResult
from bulk_fetch.transfer.barrier import CompletionBarrier
from bulk_fetch.transfer.queue import WorkQueue
from bulk_fetch.transfer.session import FTPSession, SessionFactory, open_session

logger = logging.getLogger(__name__)

OPERATION = "download"


class DownloadPool:
    """
    Bounded pool of download workers for one TransferJob.

    Usage:
        job = TransferJob(
            server=ServerInfo(host="ftp.example.org"),
            max_concurrency=3,
            remote_base_directory="/pub/data",
            local_destination_directory=Path("downloads"),
            file_names=("a.csv.gz", "b.csv.gz"),
        )
        report = await DownloadPool(job).run()
        if not report.all_succeeded:
            for failure in report.failed:
                print(failure.item, failure.error_message)

    Cancellation:
        Setting cancel_event stops in-flight copies at the next chunk and
        marks items not yet started as cancelled. Cancelling the task that
        awaits run() sets the event, waits for workers to release their
        sessions, then re-raises CancelledError.
    """

    def __init__(
        self,
        job: TransferJob,
        session_factory: Optional[SessionFactory] = None,
        cancel_event: Optional[threading.Event] = None,
        queue_size: int = 0,
    ):
        """
        Args:
            job: What to download and where
            session_factory: Opens a transport session (default: FTPSession.open)
            cancel_event: Shared cancellation flag (None = private flag)
            queue_size: Bound on buffered names (0 = unbounded)
        """
        self.job = job
        self._session_factory = session_factory or FTPSession.open
        self._cancel_event = cancel_event or threading.Event()
        self._queue_size = queue_size

    def cancel(self) -> None:
        """Ask in-flight and pending items to stop."""
        self._cancel_event.set()

    async def run(self) -> BatchReport:
        """
        Download every file in the job.

        Returns:
            BatchReport with one ItemResult per file name, in input order

        Raises:
            LocalIOError: Destination directory can't be created
        """
        job = self.job
        await asyncio.to_thread(ensure_directory, job.local_destination_directory)

        logger.info(
            "Starting download batch",
            extra={
                "address": job.server.address,
                "remote_dir": job.remote_base_directory,
                "local_path": str(job.local_destination_directory),
                "batch_size": len(job.file_names),
                "max_concurrency": job.max_concurrency,
            },
        )

        queue: WorkQueue[str] = WorkQueue(maxsize=self._queue_size)
        results: Dict[str, ItemResult] = {}
        barrier = CompletionBarrier()

        barrier.spawn(queue.enqueue_all(job.file_names), name="download-producer")
        for index in range(job.max_concurrency):
            barrier.spawn(
                self._worker(f"download-{index}", queue, results),
                name=f"download-{index}",
            )

        try:
            await barrier.wait()
        except asyncio.CancelledError:
            logger.warning("Download batch cancelled, waiting for workers to release sessions")
            self._cancel_event.set()
            await barrier.wait()
            raise

        for task in barrier.tasks:
            if not task.cancelled() and task.exception() is not None:
                log_item_failure(logger, task.exception(), "Download unit crashed")

        report = self._build_report(results)
        log_batch_summary(logger, report)
        return report

    async def _worker(
        self,
        worker_id: str,
        queue: WorkQueue[str],
        results: Dict[str, ItemResult],
    ) -> None:
        set_log_context(stage=OPERATION, worker_id=worker_id)
        while True:
            name = await queue.get()
            if name is None:
                break

            if self._cancel_event.is_set():
                result = ItemResult.from_error(
                    name, TransferCancelledError("Batch cancelled before item started")
                )
            else:
                result = await self._download_item(name)

            results[name] = result
            metrics.record_item_result(OPERATION, result)

        logger.debug("Download worker finished")

    async def _download_item(self, name: str) -> ItemResult:
        set_log_context(item=name)
        local_path = self.job.local_path_for(name)
        start = time.perf_counter()

        logger.info("Downloading file", extra={"item": name})
        try:
            bytes_written = await asyncio.to_thread(self._transfer, name, local_path)
        except TransferError as e:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            log_item_failure(logger, e, "Download failed", item=name, duration_ms=elapsed_ms)
            return ItemResult.from_error(name, e, processing_time_ms=elapsed_ms)
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            wrapped = wrap_exception(e, context={"item": name})
            log_item_failure(logger, e, "Unexpected download error", item=name)
            return ItemResult.from_error(name, wrapped, processing_time_ms=elapsed_ms)
        finally:
            set_log_context(item="")

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.info(
            "Downloaded file",
            extra={
                "item": name,
                "local_path": str(local_path),
                "bytes_written": bytes_written,
                "duration_ms": elapsed_ms,
            },
        )
        return ItemResult.succeeded(
            name,
            local_path=str(local_path),
            bytes_written=bytes_written,
            processing_time_ms=elapsed_ms,
        )

    def _transfer(self, name: str, local_path: Path) -> int:
        """Blocking part of one item; runs in a worker thread."""
        job = self.job
        session = open_session(
            self._session_factory,
            job.server,
            job.connect_timeout,
            remote_dir=job.remote_base_directory,
        )
        metrics.active_sessions.inc()
        try:
            with session:
                with session.retrieve(name) as stream:
                    return copy_stream(
                        stream,
                        local_path,
                        classify_read_error=lambda e: ConnectError(
                            f"Data connection failed while reading {name}", cause=e
                        ),
                        cancel_event=self._cancel_event,
                    )
        finally:
            metrics.active_sessions.dec()

    def _build_report(self, results: Dict[str, ItemResult]) -> BatchReport:
        ordered = []
        for name in self.job.file_names:
            result = results.get(name)
            if result is None:
                # Only reachable if a worker crashed outside item handling
                result = ItemResult.from_error(
                    name, TransferError("Item was not processed")
                )
            ordered.append(result)
        return BatchReport(
            operation=OPERATION, total=len(self.job.file_names), results=ordered
        )


async def download(
    job: TransferJob,
    session_factory: Optional[SessionFactory] = None,
    cancel_event: Optional[threading.Event] = None,
) -> BatchReport:
    """
    Download every file in a TransferJob.

    Convenience wrapper around DownloadPool(job).run().
    """
    pool = DownloadPool(job, session_factory=session_factory, cancel_event=cancel_event)
    return await pool.run()
