"""
Decompression worker pool.

A bounded pool mirroring the download pool: a fixed set of workers pull
DecompressionJobs from a shared WorkQueue, so no more than
MAX_DECOMPRESSION_WORKERS decompressions ever run at once. A malformed
archive fails only its own entry.
"""

import asyncio
import logging
import threading
import time
from pathlib import Path
from typing import Dict, Mapping, Optional, Sequence, Union

from bulk_fetch import metrics
from bulk_fetch.decompress.decompressor import Decompressor, gzip_decompress
from bulk_fetch.errors import TransferCancelledError, TransferError, wrap_exception
from bulk_fetch.logging.context import set_log_context
from bulk_fetch.logging.utilities import log_batch_summary, log_item_failure
from bulk_fetch.schemas.jobs import DecompressionJob, decompression_jobs
from bulk_fetch.schemas.results import BatchReport, ItemResult
from bulk_fetch.transfer.barrier import CompletionBarrier
from bulk_fetch.transfer.queue import WorkQueue

logger = logging.getLogger(__name__)

OPERATION = "decompress"
MAX_DECOMPRESSION_WORKERS = 5


def effective_workers(requested: int) -> int:
    """Clamp a requested worker count to [1, MAX_DECOMPRESSION_WORKERS]."""
    return max(1, min(requested, MAX_DECOMPRESSION_WORKERS))


class DecompressionPool:
    """
    Bounded pool of decompression workers.

    Usage:
        pool = DecompressionPool(
            decompression_jobs({"data/a.gz": "data/a.csv"}),
            max_workers=3,
        )
        report = await pool.run()

    Items in the report are keyed by source path.
    """

    def __init__(
        self,
        jobs: Sequence[DecompressionJob],
        max_workers: int = MAX_DECOMPRESSION_WORKERS,
        decompressor: Decompressor = gzip_decompress,
        cancel_event: Optional[threading.Event] = None,
    ):
        self.jobs = list(jobs)
        self.workers = effective_workers(max_workers)
        self._decompressor = decompressor
        self._cancel_event = cancel_event or threading.Event()

        if max_workers > MAX_DECOMPRESSION_WORKERS:
            logger.debug(
                f"Requested {max_workers} decompression workers, "
                f"capped at {MAX_DECOMPRESSION_WORKERS}"
            )

    def cancel(self) -> None:
        self._cancel_event.set()

    async def run(self) -> BatchReport:
        """
        Decompress every job.

        Returns:
            BatchReport with one ItemResult per job, in input order
        """
        logger.info(
            "Starting decompression batch",
            extra={"batch_size": len(self.jobs), "max_concurrency": self.workers},
        )

        queue: WorkQueue[DecompressionJob] = WorkQueue()
        results: Dict[str, ItemResult] = {}
        barrier = CompletionBarrier()

        barrier.spawn(queue.enqueue_all(self.jobs), name="decompress-producer")
        for index in range(self.workers):
            barrier.spawn(
                self._worker(f"decompress-{index}", queue, results),
                name=f"decompress-{index}",
            )

        try:
            await barrier.wait()
        except asyncio.CancelledError:
            logger.warning("Decompression batch cancelled, waiting for workers")
            self._cancel_event.set()
            await barrier.wait()
            raise

        for task in barrier.tasks:
            if not task.cancelled() and task.exception() is not None:
                log_item_failure(logger, task.exception(), "Decompression unit crashed")

        ordered = []
        for job in self.jobs:
            item = str(job.source)
            ordered.append(
                results.get(item)
                or ItemResult.from_error(item, TransferError("Item was not processed"))
            )
        report = BatchReport(operation=OPERATION, total=len(self.jobs), results=ordered)

        log_batch_summary(logger, report)
        return report

    async def _worker(
        self,
        worker_id: str,
        queue: WorkQueue[DecompressionJob],
        results: Dict[str, ItemResult],
    ) -> None:
        set_log_context(stage=OPERATION, worker_id=worker_id)
        while True:
            job = await queue.get()
            if job is None:
                break

            item = str(job.source)
            if self._cancel_event.is_set():
                result = ItemResult.from_error(
                    item, TransferCancelledError("Batch cancelled before item started")
                )
            else:
                result = await self._decompress_item(job)

            results[item] = result
            metrics.record_item_result(OPERATION, result)

    async def _decompress_item(self, job: DecompressionJob) -> ItemResult:
        item = str(job.source)
        set_log_context(item=job.source.name)
        start = time.perf_counter()

        metrics.active_decompressions.inc()
        try:
            bytes_written = await asyncio.to_thread(
                self._decompressor, job.source, job.destination, self._cancel_event
            )
        except TransferError as e:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            log_item_failure(
                logger,
                e,
                "Decompression failed",
                source=item,
                destination=str(job.destination),
            )
            return ItemResult.from_error(item, e, processing_time_ms=elapsed_ms)
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            log_item_failure(logger, e, "Unexpected decompression error", source=item)
            return ItemResult.from_error(
                item, wrap_exception(e), processing_time_ms=elapsed_ms
            )
        finally:
            metrics.active_decompressions.dec()
            set_log_context(item="")

        return ItemResult.succeeded(
            item,
            local_path=str(job.destination),
            bytes_written=bytes_written,
            processing_time_ms=int((time.perf_counter() - start) * 1000),
        )


async def decompress_files(
    files: Mapping[Union[str, Path], Union[str, Path]],
    max_workers: int = MAX_DECOMPRESSION_WORKERS,
    cancel_event: Optional[threading.Event] = None,
) -> BatchReport:
    """
    Decompress every source -> destination entry of a mapping.

    At most min(max_workers, 5) entries are decompressed concurrently.
    """
    pool = DecompressionPool(
        decompression_jobs(files), max_workers=max_workers, cancel_event=cancel_event
    )
    return await pool.run()
