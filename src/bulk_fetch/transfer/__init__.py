"""
Concurrent FTP transfer pipeline.

Components:
    - WorkQueue: producer/consumer queue with an explicit closed signal
    - CompletionBarrier: waits for producer and workers to finish
    - FTPSession: one worker-owned FTP connection
    - DownloadPool: bounded pool of download workers
"""

from bulk_fetch.transfer.barrier import CompletionBarrier
from bulk_fetch.transfer.pool import DownloadPool, download
from bulk_fetch.transfer.queue import WorkQueue
from bulk_fetch.transfer.session import (
    FTPSession,
    SessionFactory,
    TransportSession,
    open_session,
)

__all__ = [
    "CompletionBarrier",
    "DownloadPool",
    "download",
    "WorkQueue",
    "FTPSession",
    "SessionFactory",
    "TransportSession",
    "open_session",
]
