"""Job and result schemas."""

from bulk_fetch.schemas.jobs import (
    DecompressionJob,
    ServerInfo,
    TransferJob,
    decompression_jobs,
    local_name,
)
from bulk_fetch.schemas.results import BatchReport, ItemResult

__all__ = [
    "ServerInfo",
    "TransferJob",
    "DecompressionJob",
    "decompression_jobs",
    "local_name",
    "ItemResult",
    "BatchReport",
]
