"""Parallel gzip decompression."""

from bulk_fetch.decompress.decompressor import gzip_decompress
from bulk_fetch.decompress.pool import (
    MAX_DECOMPRESSION_WORKERS,
    DecompressionPool,
    decompress_files,
    effective_workers,
)

__all__ = [
    "gzip_decompress",
    "DecompressionPool",
    "decompress_files",
    "effective_workers",
    "MAX_DECOMPRESSION_WORKERS",
]
