"""Streaming gzip decompression of a single file."""

import gzip
import logging
import threading
import zlib
from pathlib import Path
from typing import Callable, Optional

from bulk_fetch.common.filesystem import copy_stream
from bulk_fetch.errors import DecodeError, LocalIOError, TransferError

logger = logging.getLogger(__name__)

# (source, destination, cancel_event) -> bytes written
Decompressor = Callable[[Path, Path, Optional[threading.Event]], int]


def _classify_gzip_error(source: Path) -> Callable[[BaseException], TransferError]:
    def classify(exc: BaseException) -> TransferError:
        # BadGzipFile is an OSError subclass, so it must be checked first
        if isinstance(exc, (gzip.BadGzipFile, EOFError, zlib.error)):
            return DecodeError(f"Malformed gzip input: {source}", cause=exc)
        if isinstance(exc, OSError):
            return LocalIOError(f"Cannot read {source}", cause=exc)
        return DecodeError(f"Cannot decompress {source}", cause=exc)

    return classify


def gzip_decompress(
    source: Path,
    destination: Path,
    cancel_event: Optional[threading.Event] = None,
) -> int:
    """
    Decompress a gzip file into destination, streaming chunk by chunk.

    The destination is created if absent and truncated otherwise. On failure
    no partial destination file is left behind.

    Returns:
        Number of decompressed bytes written

    Raises:
        LocalIOError: Source can't be opened, or destination can't be written
        DecodeError: Source is not valid gzip data
        TransferCancelledError: cancel_event was set mid-stream
    """
    source = Path(source)
    destination = Path(destination)
    logger.info("Decompressing file", extra={"source": source.name})

    try:
        raw = open(source, "rb")
    except OSError as e:
        raise LocalIOError(f"Cannot open compressed file {source}", cause=e) from e

    with raw, gzip.GzipFile(fileobj=raw, mode="rb") as stream:
        bytes_written = copy_stream(
            stream,
            destination,
            classify_read_error=_classify_gzip_error(source),
            cancel_event=cancel_event,
        )

    logger.info(
        "Decompressed to file",
        extra={"destination": destination.name, "bytes_written": bytes_written},
    )
    return bytes_written
