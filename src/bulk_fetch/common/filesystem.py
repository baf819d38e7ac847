"""Local filesystem helpers shared by the download and decompression pools."""

import logging
import threading
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from bulk_fetch.errors import LocalIOError, TransferCancelledError, TransferError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024  # 64KB

ReadErrorClassifier = Callable[[BaseException], TransferError]


def ensure_directory(path: Path) -> Path:
    """
    Create a directory (and parents) if absent.

    An existing directory is accepted as-is.

    Raises:
        LocalIOError: If the path exists but is not a directory, or can't be created
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except FileExistsError as e:
        raise LocalIOError(
            f"Destination exists and is not a directory: {path}", cause=e
        ) from e
    except OSError as e:
        raise LocalIOError(f"Cannot create directory {path}", cause=e) from e
    return path


def copy_stream(
    source: BinaryIO,
    destination: Path,
    classify_read_error: ReadErrorClassifier,
    cancel_event: Optional[threading.Event] = None,
    chunk_size: int = CHUNK_SIZE,
) -> int:
    """
    Copy a readable binary stream into a local file, chunk by chunk.

    The destination is created (or truncated). If anything goes wrong, the
    partial file is removed before the error propagates.

    Args:
        source: Readable binary stream
        destination: Local file path
        classify_read_error: Maps an exception raised while reading the
            source into the TransferError to raise
        cancel_event: Checked between chunks; when set the copy stops with
            TransferCancelledError
        chunk_size: Read size in bytes

    Returns:
        Number of bytes written

    Raises:
        LocalIOError: Destination can't be created or written
        TransferCancelledError: cancel_event was set mid-copy
        TransferError: Whatever classify_read_error returns
    """
    try:
        out = open(destination, "wb")
    except OSError as e:
        raise LocalIOError(f"Cannot create local file {destination}", cause=e) from e

    bytes_written = 0
    try:
        with out:
            while True:
                if cancel_event is not None and cancel_event.is_set():
                    raise TransferCancelledError(
                        f"Copy to {destination.name} cancelled after {bytes_written} bytes"
                    )
                try:
                    chunk = source.read(chunk_size)
                except TransferError:
                    raise
                except Exception as e:
                    raise classify_read_error(e) from e
                if not chunk:
                    break
                try:
                    out.write(chunk)
                except OSError as e:
                    raise LocalIOError(
                        f"Cannot write local file {destination}", cause=e
                    ) from e
                bytes_written += len(chunk)
    except BaseException:
        remove_partial(destination)
        raise

    return bytes_written


def remove_partial(path: Path) -> None:
    """Best-effort removal of a partially written file."""
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(
            "Could not remove partial file",
            extra={"local_path": str(path), "error_message": str(e)},
        )
