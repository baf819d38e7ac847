"""Tests for directory creation and chunked stream copy."""

import io
import threading

import pytest

from bulk_fetch.common.filesystem import copy_stream, ensure_directory, remove_partial
from bulk_fetch.errors import (
    ConnectError,
    LocalIOError,
    NotFoundError,
    TransferCancelledError,
)


def _connect_error(exc):
    return ConnectError("read failed", cause=exc)


class FailingStream(io.BytesIO):
    """Returns one chunk, then raises."""

    def __init__(self, exc):
        super().__init__(b"first chunk")
        self.exc = exc
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        if self.reads > 1:
            raise self.exc
        return super().read(size)


class TestEnsureDirectory:
    def test_creates_nested(self, tmp_path):
        target = tmp_path / "a" / "b" / "c"
        assert ensure_directory(target) == target
        assert target.is_dir()

    def test_existing_directory_is_accepted(self, tmp_path):
        ensure_directory(tmp_path)
        ensure_directory(tmp_path)
        assert tmp_path.is_dir()

    def test_existing_file_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(LocalIOError, match="not a directory"):
            ensure_directory(blocker)

    def test_parent_is_file_raises(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        with pytest.raises(LocalIOError):
            ensure_directory(blocker / "child")


class TestCopyStream:
    def test_copies_all_bytes_in_chunks(self, tmp_path):
        payload = bytes(range(256)) * 100
        dest = tmp_path / "out.bin"
        written = copy_stream(io.BytesIO(payload), dest, _connect_error, chunk_size=1000)
        assert written == len(payload)
        assert dest.read_bytes() == payload

    def test_empty_stream_creates_empty_file(self, tmp_path):
        dest = tmp_path / "empty.bin"
        assert copy_stream(io.BytesIO(b""), dest, _connect_error) == 0
        assert dest.read_bytes() == b""

    def test_truncates_existing_file(self, tmp_path):
        dest = tmp_path / "out.bin"
        dest.write_bytes(b"old contents that are longer")
        copy_stream(io.BytesIO(b"new"), dest, _connect_error)
        assert dest.read_bytes() == b"new"

    def test_read_error_is_classified_and_partial_removed(self, tmp_path):
        dest = tmp_path / "out.bin"
        stream = FailingStream(ConnectionResetError("Connection reset by peer"))
        with pytest.raises(ConnectError) as exc_info:
            copy_stream(stream, dest, _connect_error, chunk_size=4)
        assert isinstance(exc_info.value.cause, ConnectionResetError)
        assert not dest.exists()

    def test_transfer_error_from_reader_passes_through(self, tmp_path):
        dest = tmp_path / "out.bin"
        stream = FailingStream(NotFoundError("gone"))
        with pytest.raises(NotFoundError):
            copy_stream(stream, dest, _connect_error, chunk_size=4)
        assert not dest.exists()

    def test_cancel_event_stops_copy(self, tmp_path):
        dest = tmp_path / "out.bin"
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(TransferCancelledError):
            copy_stream(io.BytesIO(b"data"), dest, _connect_error, cancel_event=cancel)
        assert not dest.exists()

    def test_unwritable_destination(self, tmp_path):
        dest = tmp_path / "missing-dir" / "out.bin"
        with pytest.raises(LocalIOError, match="Cannot create local file"):
            copy_stream(io.BytesIO(b"data"), dest, _connect_error)


class TestRemovePartial:
    def test_missing_file_is_ignored(self, tmp_path):
        remove_partial(tmp_path / "never-written")

    def test_removes_file(self, tmp_path):
        path = tmp_path / "partial"
        path.write_bytes(b"x")
        remove_partial(path)
        assert not path.exists()
