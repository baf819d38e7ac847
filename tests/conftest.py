"""
pytest configuration for bulk_fetch tests.

Adds src directory to Python path for imports and provides an in-memory FTP
server whose sessions satisfy the TransportSession interface.
"""

import io
import logging
import posixpath
import sys
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Set

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

from bulk_fetch.errors import AuthError, ConnectError, NotFoundError  # noqa: E402
from bulk_fetch.logging.context import clear_log_context  # noqa: E402
from bulk_fetch.schemas.jobs import ServerInfo  # noqa: E402


class SlowStream(io.BytesIO):
    """BytesIO that sleeps on every read and can fail after some bytes."""

    def __init__(self, data: bytes, delay: float = 0.0, fail_after: Optional[int] = None):
        super().__init__(data)
        self.delay = delay
        self.fail_after = fail_after

    def read(self, size: int = -1) -> bytes:
        if self.delay:
            time.sleep(self.delay)
        if self.fail_after is not None and self.tell() >= self.fail_after:
            raise ConnectionResetError("Connection reset by peer")
        if self.fail_after is not None and size > 0:
            size = min(size, max(self.fail_after - self.tell(), 1))
        return super().read(size)


class FakeFTPServer:
    """
    In-memory FTP server.

    files maps absolute remote paths to content. Directories are derived from
    the file paths. Every session opened through factory() is tracked so
    tests can check concurrency and cleanup.
    """

    def __init__(
        self,
        files: Optional[Dict[str, bytes]] = None,
        users: Optional[Dict[str, str]] = None,
        read_delay: float = 0.0,
    ):
        self.files: Dict[str, bytes] = dict(files or {})
        self.users = users or {"anonymous": "anonymous"}
        self.read_delay = read_delay
        self.unreachable = False
        self.broken_files: Set[str] = set()

        self._lock = threading.Lock()
        self.dial_count = 0
        self.open_sessions = 0
        self.max_open_sessions = 0
        self.closed_sessions = 0
        self.retrieved: List[str] = []

    @property
    def directories(self) -> Set[str]:
        dirs = {"/"}
        for path in self.files:
            parent = posixpath.dirname(path)
            while parent not in dirs:
                dirs.add(parent)
                parent = posixpath.dirname(parent)
        return dirs

    def factory(self, server: ServerInfo, timeout: float) -> "FakeSession":
        with self._lock:
            self.dial_count += 1
            if self.unreachable:
                raise ConnectError(f"Cannot connect to {server.address}")
            self.open_sessions += 1
            self.max_open_sessions = max(self.max_open_sessions, self.open_sessions)
        return FakeSession(self)

    def _session_closed(self) -> None:
        with self._lock:
            self.open_sessions -= 1
            self.closed_sessions += 1

    def _record_retrieve(self, path: str) -> None:
        with self._lock:
            self.retrieved.append(path)


class FakeSession:
    """Session handed out by FakeFTPServer.factory."""

    def __init__(self, server: FakeFTPServer):
        self.server = server
        self.cwd = "/"
        self.logged_in = False
        self.closed = False

    def login(self, username: str, password: str) -> None:
        if self.server.users.get(username) != password:
            raise AuthError(f"Login rejected for user '{username}'")
        self.logged_in = True

    def change_directory(self, path: str) -> None:
        target = posixpath.normpath(posixpath.join(self.cwd, path))
        if target not in self.server.directories:
            raise NotFoundError(f"Remote directory not found: {path}")
        self.cwd = target

    @contextmanager
    def retrieve(self, name: str) -> Iterator[io.BytesIO]:
        assert self.logged_in, "retrieve before login"
        path = posixpath.normpath(posixpath.join(self.cwd, name))
        if path not in self.server.files:
            raise NotFoundError(f"Remote file not found: {name}")
        self.server._record_retrieve(path)
        data = self.server.files[path]
        fail_after = len(data) // 2 if path in self.server.broken_files else None
        stream = SlowStream(data, delay=self.server.read_delay, fail_after=fail_after)
        try:
            yield stream
        finally:
            stream.close()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self.server._session_closed()

    def __enter__(self) -> "FakeSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@pytest.fixture
def fake_server() -> FakeFTPServer:
    """FTP server with three small files under /pub."""
    return FakeFTPServer(
        files={
            "/pub/a.txt": b"alpha contents\n",
            "/pub/b.txt": b"bravo contents\n" * 100,
            "/pub/c.txt": bytes(range(256)) * 1024,
        }
    )


@pytest.fixture
def server_info() -> ServerInfo:
    return ServerInfo(host="ftp.test.local", port=2121)


@pytest.fixture(autouse=True)
def reset_log_context():
    """Keep log context from leaking between tests."""
    clear_log_context()
    yield
    clear_log_context()
    logging.getLogger().handlers.clear()
