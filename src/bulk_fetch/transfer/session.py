"""
FTP transport session.

FTPSession wraps one ftplib.FTP control connection and maps ftplib/socket
failures onto the bulk_fetch error taxonomy. All methods block; the download
pool calls them from worker threads.

A session belongs to exactly one worker. It is a context manager, so the
connection is released on every exit path:

    with FTPSession.open(server, timeout=5) as session:
        session.change_directory("/pub/data")
        with session.retrieve("file.gz") as stream:
            data = stream.read()
"""

import ftplib
import logging
from contextlib import contextmanager
from typing import BinaryIO, Callable, ContextManager, Iterator, Optional, Protocol

from bulk_fetch.errors import (
    AuthError,
    ConnectError,
    NotFoundError,
    TransferError,
    wrap_exception,
)
from bulk_fetch.schemas.jobs import DEFAULT_CONNECT_TIMEOUT, ServerInfo

logger = logging.getLogger(__name__)


class TransportSession(Protocol):
    """Operations the download pool needs from a file-transfer session."""

    def login(self, username: str, password: str) -> None: ...

    def change_directory(self, path: str) -> None: ...

    def retrieve(self, name: str) -> ContextManager[BinaryIO]: ...

    def close(self) -> None: ...

    def __enter__(self) -> "TransportSession": ...

    def __exit__(self, exc_type, exc, tb) -> None: ...


# (server, connect_timeout) -> connected, not yet logged in session
SessionFactory = Callable[[ServerInfo, float], TransportSession]


class FTPSession:
    """
    One authenticated FTP connection.

    Use FTPSession.dial() to connect, or FTPSession.open() as the default
    SessionFactory for the download pool.
    """

    def __init__(self, ftp: ftplib.FTP, address: str):
        self._ftp = ftp
        self.address = address
        self._closed = False

    @classmethod
    def dial(
        cls,
        host: str,
        port: int,
        timeout: float = DEFAULT_CONNECT_TIMEOUT,
    ) -> "FTPSession":
        """
        Connect to host:port.

        timeout bounds the TCP connect and the greeting. Once connected the
        control socket blocks without a deadline, and so do data connections
        after they are established.

        Raises:
            ConnectError: Host unreachable or no greeting within timeout
        """
        address = f"{host}:{port}"
        ftp = ftplib.FTP(timeout=timeout)
        try:
            ftp.connect(host, port, timeout=timeout)
        except (OSError, EOFError, ftplib.Error) as e:
            ftp.close()
            raise ConnectError(
                f"Cannot connect to {address}", cause=e, context={"address": address}
            ) from e
        # Dial timeout only
        ftp.sock.settimeout(None)
        logger.debug("Connected", extra={"address": address})
        return cls(ftp, address)

    @classmethod
    def open(
        cls, server: ServerInfo, timeout: float = DEFAULT_CONNECT_TIMEOUT
    ) -> "FTPSession":
        """SessionFactory: dial the server described by ServerInfo."""
        return cls.dial(server.host, server.port, timeout=timeout)

    def login(self, username: str, password: str) -> None:
        """
        Authenticate.

        Raises:
            AuthError: Credentials rejected
            ConnectError: Connection dropped
        """
        try:
            self._ftp.login(username, password)
        except ftplib.error_perm as e:
            raise AuthError(
                f"Login rejected for user '{username}' on {self.address}",
                cause=e,
                context={"address": self.address},
            ) from e
        except (OSError, EOFError, ftplib.Error) as e:
            raise self._wrap(e, "login") from e

    def change_directory(self, path: str) -> None:
        """
        Change the working directory.

        Raises:
            NotFoundError: Directory missing or not accessible
        """
        try:
            self._ftp.cwd(path)
        except ftplib.error_perm as e:
            raise NotFoundError(
                f"Remote directory not found: {path}",
                cause=e,
                context={"remote_dir": path},
            ) from e
        except (OSError, EOFError, ftplib.Error) as e:
            raise self._wrap(e, "change_directory") from e

    @contextmanager
    def retrieve(self, name: str) -> Iterator[BinaryIO]:
        """
        Open a binary data stream for a remote file.

        The stream and its data connection are closed when the block exits.
        On a clean exit the server's transfer-complete reply is consumed so
        the control connection stays usable.

        Raises:
            NotFoundError: Remote file missing
            ConnectError: Data connection failed
        """
        try:
            self._ftp.voidcmd("TYPE I")
            conn = self._ftp.transfercmd(f"RETR {name}")
            conn.settimeout(None)
        except ftplib.error_perm as e:
            raise NotFoundError(
                f"Remote file not found: {name}", cause=e, context={"item": name}
            ) from e
        except (OSError, EOFError, ftplib.Error) as e:
            raise self._wrap(e, "retrieve") from e

        stream = conn.makefile("rb")
        try:
            yield stream
        except BaseException:
            stream.close()
            conn.close()
            raise
        else:
            stream.close()
            conn.close()
            try:
                self._ftp.voidresp()
            except (OSError, EOFError, ftplib.Error) as e:
                raise self._wrap(e, "retrieve") from e

    def close(self) -> None:
        """Quit politely, falling back to dropping the connection. Idempotent."""
        if self._closed:
            return
        self._closed = True
        try:
            self._ftp.quit()
        except (OSError, EOFError, ftplib.Error):
            self._ftp.close()
        logger.debug("Session closed", extra={"address": self.address})

    def __enter__(self) -> "FTPSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _wrap(self, exc: BaseException, operation: str) -> TransferError:
        return wrap_exception(
            exc,
            default_class=ConnectError,
            context={"address": self.address, "operation": operation},
        )


def open_session(
    factory: SessionFactory,
    server: ServerInfo,
    timeout: float,
    remote_dir: Optional[str] = None,
) -> TransportSession:
    """
    Dial, log in and change directory; close the session if either step fails.

    Returns:
        A ready session that the caller must close (use it in a with block)
    """
    session = factory(server, timeout)
    try:
        session.login(server.username, server.password)
        if remote_dir:
            session.change_directory(remote_dir)
    except BaseException:
        session.close()
        raise
    return session
