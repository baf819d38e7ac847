"""Tests for the exception hierarchy and error classification."""

import ftplib
import socket

import pytest

from bulk_fetch.errors import (
    AuthError,
    BinaryNotFoundError,
    ConfigurationError,
    ConnectError,
    DecodeError,
    ErrorCategory,
    HTTPStatusError,
    LocalIOError,
    NotFoundError,
    PermanentError,
    QueueClosedError,
    TransferCancelledError,
    TransferError,
    classify_exception,
    classify_http_status,
    wrap_exception,
)


class TestTransferError:
    def test_str_includes_cause(self):
        err = TransferError("Outer failure", cause=ValueError("inner"))
        assert str(err) == "Outer failure | Caused by: inner"

    def test_str_without_cause(self):
        assert str(TransferError("Just this")) == "Just this"

    def test_context_defaults_to_empty_dict(self):
        assert TransferError("x").context == {}

    @pytest.mark.parametrize(
        "exc_class,category",
        [
            (ConnectError, ErrorCategory.TRANSIENT),
            (AuthError, ErrorCategory.AUTH),
            (NotFoundError, ErrorCategory.PERMANENT),
            (LocalIOError, ErrorCategory.PERMANENT),
            (DecodeError, ErrorCategory.PERMANENT),
            (ConfigurationError, ErrorCategory.PERMANENT),
            (TransferCancelledError, ErrorCategory.CANCELLED),
            (TransferError, ErrorCategory.UNKNOWN),
        ],
    )
    def test_categories(self, exc_class, category):
        assert exc_class("msg").category == category

    def test_queue_closed_is_not_a_transfer_error(self):
        assert not issubclass(QueueClosedError, TransferError)
        assert issubclass(QueueClosedError, RuntimeError)


class TestBinaryNotFoundError:
    def test_message_names_binary(self):
        err = BinaryNotFoundError("gunzip")
        assert str(err) == (
            "Can not locate binary file 'gunzip' on your system; "
            "check if it's installed and is added to your PATH variable"
        )
        assert err.binary_name == "gunzip"
        assert isinstance(err, PermanentError)


class TestHTTPStatusError:
    def test_category_follows_status(self):
        assert HTTPStatusError(404, "http://x/a").category == ErrorCategory.PERMANENT
        assert HTTPStatusError(503, "http://x/a").category == ErrorCategory.TRANSIENT
        assert HTTPStatusError(401, "http://x/a").category == ErrorCategory.AUTH

    def test_message_and_context(self):
        err = HTTPStatusError(404, "http://x/a")
        assert "HTTP 404" in str(err)
        assert err.context["http_status"] == 404
        assert err.url == "http://x/a"


class TestClassifyHttpStatus:
    @pytest.mark.parametrize(
        "status,expected",
        [
            (200, ErrorCategory.UNKNOWN),
            (401, ErrorCategory.AUTH),
            (407, ErrorCategory.AUTH),
            (403, ErrorCategory.PERMANENT),
            (404, ErrorCategory.PERMANENT),
            (408, ErrorCategory.TRANSIENT),
            (429, ErrorCategory.TRANSIENT),
            (500, ErrorCategory.TRANSIENT),
            (502, ErrorCategory.TRANSIENT),
        ],
    )
    def test_status_mapping(self, status, expected):
        assert classify_http_status(status) == expected


class TestClassifyException:
    def test_transfer_error_keeps_its_category(self):
        assert classify_exception(DecodeError("x")) == ErrorCategory.PERMANENT

    def test_ftp_login_rejection_is_auth(self):
        exc = ftplib.error_perm("530 Login incorrect.")
        assert classify_exception(exc) == ErrorCategory.AUTH

    def test_ftp_missing_file_is_permanent(self):
        exc = ftplib.error_perm("550 No such file or directory.")
        assert classify_exception(exc) == ErrorCategory.PERMANENT

    def test_ftp_temp_error_is_transient(self):
        exc = ftplib.error_temp("421 Too many connections")
        assert classify_exception(exc) == ErrorCategory.TRANSIENT

    @pytest.mark.parametrize(
        "exc",
        [
            socket.timeout("timed out"),
            ConnectionRefusedError(111, "Connection refused"),
            ConnectionResetError("reset"),
            EOFError(),
        ],
    )
    def test_network_errors_are_transient(self, exc):
        assert classify_exception(exc) == ErrorCategory.TRANSIENT

    def test_message_marker_is_transient(self):
        assert classify_exception(RuntimeError("no route to host")) == ErrorCategory.TRANSIENT

    def test_local_os_error_is_permanent(self):
        assert classify_exception(PermissionError(13, "Permission denied")) == (
            ErrorCategory.PERMANENT
        )

    def test_other_errors_are_unknown(self):
        assert classify_exception(ValueError("bad")) == ErrorCategory.UNKNOWN


class TestWrapException:
    def test_transfer_error_returned_with_context(self):
        original = NotFoundError("missing")
        wrapped = wrap_exception(original, context={"item": "a.txt"})
        assert wrapped is original
        assert wrapped.context["item"] == "a.txt"

    def test_auth(self):
        wrapped = wrap_exception(ftplib.error_perm("530 Login incorrect."))
        assert isinstance(wrapped, AuthError)

    def test_transient_becomes_connect_error(self):
        wrapped = wrap_exception(ConnectionRefusedError(111, "Connection refused"))
        assert isinstance(wrapped, ConnectError)
        assert isinstance(wrapped.cause, ConnectionRefusedError)

    def test_ftp_permanent_becomes_not_found(self):
        wrapped = wrap_exception(ftplib.error_perm("550 No such file"))
        assert isinstance(wrapped, NotFoundError)

    def test_os_error_becomes_local_io_error(self):
        wrapped = wrap_exception(PermissionError(13, "Permission denied"))
        assert isinstance(wrapped, LocalIOError)

    def test_unknown_uses_default_class(self):
        wrapped = wrap_exception(ValueError("bad"), default_class=ConnectError)
        assert isinstance(wrapped, ConnectError)
        assert type(wrap_exception(ValueError("bad"))) is TransferError
