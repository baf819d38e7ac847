"""Tests for job descriptions."""

import dataclasses
from pathlib import Path

import pytest

from bulk_fetch.errors import ConfigurationError
from bulk_fetch.schemas.jobs import (
    DecompressionJob,
    ServerInfo,
    TransferJob,
    decompression_jobs,
    local_name,
)


class TestServerInfo:
    def test_defaults(self):
        server = ServerInfo(host="ftp.example.org")
        assert server.port == 21
        assert server.username == "anonymous"
        assert server.password == "anonymous"
        assert server.address == "ftp.example.org:21"

    def test_password_not_in_repr(self):
        server = ServerInfo(host="h", username="bob", password="s3cret")
        assert "s3cret" not in repr(server)

    @pytest.mark.parametrize("host", ["", "   "])
    def test_empty_host_rejected(self, host):
        with pytest.raises(ConfigurationError):
            ServerInfo(host=host)

    @pytest.mark.parametrize("port", [0, -1, 65536])
    def test_port_out_of_range_rejected(self, port):
        with pytest.raises(ConfigurationError):
            ServerInfo(host="h", port=port)

    def test_frozen(self):
        server = ServerInfo(host="h")
        with pytest.raises(dataclasses.FrozenInstanceError):
            server.host = "other"


class TestLocalName:
    @pytest.mark.parametrize(
        "remote,expected",
        [
            ("a.txt", "a.txt"),
            ("sub/dir/b.gz", "b.gz"),
            ("/abs/c.csv", "c.csv"),
            ("dir/", "dir"),
        ],
    )
    def test_basename(self, remote, expected):
        assert local_name(remote) == expected


class TestTransferJob:
    def _job(self, **kwargs):
        defaults = dict(
            server=ServerInfo(host="h"),
            max_concurrency=2,
            remote_base_directory="/pub",
            local_destination_directory="out",
        )
        defaults.update(kwargs)
        return TransferJob(**defaults)

    def test_normalizes_types(self):
        job = self._job(file_names=["a.txt", "b.txt"])
        assert job.local_destination_directory == Path("out")
        assert job.file_names == ("a.txt", "b.txt")
        assert job.connect_timeout == 5.0

    def test_empty_file_list_allowed(self):
        assert self._job().file_names == ()

    @pytest.mark.parametrize("value", [0, -3, 1.5])
    def test_invalid_concurrency_rejected(self, value):
        with pytest.raises(ConfigurationError):
            self._job(max_concurrency=value)

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ConfigurationError):
            self._job(connect_timeout=0)

    def test_duplicate_local_names_rejected(self):
        with pytest.raises(ConfigurationError, match="data.gz"):
            self._job(file_names=("2023/data.gz", "2024/data.gz"))

    def test_name_without_file_component_rejected(self):
        with pytest.raises(ConfigurationError):
            self._job(file_names=("/",))

    def test_local_path_for(self, tmp_path):
        job = self._job(local_destination_directory=tmp_path)
        assert job.local_path_for("nested/x.bin") == tmp_path / "x.bin"


class TestDecompressionJobs:
    def test_keeps_mapping_order(self):
        jobs = decompression_jobs({"b.gz": "b", "a.gz": "a"})
        assert [j.source for j in jobs] == [Path("b.gz"), Path("a.gz")]
        assert jobs[0] == DecompressionJob(source=Path("b.gz"), destination=Path("b"))

    def test_empty_mapping(self):
        assert decompression_jobs({}) == []
