"""
Job descriptions handed to the download and decompression pools.

All job types are frozen: they are built once per invocation and shared
read-only by every worker.
"""

import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Tuple, Union

from bulk_fetch.errors import ConfigurationError

DEFAULT_FTP_PORT = 21
DEFAULT_CONNECT_TIMEOUT = 5.0
ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class ServerInfo:
    """FTP server address and credentials."""

    host: str
    port: int = DEFAULT_FTP_PORT
    username: str = ANONYMOUS
    password: str = field(default=ANONYMOUS, repr=False)

    def __post_init__(self):
        if not self.host or not self.host.strip():
            raise ConfigurationError("Server host cannot be empty")
        if not 0 < self.port < 65536:
            raise ConfigurationError(f"Invalid server port: {self.port}")

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"


def local_name(remote_name: str) -> str:
    """Base name of a remote path, used as the local file name."""
    return posixpath.basename(remote_name.rstrip("/"))


@dataclass(frozen=True)
class TransferJob:
    """
    A batch of remote files to fetch into one local directory.

    Attributes:
        server: Server to connect to
        max_concurrency: Number of download workers (and concurrent sessions)
        remote_base_directory: Directory to change into before each retrieve
            (empty string = stay in the login directory)
        local_destination_directory: Where files are written, created if absent
        file_names: Remote names, relative to remote_base_directory
        connect_timeout: Seconds allowed for the initial connection
    """

    server: ServerInfo
    max_concurrency: int
    remote_base_directory: str
    local_destination_directory: Path
    file_names: Tuple[str, ...] = ()
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT

    def __post_init__(self):
        # Normalize without breaking immutability for callers
        object.__setattr__(
            self, "local_destination_directory", Path(self.local_destination_directory)
        )
        object.__setattr__(self, "file_names", tuple(self.file_names))

        if not isinstance(self.max_concurrency, int) or self.max_concurrency < 1:
            raise ConfigurationError(
                f"max_concurrency must be a positive integer, got {self.max_concurrency!r}"
            )
        if self.connect_timeout <= 0:
            raise ConfigurationError(
                f"connect_timeout must be positive, got {self.connect_timeout!r}"
            )

        seen: Dict[str, str] = {}
        for name in self.file_names:
            base = local_name(name)
            if not base:
                raise ConfigurationError(f"Remote name has no file component: {name!r}")
            if base in seen:
                raise ConfigurationError(
                    f"Remote names {seen[base]!r} and {name!r} "
                    f"would both be written to {base!r}"
                )
            seen[base] = name

    def local_path_for(self, remote_name: str) -> Path:
        return self.local_destination_directory / local_name(remote_name)


@dataclass(frozen=True)
class DecompressionJob:
    """One compressed source file and where its decompressed bytes go."""

    source: Path
    destination: Path

    def __post_init__(self):
        object.__setattr__(self, "source", Path(self.source))
        object.__setattr__(self, "destination", Path(self.destination))


def decompression_jobs(
    files: Mapping[Union[str, Path], Union[str, Path]],
) -> List[DecompressionJob]:
    """Convert a source -> destination mapping into jobs, keeping mapping order."""
    return [DecompressionJob(source=src, destination=dst) for src, dst in files.items()]
