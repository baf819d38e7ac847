"""
bulk_fetch configuration classes.

Dataclass-based configuration loaded from YAML, with environment variable
overrides applied in __post_init__.

Example config.yaml:

    server:
      host: ftp.ncbi.nlm.nih.gov
      port: 21
    transfer:
      max_concurrency: 3
      remote_base_directory: /pubmed/baseline
      local_destination_directory: downloads
      file_names:
        - pubmed24n0001.xml.gz
        - pubmed24n0002.xml.gz
    decompress:
      gzip_downloads: true
      max_workers: 5
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from bulk_fetch.errors import ConfigurationError
from bulk_fetch.schemas.jobs import (
    ANONYMOUS,
    DEFAULT_CONNECT_TIMEOUT,
    DEFAULT_FTP_PORT,
    ServerInfo,
    TransferJob,
    local_name,
)

# Default config file location: config.yaml in the working directory
DEFAULT_CONFIG_PATH = Path("config.yaml")

GZIP_SUFFIX = ".gz"


def _deep_merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    """Deep merge overlay into base dict."""
    result = base.copy()
    for key, value in overlay.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _env_int(name: str, default: Any) -> Any:
    """Integer from an environment variable, or default when it is unset."""
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Environment variable {name} must be an integer, got '{value}'", cause=e
        ) from e


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class ServerConfig:
    """FTP server connection settings."""

    host: str = ""
    port: int = DEFAULT_FTP_PORT
    username: str = ANONYMOUS
    password: str = field(default=ANONYMOUS, repr=False)

    def __post_init__(self):
        # Env overrides
        self.host = os.getenv("FTP_HOST", self.host)
        self.port = _env_int("FTP_PORT", self.port)
        self.username = os.getenv("FTP_USERNAME", self.username)
        self.password = os.getenv("FTP_PASSWORD", self.password)


@dataclass
class TransferConfig:
    """Download batch settings."""

    max_concurrency: int = 3
    remote_base_directory: str = ""
    local_destination_directory: str = "downloads"
    file_names: List[str] = field(default_factory=list)
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    queue_size: int = 0  # 0 = unbounded

    def __post_init__(self):
        # Env overrides
        self.max_concurrency = _env_int("FETCH_MAX_CONCURRENCY", self.max_concurrency)
        self.local_destination_directory = os.getenv(
            "FETCH_DEST_DIR", self.local_destination_directory
        )


@dataclass
class DecompressConfig:
    """Decompression settings.

    files maps compressed source -> decompressed destination. With
    gzip_downloads, every downloaded *.gz file is also decompressed next to
    itself with the suffix stripped.
    """

    files: Dict[str, str] = field(default_factory=dict)
    gzip_downloads: bool = False
    max_workers: int = 5


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    log_dir: str = "logs"
    json_format: bool = True
    file_logging: bool = True


@dataclass
class ObservabilityConfig:
    """Metrics settings."""

    metrics_port: int = 0  # 0 = metrics server disabled


@dataclass
class FetchConfig:
    """
    Root configuration.

    Loads from YAML file with environment variable overrides.
    """

    server: ServerConfig = field(default_factory=ServerConfig)
    transfer: TransferConfig = field(default_factory=TransferConfig)
    decompress: DecompressConfig = field(default_factory=DecompressConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of error messages (empty if valid)
        """
        errors: List[str] = []

        if not isinstance(self.server.host, str) or not self.server.host:
            errors.append("server.host is required (or set FTP_HOST)")
        if not _is_int(self.server.port) or not 0 < self.server.port < 65536:
            errors.append(
                f"server.port must be an integer in 1-65535, got {self.server.port!r}"
            )

        if not _is_int(self.transfer.max_concurrency) or self.transfer.max_concurrency < 1:
            errors.append(
                "transfer.max_concurrency must be an integer >= 1, "
                f"got {self.transfer.max_concurrency!r}"
            )
        if not _is_number(self.transfer.connect_timeout) or self.transfer.connect_timeout <= 0:
            errors.append(
                "transfer.connect_timeout must be a positive number, "
                f"got {self.transfer.connect_timeout!r}"
            )
        if not _is_int(self.transfer.queue_size) or self.transfer.queue_size < 0:
            errors.append(
                f"transfer.queue_size must be an integer >= 0, got {self.transfer.queue_size!r}"
            )
        if not self.transfer.local_destination_directory:
            errors.append("transfer.local_destination_directory is required")

        file_names = self.transfer.file_names
        if not isinstance(file_names, list) or not all(isinstance(n, str) for n in file_names):
            errors.append("transfer.file_names must be a list of strings")
            file_names = []

        seen: Dict[str, str] = {}
        for name in file_names:
            base = local_name(name)
            if not base:
                errors.append(f"transfer.file_names has no file component: '{name}'")
            elif base in seen:
                errors.append(
                    f"transfer.file_names '{seen[base]}' and '{name}' share local name '{base}'"
                )
            else:
                seen[base] = name

        if not _is_int(self.decompress.max_workers) or self.decompress.max_workers < 1:
            errors.append(
                "decompress.max_workers must be an integer >= 1, "
                f"got {self.decompress.max_workers!r}"
            )
        if not isinstance(self.decompress.files, dict):
            errors.append("decompress.files must be a mapping of source to destination")

        level = self.logging.level
        if not isinstance(level, str) or level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR"):
            errors.append(f"logging.level is invalid: {level!r}")

        port = self.observability.metrics_port
        if not _is_int(port) or not 0 <= port < 65536:
            errors.append(
                f"observability.metrics_port must be an integer in 0-65535, got {port!r}"
            )

        return errors

    def to_transfer_job(self, file_names: Optional[List[str]] = None) -> TransferJob:
        """
        Build the immutable TransferJob for a download run.

        Args:
            file_names: Override the configured file list

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        errors = self.validate()
        if errors:
            raise ConfigurationError(
                "Invalid configuration: " + "; ".join(errors),
                context={"errors": errors},
            )
        return TransferJob(
            server=ServerInfo(
                host=self.server.host,
                port=self.server.port,
                username=self.server.username,
                password=self.server.password,
            ),
            max_concurrency=self.transfer.max_concurrency,
            remote_base_directory=self.transfer.remote_base_directory,
            local_destination_directory=Path(self.transfer.local_destination_directory),
            file_names=tuple(
                file_names if file_names is not None else self.transfer.file_names
            ),
            connect_timeout=self.transfer.connect_timeout,
        )

    def decompression_map(
        self, downloaded: Optional[List[str]] = None
    ) -> Dict[str, str]:
        """
        Source -> destination pairs to decompress after a download.

        Args:
            downloaded: Local paths of files downloaded successfully; used
                when gzip_downloads is enabled

        Returns:
            Explicit decompress.files entries plus derived *.gz entries
        """
        files = dict(self.decompress.files)
        if self.decompress.gzip_downloads:
            for path in downloaded or []:
                if path.endswith(GZIP_SUFFIX):
                    files.setdefault(path, path[: -len(GZIP_SUFFIX)])
        return files


def _dict_to_config(data: Dict[str, Any]) -> FetchConfig:
    """Convert dict to FetchConfig with nested dataclasses."""
    return FetchConfig(
        server=ServerConfig(**data.get("server", {})),
        transfer=TransferConfig(**data.get("transfer", {})),
        decompress=DecompressConfig(**data.get("decompress", {})),
        logging=LoggingConfig(**data.get("logging", {})),
        observability=ObservabilityConfig(**data.get("observability", {})),
    )


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> FetchConfig:
    """
    Load configuration from YAML file with optional overrides.

    Args:
        config_path: Path to YAML config file (default: ./config.yaml)
        overrides: Dict of overrides to apply after loading

    Returns:
        FetchConfig instance

    Raises:
        ConfigurationError: If an explicitly given file doesn't exist, is not
            valid YAML, has unknown keys, or an env override is malformed
    """
    explicit = config_path is not None
    config_path = Path(config_path) if explicit else DEFAULT_CONFIG_PATH

    if config_path.exists():
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Config file {config_path} is not valid YAML: {e}", cause=e
            ) from e
    elif explicit:
        raise ConfigurationError(f"Config file not found: {config_path}")
    else:
        data = {}

    _check_shape(data, str(config_path))
    if overrides:
        data = _deep_merge(data, overrides)

    return _build_config(data, source=str(config_path))


def load_config_from_dict(data: Dict[str, Any]) -> FetchConfig:
    """
    Load configuration from a dictionary.

    Useful for testing or programmatic config.
    """
    return _build_config(data, source="dict")


def _check_shape(data: Any, source: str) -> None:
    """Top level and every section must be mappings."""
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Invalid config {source}: top level must be a mapping, got {type(data).__name__}"
        )
    for section, value in data.items():
        if not isinstance(value, dict):
            raise ConfigurationError(
                f"Invalid config {source}: section '{section}' must be a mapping"
            )


def _build_config(data: Any, source: str) -> FetchConfig:
    _check_shape(data, source)
    try:
        return _dict_to_config(data)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid config {source}: {e}", cause=e) from e
