"""Logging setup and configuration."""

import io
import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional

from bulk_fetch.logging.context import set_log_context
from bulk_fetch.logging.filters import StageContextFilter
from bulk_fetch.logging.formatters import ConsoleFormatter, JSONFormatter

# Default settings
DEFAULT_LOG_DIR = Path("logs")
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_CONSOLE_LEVEL = logging.INFO
DEFAULT_FILE_LEVEL = logging.DEBUG

# Noisy loggers to suppress
NOISY_LOGGERS = [
    "urllib3",
    "aiohttp",
    "asyncio",
]


def get_log_file_path(
    log_dir: Path,
    domain: Optional[str] = None,
    stage: Optional[str] = None,
    instance_id: Optional[str] = None,
) -> Path:
    """
    Build log file path with domain/date subfolder structure.

    Structure: {log_dir}/{domain}/{YYYY-MM-DD}/{domain}_{stage}_{YYYYMMDD}[_instance].log

    Args:
        log_dir: Base log directory
        domain: Log domain (e.g. "fetch")
        stage: Stage name (download, decompress)
        instance_id: Unique instance identifier (e.g., process ID)

    Returns:
        Full path to log file
    """
    date_folder = datetime.now().strftime("%Y-%m-%d")
    date_str = datetime.now().strftime("%Y%m%d")

    if domain and stage:
        base_name = f"{domain}_{stage}_{date_str}"
    elif domain:
        base_name = f"{domain}_{date_str}"
    elif stage:
        base_name = f"{stage}_{date_str}"
    else:
        base_name = f"bulk_fetch_{date_str}"

    if instance_id:
        filename = f"{base_name}_{instance_id}.log"
    else:
        filename = f"{base_name}.log"

    if domain:
        return log_dir / domain / date_folder / filename
    return log_dir / date_folder / filename


def _console_handler(level: int) -> logging.Handler:
    if sys.platform == "win32":
        safe_stdout = io.TextIOWrapper(
            sys.stdout.buffer, encoding="utf-8", errors="replace"
        )
        handler = logging.StreamHandler(safe_stdout)
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(ConsoleFormatter())
    return handler


def _file_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return JSONFormatter()
    return logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
    )


def setup_logging(
    name: str = "bulk_fetch",
    stages: Optional[List[str]] = None,
    domain: str = "fetch",
    log_dir: Optional[Path] = None,
    json_format: bool = True,
    console_level: int = DEFAULT_CONSOLE_LEVEL,
    file_level: int = DEFAULT_FILE_LEVEL,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    suppress_noisy: bool = True,
    use_instance_id: bool = True,
    file_logging: bool = True,
) -> logging.Logger:
    """
    Configure logging with a console handler and rotating file handlers.

    One combined log file receives every record. When stages are given, each
    stage additionally gets its own file, filtered to records emitted while
    that stage is the active log context:
        logs/fetch/2025-01-15/fetch_download_20250115_p12345.log
        logs/fetch/2025-01-15/fetch_decompress_20250115_p12345.log
        logs/fetch/2025-01-15/fetch_all_20250115_p12345.log  (combined)

    Args:
        name: Logger name to return
        stages: Stage names that get a dedicated file
        domain: Log domain, used as the first subfolder
        log_dir: Directory for log files (default: ./logs)
        json_format: Use JSON format for file logs (default: True)
        console_level: Console handler level (default: INFO)
        file_level: File handler level (default: DEBUG)
        max_bytes: Max size per log file before rotation
        backup_count: Number of backup files to keep
        suppress_noisy: Quiet down HTTP client and asyncio loggers
        use_instance_id: Append process ID to log filenames (default: True)
        file_logging: Set False for console-only logging

    Returns:
        Configured logger instance
    """
    log_dir = log_dir or DEFAULT_LOG_DIR
    set_log_context(domain=domain)

    instance_id = f"p{os.getpid()}" if use_instance_id else None

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, handlers filter

    # Remove existing handlers to avoid duplicates on re-init
    root_logger.handlers.clear()
    root_logger.addHandler(_console_handler(console_level))

    combined_file = None
    if file_logging:
        file_formatter = _file_formatter(json_format)

        for stage in stages or []:
            log_file = get_log_file_path(
                log_dir, domain=domain, stage=stage, instance_id=instance_id
            )
            log_file.parent.mkdir(parents=True, exist_ok=True)

            handler = RotatingFileHandler(
                log_file,
                maxBytes=max_bytes,
                backupCount=backup_count,
                encoding="utf-8",
            )
            handler.setLevel(file_level)
            handler.setFormatter(file_formatter)
            handler.addFilter(StageContextFilter(stage))
            root_logger.addHandler(handler)

        combined_file = get_log_file_path(
            log_dir, domain=domain, stage="all", instance_id=instance_id
        )
        combined_file.parent.mkdir(parents=True, exist_ok=True)
        combined_handler = RotatingFileHandler(
            combined_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        combined_handler.setLevel(file_level)
        combined_handler.setFormatter(file_formatter)
        root_logger.addHandler(combined_handler)

    if suppress_noisy:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logger = logging.getLogger(name)
    logger.debug(
        f"Logging initialized: file={combined_file}, json={json_format}, stages={stages}"
    )

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Use this instead of logging.getLogger() to ensure consistent naming.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
