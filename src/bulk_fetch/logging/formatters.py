"""Log formatters for JSON and console output."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict

from bulk_fetch.logging.context import get_log_context


class JSONFormatter(logging.Formatter):
    """
    JSON log formatter with context injection.

    Produces one JSON object per line for easy parsing with jq/grep.
    """

    # Fields to extract from LogRecord extras
    EXTRA_FIELDS = [
        "item",
        "local_path",
        "remote_dir",
        "address",
        "source",
        "destination",
        "url",
        "bytes_written",
        "duration_ms",
        "http_status",
        "error_category",
        "error_message",
        "error_type",
        "batch_size",
        "max_concurrency",
        "records_succeeded",
        "records_failed",
        "records_cancelled",
    ]

    def format(self, record: logging.LogRecord) -> str:
        log_entry: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3]
            + "Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        ctx = get_log_context()
        for key in ("domain", "stage", "worker_id"):
            if ctx[key]:
                log_entry[key] = ctx[key]
        if ctx["item"]:
            log_entry["item"] = ctx["item"]

        # Add source location for DEBUG/ERROR
        if record.levelno in (logging.DEBUG, logging.ERROR, logging.CRITICAL):
            log_entry["file"] = f"{record.filename}:{record.lineno}"

        for field in self.EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_entry[field] = value

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """
    Human-readable console formatter.

    Includes context when available.
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_log_context()

        parts = [
            datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            record.levelname,
        ]

        if ctx["stage"]:
            parts.append(f"[{ctx['stage']}]")
        if ctx["worker_id"]:
            parts.append(f"[{ctx['worker_id']}]")

        prefix = " - ".join(parts)
        message = f"{prefix} - {record.getMessage()}"

        item = getattr(record, "item", None) or ctx["item"]
        if item:
            message = f"{message} ({item})"

        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        return message
