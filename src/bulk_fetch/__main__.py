"""
Command line entry point.

Usage:
    # Download the files listed in a config file
    python -m bulk_fetch download --config job.yaml

    # Download, then gunzip every downloaded *.gz file
    python -m bulk_fetch download --config job.yaml --decompress

    # Override the file list from the command line
    python -m bulk_fetch download --config job.yaml --file a.gz --file b.gz

    # Decompress local archives
    python -m bulk_fetch decompress data/a.gz=data/a.csv data/b.gz=data/b.csv

    # Expose Prometheus metrics while running
    python -m bulk_fetch download --config job.yaml --metrics-port 8000

Exit codes:
    0: every item succeeded
    1: at least one item failed or was cancelled
    2: invalid configuration or arguments
    130: interrupted
"""

import argparse
import json
import logging
import sys
import threading
from functools import partial
from pathlib import Path
from typing import Dict, List, Optional

from prometheus_client import start_http_server

from bulk_fetch.common.async_utils import run_batch
from bulk_fetch.config import FetchConfig, load_config
from bulk_fetch.decompress.pool import DecompressionPool
from bulk_fetch.errors import ConfigurationError, TransferError
from bulk_fetch.logging.setup import setup_logging
from bulk_fetch.schemas.jobs import TransferJob, decompression_jobs
from bulk_fetch.schemas.results import BatchReport
from bulk_fetch.transfer.pool import DownloadPool

STAGES = ["download", "decompress"]

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="bulk_fetch",
        description="Bulk FTP download and parallel gzip decompression",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Console logging level (default: from config, else INFO)",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        default=None,
        help="Directory for log files (default: from config, else ./logs)",
    )
    parser.add_argument(
        "--no-file-log",
        action="store_true",
        help="Log to the console only",
    )
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Serve Prometheus metrics on this port while running",
    )
    parser.add_argument(
        "--json-report",
        type=Path,
        default=None,
        help="Write the batch report(s) as JSON to this file",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    download_parser = subparsers.add_parser("download", help="Download files over FTP")
    download_parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML config file (default: ./config.yaml)",
    )
    download_parser.add_argument(
        "--file",
        dest="files",
        action="append",
        default=None,
        help="Remote file to fetch (repeatable; overrides transfer.file_names)",
    )
    download_parser.add_argument(
        "--decompress",
        action="store_true",
        help="Decompress downloaded *.gz files afterwards",
    )

    decompress_parser = subparsers.add_parser("decompress", help="Decompress gzip files")
    decompress_parser.add_argument(
        "pairs",
        nargs="+",
        metavar="SRC=DST",
        help="Compressed source and decompressed destination",
    )
    decompress_parser.add_argument(
        "--workers",
        type=int,
        default=5,
        help="Concurrent decompressions (capped at 5, default: 5)",
    )

    return parser.parse_args(argv)


def parse_pairs(pairs: List[str]) -> Dict[str, str]:
    """Parse SRC=DST arguments into a mapping."""
    files: Dict[str, str] = {}
    for pair in pairs:
        src, sep, dst = pair.partition("=")
        if not sep or not src or not dst:
            raise ConfigurationError(f"Expected SRC=DST, got '{pair}'")
        files[src] = dst
    return files


async def run_download(
    config: FetchConfig,
    job: TransferJob,
    cancel_event: threading.Event,
) -> List[BatchReport]:
    """Download the job's files, then decompress what the config asks for."""
    pool = DownloadPool(
        job, cancel_event=cancel_event, queue_size=config.transfer.queue_size
    )
    reports = [await pool.run()]

    files = config.decompression_map(
        [r.local_path for r in reports[0].results if r.success and r.local_path]
    )
    if files and not cancel_event.is_set():
        pool = DecompressionPool(
            decompression_jobs(files),
            max_workers=config.decompress.max_workers,
            cancel_event=cancel_event,
        )
        reports.append(await pool.run())

    return reports


async def run_decompress(
    files: Dict[str, str],
    max_workers: int,
    cancel_event: threading.Event,
) -> List[BatchReport]:
    pool = DecompressionPool(
        decompression_jobs(files), max_workers=max_workers, cancel_event=cancel_event
    )
    return [await pool.run()]


def write_report(path: Path, reports: List[BatchReport]) -> None:
    payload = [report.model_dump(mode="json") for report in reports]
    path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)

    overrides: Dict = {}
    if args.command == "download" and args.decompress:
        overrides["decompress"] = {"gzip_downloads": True}

    try:
        config = load_config(args.config if args.command == "download" else None, overrides)
    except ConfigurationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    log_level = args.log_level or str(config.logging.level).upper()
    setup_logging(
        stages=STAGES,
        log_dir=args.log_dir or Path(config.logging.log_dir),
        json_format=config.logging.json_format,
        console_level=getattr(logging, log_level, logging.INFO),
        file_logging=config.logging.file_logging and not args.no_file_log,
    )

    metrics_port = (
        args.metrics_port
        if args.metrics_port is not None
        else config.observability.metrics_port
    )
    if metrics_port:
        start_http_server(metrics_port)
        logger.info(f"Metrics server listening on port {metrics_port}")

    try:
        if args.command == "download":
            job = config.to_transfer_job(file_names=args.files)
            make_batch = partial(run_download, config, job)
        else:
            make_batch = partial(run_decompress, parse_pairs(args.pairs), args.workers)
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG

    try:
        reports = run_batch(make_batch, args.command)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return EXIT_INTERRUPTED
    except TransferError as e:
        logger.error(f"Batch aborted: {e}")
        return EXIT_FAILURES

    for report in reports:
        logger.info(report.summary())
        for failure in report.failed:
            logger.warning(
                f"{failure.item}: {failure.error_message}",
                extra={"error_category": failure.error_category},
            )

    if args.json_report:
        write_report(args.json_report, reports)

    return EXIT_OK if all(r.all_succeeded for r in reports) else EXIT_FAILURES


if __name__ == "__main__":
    sys.exit(main())
