"""
Log helpers shared by the download and decompression pools.

Failure records carry the same error fields as the item's ItemResult, so a
console line can be matched to its entry in the JSON report.
"""

import logging
from typing import Any, Dict

from bulk_fetch.errors import TransferError, classify_exception
from bulk_fetch.schemas.results import BatchReport

MAX_ERROR_MESSAGE_LENGTH = 500


def error_fields(exc: BaseException) -> Dict[str, Any]:
    """error_category, error_type and a truncated error_message for exc."""
    message = str(exc)
    if len(message) > MAX_ERROR_MESSAGE_LENGTH:
        message = message[: MAX_ERROR_MESSAGE_LENGTH - 3] + "..."
    return {
        "error_category": classify_exception(exc).value,
        "error_type": type(exc).__name__,
        "error_message": message,
    }


def log_item_failure(
    logger: logging.Logger,
    exc: BaseException,
    msg: str,
    **fields: Any,
) -> None:
    """
    Log one failed item.

    A TransferError is an expected outcome and is logged at WARNING without a
    traceback. Anything else is a bug and is logged at ERROR with one.

    Example:
        except TransferError as e:
            log_item_failure(logger, e, "Download failed", item=name)
    """
    extra = {**fields, **error_fields(exc)}
    if isinstance(exc, TransferError):
        logger.warning(msg, extra=extra)
    else:
        logger.error(msg, exc_info=exc, extra=extra)


def log_batch_summary(logger: logging.Logger, report: BatchReport) -> None:
    """Log the outcome counts of a finished batch."""
    logger.info(
        f"{report.operation.capitalize()} batch complete",
        extra={
            "batch_size": report.total,
            "records_succeeded": len(report.succeeded),
            "records_failed": len(report.failed),
            "records_cancelled": len(report.cancelled),
        },
    )
