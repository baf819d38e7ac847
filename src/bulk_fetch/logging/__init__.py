"""
Structured logging for bulk_fetch.

Import directly from sub-modules:
    from bulk_fetch.logging.setup import get_logger, setup_logging
    from bulk_fetch.logging.utilities import log_item_failure, log_batch_summary
    from bulk_fetch.logging.context import set_log_context
"""
