"""Logging filters."""

import logging

from bulk_fetch.logging.context import get_log_context


class StageContextFilter(logging.Filter):
    """
    Pass only records emitted while the given stage is active.

    Used to route download and decompress logs into separate files.
    """

    def __init__(self, stage: str):
        super().__init__()
        self.stage = stage

    def filter(self, record: logging.LogRecord) -> bool:
        stage = getattr(record, "stage", None) or get_log_context()["stage"]
        return stage == self.stage
