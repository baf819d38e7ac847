"""
Per-item results and batch reports.

Every item a pool takes on produces exactly one ItemResult; the pool returns
all of them in a BatchReport once the batch has drained.
"""

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, computed_field, field_serializer, field_validator

from bulk_fetch.errors import ErrorCategory

ItemStatus = Literal["success", "failed", "cancelled"]


class ItemResult(BaseModel):
    """Outcome of one download or decompression item.

    Attributes:
        item: Remote file name (download) or source path (decompress)
        status: success, failed or cancelled
        local_path: File written for this item (None if nothing was kept)
        bytes_written: Number of bytes written locally (None if failed)
        error_message: Error description if failed (truncated to 500 chars)
        error_category: Error classification (transient, auth, permanent, ...)
        error_type: Exception class name if failed
        processing_time_ms: Time spent on the item in milliseconds
        completed_at: Timestamp when the item finished
    """

    item: str = Field(..., min_length=1, description="Item identifier")
    status: ItemStatus
    local_path: Optional[str] = None
    bytes_written: Optional[int] = Field(default=None, ge=0)
    error_message: Optional[str] = None
    error_category: Optional[str] = None
    error_type: Optional[str] = None
    processing_time_ms: int = Field(default=0, ge=0)
    completed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("error_message")
    @classmethod
    def truncate_error_message(cls, v: Optional[str]) -> Optional[str]:
        """Truncate error message to prevent huge reports."""
        if v and len(v) > 500:
            return v[:497] + "..."
        return v

    @field_serializer("completed_at")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()

    @property
    def success(self) -> bool:
        return self.status == "success"

    @classmethod
    def succeeded(
        cls,
        item: str,
        local_path: str,
        bytes_written: int,
        processing_time_ms: int = 0,
    ) -> "ItemResult":
        return cls(
            item=item,
            status="success",
            local_path=local_path,
            bytes_written=bytes_written,
            processing_time_ms=processing_time_ms,
        )

    @classmethod
    def from_error(
        cls,
        item: str,
        error: BaseException,
        processing_time_ms: int = 0,
    ) -> "ItemResult":
        """Build a failed (or cancelled) result from the exception that ended the item."""
        category = getattr(error, "category", ErrorCategory.UNKNOWN)
        status: ItemStatus = (
            "cancelled" if category == ErrorCategory.CANCELLED else "failed"
        )
        return cls(
            item=item,
            status=status,
            error_message=str(error) or type(error).__name__,
            error_category=category.value,
            error_type=type(error).__name__,
            processing_time_ms=processing_time_ms,
        )


class BatchReport(BaseModel):
    """Aggregate outcome of a download or decompression batch."""

    operation: Literal["download", "decompress"]
    total: int = Field(..., ge=0, description="Number of items submitted")
    results: List[ItemResult] = Field(default_factory=list)

    @computed_field
    @property
    def succeeded(self) -> List[str]:
        return [r.item for r in self.results if r.status == "success"]

    @property
    def failed(self) -> List[ItemResult]:
        return [r for r in self.results if r.status == "failed"]

    @property
    def cancelled(self) -> List[str]:
        return [r.item for r in self.results if r.status == "cancelled"]

    @computed_field
    @property
    def all_succeeded(self) -> bool:
        return len(self.succeeded) == self.total

    def result_for(self, item: str) -> Optional[ItemResult]:
        for result in self.results:
            if result.item == item:
                return result
        return None

    def summary(self) -> str:
        return (
            f"{self.operation}: {len(self.succeeded)}/{self.total} succeeded, "
            f"{len(self.failed)} failed, {len(self.cancelled)} cancelled"
        )
