"""Log context variables propagated across asyncio tasks and worker threads."""

from contextvars import ContextVar
from typing import Dict, Optional

_domain: ContextVar[str] = ContextVar("domain", default="")
_stage: ContextVar[str] = ContextVar("stage", default="")
_worker_id: ContextVar[str] = ContextVar("worker_id", default="")
_item: ContextVar[str] = ContextVar("item", default="")


def set_log_context(
    domain: Optional[str] = None,
    stage: Optional[str] = None,
    worker_id: Optional[str] = None,
    item: Optional[str] = None,
) -> None:
    """
    Set logging context variables.

    Only the arguments that are not None are changed. Values set inside an
    asyncio task stay local to that task, and asyncio.to_thread copies them
    into the worker thread.
    """
    if domain is not None:
        _domain.set(domain)
    if stage is not None:
        _stage.set(stage)
    if worker_id is not None:
        _worker_id.set(worker_id)
    if item is not None:
        _item.set(item)


def get_log_context() -> Dict[str, str]:
    """Get current logging context."""
    return {
        "domain": _domain.get(),
        "stage": _stage.get(),
        "worker_id": _worker_id.get(),
        "item": _item.get(),
    }


def clear_log_context() -> None:
    """Reset all context variables to empty."""
    _domain.set("")
    _stage.set("")
    _worker_id.set("")
    _item.set("")
