"""
Operation correlation IDs.

Every moderation workflow (cleanup batch, scheduled scan, CLI run) gets a
short ID that is stamped on its log lines and on any domain exception it
raises, so one run can be traced end to end.
"""

import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator

# Context variable for the running operation's correlation ID
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def generate_correlation_id() -> str:
    """
    Generate a short, unique correlation ID.

    Returns:
        8-character hexadecimal string.
    """
    return uuid.uuid4().hex[:8]


def get_correlation_id() -> str:
    """
    Get the current operation's correlation ID.

    Returns:
        The correlation ID for the current context, or empty string if not set.
    """
    return correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set correlation ID for the current context.

    Args:
        correlation_id: The correlation ID to set.
    """
    correlation_id_var.set(correlation_id)


@contextmanager
def operation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation ID for the duration of one operation.

    Reuses the surrounding ID when one is already bound, so nested
    workflows (a scan that triggers a cleanup) share a single trace.

    Args:
        correlation_id: Explicit ID to bind; generated when omitted.

    Yields:
        The correlation ID in effect inside the block.
    """
    current = correlation_id_var.get()
    if correlation_id is None and current:
        yield current
        return

    token = correlation_id_var.set(correlation_id or generate_correlation_id())
    try:
        yield correlation_id_var.get()
    finally:
        correlation_id_var.reset(token)
