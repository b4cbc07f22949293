"""Reconcile context, correlation IDs and trace context propagation."""

from __future__ import annotations

import contextvars
import threading
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from opentelemetry import trace

from ..exceptions import ReconcileCancelledError

# Context variable for storing correlation ID
correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


class ReconcileContext:
    """Deadline and cancellation carried by a single reconcile pass.

    Adapters call :meth:`check` before every remote call so a cancelled or
    expired pass stops promptly.
    """

    def __init__(
        self,
        timeout: float | None = None,
        stopped: threading.Event | Any | None = None,
    ) -> None:
        self.deadline = time.monotonic() + timeout if timeout else None
        self._stopped = stopped
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        if self._cancelled.is_set():
            return True
        # kopf passes a DaemonStopped flag that is truthy once the operator stops
        return bool(self._stopped)

    def remaining(self) -> float | None:
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """Raise if the pass was cancelled or its deadline passed.

        Raises:
            ReconcileCancelledError: When the pass must stop
        """
        if self.cancelled:
            raise ReconcileCancelledError("reconcile cancelled")
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise ReconcileCancelledError("reconcile deadline exceeded")


def new_correlation_id() -> str:
    return uuid.uuid4().hex[:16]


def get_correlation_id() -> str | None:
    """Get the correlation ID from the current context."""
    return correlation_id.get()


@contextmanager
def with_correlation_id(corr_id: str) -> Iterator[str]:
    """Context manager to set a correlation ID for the duration of a block.

    Args:
        corr_id: Correlation ID to use

    Yields:
        The correlation ID
    """
    token = correlation_id.set(corr_id)
    try:
        yield corr_id
    finally:
        correlation_id.reset(token)


def get_context_dict(additional: dict[str, Any] | None = None) -> dict[str, Any]:
    """Get a dictionary of context values.

    Args:
        additional: Additional key-value pairs to include

    Returns:
        Dictionary with context values including correlation_id and trace ids
    """
    ctx: dict[str, Any] = {}

    corr_id = get_correlation_id()
    if corr_id:
        ctx["correlation_id"] = corr_id

    trace_ctx = propagate_trace_context()
    if trace_ctx:
        ctx.update(trace_ctx)

    if additional:
        ctx.update(additional)

    return ctx


def propagate_trace_context() -> dict[str, Any] | None:
    """Get OpenTelemetry trace context for propagation.

    Returns:
        Dictionary with trace and span ids if a span is recording, None otherwise
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        span_context = span.get_span_context()
        if span_context.is_valid:
            return {
                "trace_id": format(span_context.trace_id, "032x"),
                "span_id": format(span_context.span_id, "016x"),
            }
    return None
