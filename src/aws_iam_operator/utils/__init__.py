"""Utility functions for the AWS IAM Operator."""

from .conditions import set_ready_condition, update_condition
from .context import (
    ReconcileContext,
    get_context_dict,
    get_correlation_id,
    propagate_trace_context,
    with_correlation_id,
)
from .errors import sanitize_exception
from .events import emit_event
from .rate_limit import is_rate_limit_error, rate_limit_iam, rate_limit_k8s

__all__ = [
    "ReconcileContext",
    "emit_event",
    "get_context_dict",
    "get_correlation_id",
    "is_rate_limit_error",
    "propagate_trace_context",
    "rate_limit_iam",
    "rate_limit_k8s",
    "sanitize_exception",
    "set_ready_condition",
    "update_condition",
    "with_correlation_id",
]
