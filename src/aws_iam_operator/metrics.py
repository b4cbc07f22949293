"""Prometheus metrics for the AWS IAM Operator."""

from prometheus_client import Counter, Histogram

# Reconciliation metrics
reconcile_total = Counter(
    "aws_iam_operator_reconcile_total",
    "Total number of reconciliations",
    ["kind", "result"],
)

reconcile_duration_seconds = Histogram(
    "aws_iam_operator_reconcile_duration_seconds",
    "Duration of reconciliations in seconds",
    ["kind"],
    buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

error_total = Counter(
    "aws_iam_operator_error_total",
    "Total number of reconcile errors by type",
    ["kind", "error_type"],
)

resource_status_total = Counter(
    "aws_iam_operator_resource_status_total",
    "Resource status transitions",
    ["kind", "status"],
)

# Remote IAM operation metrics
remote_operations_total = Counter(
    "aws_iam_operator_remote_operations_total",
    "Total number of remote IAM operations performed by adapters",
    ["kind", "operation", "result"],
)

dependency_blocked_total = Counter(
    "aws_iam_operator_dependency_blocked_total",
    "Deletions refused because other objects still reference the target",
    ["kind"],
)

# API call metrics
api_call_total = Counter(
    "aws_iam_operator_api_call_total",
    "Total number of API calls",
    ["api_type", "operation", "result"],
)

api_call_duration_seconds = Histogram(
    "aws_iam_operator_api_call_duration_seconds",
    "Duration of API calls in seconds",
    ["api_type", "operation"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0],
)

rate_limit_hits_total = Counter(
    "aws_iam_operator_rate_limit_hits_total",
    "Total number of rate limit hits",
    ["api_type"],
)
