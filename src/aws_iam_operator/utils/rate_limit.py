"""Rate limiting utilities for API calls."""

from __future__ import annotations

import os
import threading
import time
from functools import wraps
from typing import Any, Callable, TypeVar

from kubernetes.client.exceptions import ApiException

from .. import metrics

_F = TypeVar("_F", bound=Callable[..., Any])

# Rate limit configuration
_K8S_RATE_LIMIT_PER_SECOND = float(os.getenv("K8S_RATE_LIMIT_PER_SECOND", "10.0"))
_IAM_RATE_LIMIT_PER_SECOND = float(os.getenv("IAM_RATE_LIMIT_PER_SECOND", "5.0"))

# Track last call times
_k8s_last_call_time: float = 0.0
_iam_last_call_time: float = 0.0
_lock = threading.Lock()


def rate_limit_k8s(func: _F) -> _F:
    """Decorator to rate limit Kubernetes API calls.

    Enforces a minimum interval between calls so concurrent handler workers
    do not overwhelm the API server.
    """
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        global _k8s_last_call_time
        with _lock:
            min_interval = 1.0 / _K8S_RATE_LIMIT_PER_SECOND
            time_since_last_call = time.time() - _k8s_last_call_time
            if time_since_last_call < min_interval:
                time.sleep(min_interval - time_since_last_call)
            _k8s_last_call_time = time.time()
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def rate_limit_iam(func: _F) -> _F:
    """Decorator to rate limit AWS IAM API calls."""
    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        global _iam_last_call_time
        with _lock:
            min_interval = 1.0 / _IAM_RATE_LIMIT_PER_SECOND
            time_since_last_call = time.time() - _iam_last_call_time
            if time_since_last_call < min_interval:
                time.sleep(min_interval - time_since_last_call)
            _iam_last_call_time = time.time()
        return func(*args, **kwargs)

    return wrapper  # type: ignore


def is_rate_limit_error(e: Exception) -> bool:
    """Check if a Kubernetes API exception is a rate limit error.

    Kubernetes API rate limit errors typically return 429, or 503 mentioning
    the rate limit.
    """
    if not isinstance(e, ApiException):
        return False
    if e.status == 429 or (e.status == 503 and "rate limit" in str(e).lower()):
        metrics.rate_limit_hits_total.labels(api_type="k8s").inc()
        return True
    return False
