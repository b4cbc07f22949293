"""Base class for remote object adapters."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, TypeVar

from .. import metrics
from ..exceptions import RemoteError
from ..services.aws import IAMService
from ..tracing import trace_span
from ..utils.context import ReconcileContext

_T = TypeVar("_T")


class RemoteObjectAdapter(ABC):
    """Translates a desired-state object into remote IAM calls for one kind.

    Subclasses set ``kind`` and ``supports_update``. When ``supports_update``
    is False the controller converges a changed spec by deleting the previous
    remote object and creating a new one.
    """

    kind: str = ""
    supports_update: bool = False

    def __init__(self, iam: IAMService) -> None:
        self.iam = iam
        self.logger = logging.getLogger(f"{__name__}.{self.kind.lower() or 'adapter'}")

    @abstractmethod
    def create(self, desired: Any, ctx: ReconcileContext) -> str:
        """Create the remote object and return its ARN."""

    def update(self, arn: str, desired: Any, ctx: ReconcileContext) -> str:
        """Update the remote object in place and return its (possibly new) ARN."""
        raise NotImplementedError(f"{self.kind} cannot be updated in place")

    @abstractmethod
    def delete(self, arn: str, ctx: ReconcileContext, recorded: dict[str, Any] | None = None) -> None:
        """Delete the remote object.

        Args:
            arn: Identity returned by the last successful create or update
            ctx: Reconcile context
            recorded: Status fields persisted by :meth:`status_fields` on that success
        """

    def status_fields(self, desired: Any) -> dict[str, Any]:
        """Extra status fields persisted after a successful create or update."""
        return {}

    def call(self, ctx: ReconcileContext, operation: str, func: Callable[..., _T], *args: Any, **kwargs: Any) -> _T:
        """Invoke one remote operation, honouring the reconcile context.

        The context is checked before the call so a cancelled or expired pass
        never starts new remote work.
        """
        ctx.check()
        start_time = time.time()
        with trace_span(f"iam.{operation}", kind=self.kind):
            try:
                result = func(*args, **kwargs)
                metrics.remote_operations_total.labels(kind=self.kind, operation=operation, result="success").inc()
                return result
            except RemoteError as e:
                metrics.remote_operations_total.labels(kind=self.kind, operation=operation, result=e.reason).inc()
                raise
            finally:
                self.logger.debug(f"{self.kind} {operation} took {time.time() - start_time:.3f}s")
