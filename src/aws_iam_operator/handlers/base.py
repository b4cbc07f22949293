"""Base handler class with common functionality for all CRD handlers."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from ..controller import ConvergenceController, ReconcileFailed
from ..logging import CONTROLLER_NAME, log_resource_event
from ..utils.context import ReconcileContext
from ..utils.errors import sanitize_dict, sanitize_exception

# Lower bound for kopf retry delays in seconds
MIN_RETRY_DELAY = 1.0


class BaseHandler:
    """Adapts kopf handler calls to :meth:`ConvergenceController.reconcile`.

    kopf serializes handlers for one object and runs different objects
    concurrently, which is exactly the scheduling the controller expects.
    """

    def __init__(self, kind: str, controller: ConvergenceController):
        """Initialize base handler.

        Args:
            kind: The declared kind (e.g., "Role", "Policy")
            controller: The convergence controller shared by all kinds
        """
        self.kind = kind
        self.controller = controller
        self.logger = logging.getLogger(__name__)

    def _get_resource_context(self, meta: dict[str, Any]) -> dict[str, Any]:
        """Extract common resource context from metadata.

        Args:
            meta: Kubernetes resource metadata

        Returns:
            Dictionary with resource context fields
        """
        return {
            "name": meta.get("name", "unknown"),
            "namespace": meta.get("namespace", "default"),
            "uid": meta.get("uid", "unknown"),
        }

    def log_info(
        self,
        meta: dict[str, Any],
        message: str,
        event: str = "info",
        reason: str = "Info",
        **kwargs: Any,
    ) -> None:
        """Log an info-level structured log message."""
        ctx = self._get_resource_context(meta)
        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            **kwargs,
        )

    def log_error(
        self,
        meta: dict[str, Any],
        message: str,
        error: Exception | None = None,
        event: str = "error",
        reason: str = "Error",
        **kwargs: Any,
    ) -> None:
        """Log an error-level structured log message.

        Args:
            meta: Kubernetes resource metadata
            message: Log message
            error: Optional exception to include sanitized error details
            event: Event type (default: "error")
            reason: Reason for the event (default: "Error")
            **kwargs: Additional fields to include in the log
        """
        ctx = self._get_resource_context(meta)
        log_data = sanitize_dict(kwargs)

        if error is not None:
            log_data["error"] = sanitize_exception(error)
            log_data["error_type"] = type(error).__name__

        log_resource_event(
            self.logger,
            controller=CONTROLLER_NAME,
            resource_kind=self.kind,
            resource_name=ctx["name"],
            namespace=ctx["namespace"],
            uid=ctx["uid"],
            event=event,
            reason=reason,
            message=message,
            level=logging.ERROR,
            **log_data,
        )

    def reconcile(self, meta: dict[str, Any], stopped: Any = None) -> None:
        """Run one reconcile pass and translate its failure for kopf.

        Args:
            meta: Kubernetes resource metadata
            stopped: kopf stop flag, cancels the pass when the operator stops

        Raises:
            kopf.TemporaryError: For retryable failures, delayed by the requested requeue
            kopf.PermanentError: For failures that only a spec change can fix
        """
        ctx = self._get_resource_context(meta)
        context = ReconcileContext(timeout=self.controller.config.reconcile_timeout, stopped=stopped)
        try:
            self.controller.reconcile(self.kind, ctx["name"], ctx["namespace"], context)
        except ReconcileFailed as e:
            message = sanitize_exception(e.error)
            if e.retryable:
                self.log_info(meta, f"Reconcile will be retried: {message}", event="requeue", reason="Requeue")
                raise kopf.TemporaryError(message, delay=max(e.requeue_after or 0.0, MIN_RETRY_DELAY)) from e
            self.log_error(meta, "Reconcile failed permanently", error=e.error, reason="ReconcileFailed")
            raise kopf.PermanentError(message) from e
