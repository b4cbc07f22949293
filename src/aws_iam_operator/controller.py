"""Generic convergence controller shared by every declared kind."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from . import metrics
from .config import OperatorConfig
from .constants import COND_DEPENDENCY_BLOCKED, COND_REFERENCES_NOT_READY, MESSAGE_RECONCILED, MESSAGE_SYNCING
from .exceptions import (
    ConcurrentModificationError,
    DependencyBlockedError,
    NotYetProvisionedError,
    ReconcileCancelledError,
    ReconcileError,
    RemoteNotFoundError,
    StoreNotFoundError,
    UnresolvedReferenceError,
)
from .guard import DependencyGuard
from .kinds import DesiredState, KindDefinition
from .logging import CONTROLLER_NAME, log_resource_event
from .models.resource import LifecycleState, ManagedResource, SyncState
from .resolver import ReferenceResolver
from .services.store import Store
from .tracing import trace_span
from .utils import events
from .utils.conditions import (
    remove_condition,
    set_dependency_blocked_condition,
    set_ready_condition,
    set_references_not_ready_condition,
)
from .utils.context import ReconcileContext, new_correlation_id, with_correlation_id
from .utils.errors import sanitize_exception

logger = logging.getLogger(__name__)

MESSAGE_DELETED = "deleted"


@dataclass
class ReconcileResult:
    """Outcome of a successful pass.

    Attributes:
        requeue_after: Seconds until the object should be reconciled again, or
            None when nothing further is needed
        arn: Remote identity after the pass
    """

    requeue_after: float | None = None
    arn: str = ""


class ReconcileFailed(Exception):
    """A pass failed after recording the failure (where allowed) in status."""

    def __init__(self, error: Exception, requeue_after: float | None, retryable: bool) -> None:
        self.error = error
        self.requeue_after = requeue_after
        self.retryable = retryable
        super().__init__(str(error))


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ConvergenceController:
    """Drives one declared object per call through the reconcile state machine.

    The same controller serves every kind; kind specifics come from the
    :class:`KindDefinition` registered for it. The object record in the store
    is the only shared mutable state and every write to it is conditioned on
    the resourceVersion that was read.
    """

    def __init__(
        self,
        store: Store,
        kinds: dict[str, KindDefinition],
        config: OperatorConfig,
        resolver: ReferenceResolver | None = None,
        guard: DependencyGuard | None = None,
    ) -> None:
        self.store = store
        self.kinds = kinds
        self.config = config
        self.resolver = resolver or ReferenceResolver(store)
        self.guard = guard or DependencyGuard(store)

    def reconcile(
        self,
        kind: str,
        name: str,
        namespace: str,
        ctx: ReconcileContext | None = None,
    ) -> ReconcileResult:
        """Converge one object.

        Args:
            kind: Declared kind
            name: Object name
            namespace: Object namespace
            ctx: Deadline and cancellation for the pass

        Returns:
            The requeue request of a successful pass

        Raises:
            ReconcileFailed: The pass failed; ``requeue_after`` says when to retry
        """
        definition = self.kinds[kind]
        ctx = ctx or ReconcileContext(timeout=self.config.reconcile_timeout)

        start_time = time.time()
        with with_correlation_id(new_correlation_id()), trace_span(
            "reconcile", kind=kind, attributes={"resource.name": name, "resource.namespace": namespace}
        ):
            try:
                result = self._reconcile(definition, name, namespace, ctx)
                metrics.reconcile_total.labels(kind=kind, result="success").inc()
                return result
            except ConcurrentModificationError as e:
                # Another writer won; start over from a fresh read without touching status
                logger.info(f"{kind} {namespace}/{name} was modified concurrently, retrying")
                metrics.reconcile_total.labels(kind=kind, result="conflict").inc()
                raise ReconcileFailed(e, 0.0, True) from e
            except ReconcileCancelledError as e:
                logger.info(f"{kind} {namespace}/{name} reconcile cancelled: {e}")
                metrics.reconcile_total.labels(kind=kind, result="cancelled").inc()
                raise ReconcileFailed(e, self.config.error_requeue_interval, True) from e
            except ReconcileFailed as e:
                metrics.reconcile_total.labels(kind=kind, result="error").inc()
                metrics.error_total.labels(kind=kind, error_type=type(e.error).__name__).inc()
                raise
            finally:
                metrics.reconcile_duration_seconds.labels(kind=kind).observe(time.time() - start_time)

    def _reconcile(
        self,
        definition: KindDefinition,
        name: str,
        namespace: str,
        ctx: ReconcileContext,
    ) -> ReconcileResult:
        ctx.check()
        try:
            body = self.store.get(definition.kind, name, namespace)
        except StoreNotFoundError:
            logger.debug(f"{definition.kind} {namespace}/{name} no longer exists")
            return ReconcileResult()

        resource = ManagedResource(definition.kind, body)
        lifecycle = resource.lifecycle
        if lifecycle is LifecycleState.GONE:
            return ReconcileResult()
        if lifecycle is LifecycleState.DELETING:
            return self._delete(definition, resource, ctx)
        return self._converge(definition, resource, ctx)

    def _converge(self, definition: KindDefinition, resource: ManagedResource, ctx: ReconcileContext) -> ReconcileResult:
        status = resource.status
        try:
            desired = definition.build(resource, self.resolver)
        except (NotYetProvisionedError, UnresolvedReferenceError) as e:
            self._log(resource, "references_not_ready", "ReferencesNotReady", str(e), logging.WARNING)
            events.emit_references_not_ready(resource.body, str(e))
            raise self._fail(resource, e)
        except ReconcileError as e:
            raise self._fail(resource, e)

        if (
            status.observed_generation == resource.generation
            and status.state is SyncState.OK
            and status.read_version == desired.token
            and resource.has_finalizer()
        ):
            return ReconcileResult(self.config.resync_interval, status.arn)

        self._log(resource, "reconcile_started", "ReconcileStarted", "Reconciliation started")
        events.emit_reconcile_started(resource.body)

        if resource.add_finalizer():
            self._write(resource)

        ctx.check()
        status.state = SyncState.SYNC
        status.message = MESSAGE_SYNCING
        status.last_sync_attempt = _now()
        self._write_status(resource)

        try:
            arn = self._apply(definition, resource, desired, ctx)
        except ReconcileCancelledError:
            raise
        except ReconcileError as e:
            raise self._fail(resource, e)

        # A successful create replaces the identity even if a hook fails below
        status.arn = arn
        try:
            definition.after_converge(resource, desired, arn, ctx)
        except ReconcileCancelledError:
            raise
        except ReconcileError as e:
            raise self._fail(resource, e)

        if definition.adapter is not None:
            status.extra.update(definition.adapter.status_fields(desired.value))
        status.state = SyncState.OK
        status.message = MESSAGE_RECONCILED
        status.observed_generation = resource.generation
        status.read_version = desired.token
        status.last_sync_attempt = _now()
        conditions = status.extra.get("conditions", [])
        conditions = remove_condition(conditions, COND_REFERENCES_NOT_READY)
        conditions = remove_condition(conditions, COND_DEPENDENCY_BLOCKED)
        status.extra["conditions"] = set_ready_condition(
            conditions, True, MESSAGE_RECONCILED, resource.generation
        )
        self._write_status(resource)

        metrics.resource_status_total.labels(kind=resource.kind, status="ready").inc()
        self._log(resource, "reconcile_succeeded", "ReconcileSucceeded", MESSAGE_RECONCILED, arn=arn)
        events.emit_reconcile_succeeded(resource.body, arn or f"{resource.namespace}/{resource.name}")
        return ReconcileResult(self.config.resync_interval, arn)

    def _apply(
        self,
        definition: KindDefinition,
        resource: ManagedResource,
        desired: DesiredState,
        ctx: ReconcileContext,
    ) -> str:
        """Run the remote operation and return the resulting identity."""
        adapter = definition.adapter
        if adapter is None:
            return ""

        status = resource.status
        with trace_span("converge", kind=resource.kind):
            if status.arn and adapter.supports_update:
                try:
                    arn = adapter.update(status.arn, desired.value, ctx)
                    events.emit_remote_updated(resource.body, arn)
                    return arn
                except RemoteNotFoundError:
                    logger.warning(f"{resource.kind} {status.arn} disappeared remotely, recreating")
            elif status.arn:
                # No in-place update: remove what the last success created, then recreate
                self._remote_delete(definition, resource, ctx)

            arn = adapter.create(desired.value, ctx)
            # Dependants see the recreate through the count even when generation and ARN are unchanged
            status.create_count += 1
            events.emit_remote_created(resource.body, arn)
            return arn

    def _remote_delete(self, definition: KindDefinition, resource: ManagedResource, ctx: ReconcileContext) -> None:
        status = resource.status
        try:
            definition.adapter.delete(status.arn, ctx, recorded=status.extra)
        except RemoteNotFoundError:
            logger.info(f"{resource.kind} {status.arn} already gone")
        events.emit_remote_deleted(resource.body, status.arn)

    def _delete(self, definition: KindDefinition, resource: ManagedResource, ctx: ReconcileContext) -> ReconcileResult:
        status = resource.status
        try:
            self.guard.check_deletable(resource)
            if definition.adapter is not None and status.arn:
                self._remote_delete(definition, resource, ctx)
        except DependencyBlockedError as e:
            events.emit_deletion_blocked(resource.body, str(e))
            raise self._fail(resource, e)
        except ReconcileCancelledError:
            raise
        except ReconcileError as e:
            raise self._fail(resource, e)

        definition.after_delete(resource)

        try:
            if status.arn:
                status.arn = ""
                status.state = SyncState.OK
                status.message = MESSAGE_DELETED
                status.last_sync_attempt = _now()
                self._write_status(resource)
            resource.transition(LifecycleState.GONE)
            self._write(resource)
        except StoreNotFoundError:
            pass

        self._log(resource, "deleted", "Deleted", f"{resource.kind} deleted")
        return ReconcileResult()

    def _fail(self, resource: ManagedResource, error: ReconcileError) -> ReconcileFailed:
        """Record ``error`` in status and build the failure to raise.

        The ARN is never cleared here.
        """
        message = sanitize_exception(error)
        status = resource.status
        status.state = SyncState.ERROR
        status.message = message
        status.last_sync_attempt = _now()

        conditions = status.extra.get("conditions", [])
        if isinstance(error, (NotYetProvisionedError, UnresolvedReferenceError)):
            conditions = set_references_not_ready_condition(conditions, message, resource.generation)
        elif isinstance(error, DependencyBlockedError):
            conditions = set_dependency_blocked_condition(conditions, message, resource.generation)
        status.extra["conditions"] = set_ready_condition(
            conditions, False, message, resource.generation, reason=error.reason
        )

        metrics.resource_status_total.labels(kind=resource.kind, status="error").inc()
        self._log(resource, "reconcile_failed", error.reason, message, logging.ERROR, error_type=type(error).__name__)
        events.emit_reconcile_failed(resource.body, message)

        try:
            self._write_status(resource)
        except StoreNotFoundError:
            logger.debug(f"{resource.kind} {resource.namespace}/{resource.name} vanished before status write")

        requeue_after = self.config.error_requeue_interval if error.retryable else None
        return ReconcileFailed(error, requeue_after, error.retryable)

    def _write(self, resource: ManagedResource) -> None:
        body = self.store.update(resource.kind, resource.to_body())
        self._refresh(resource, body)

    def _write_status(self, resource: ManagedResource) -> None:
        body = self.store.update_status(resource.kind, resource.to_body())
        self._refresh(resource, body)

    @staticmethod
    def _refresh(resource: ManagedResource, body: dict[str, Any] | None) -> None:
        if body:
            version = body.get("metadata", {}).get("resourceVersion")
            if version:
                resource.metadata["resourceVersion"] = version

    def _log(
        self,
        resource: ManagedResource,
        event: str,
        reason: str,
        message: str,
        level: int = logging.INFO,
        **kwargs: Any,
    ) -> None:
        log_resource_event(
            logger,
            controller=CONTROLLER_NAME,
            resource_kind=resource.kind,
            resource_name=resource.name,
            namespace=resource.namespace,
            uid=resource.uid,
            event=event,
            reason=reason,
            message=message,
            level=level,
            **kwargs,
        )
