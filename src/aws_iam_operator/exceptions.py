"""Error taxonomy for the convergence engine.

Every error carries a ``retryable`` flag. The controller catches all of them
at its boundary, writes them into the object's status and tells the caller
whether to requeue.
"""

from __future__ import annotations


class ReconcileError(Exception):
    """Base class for all errors surfaced by a reconcile pass."""

    retryable = True
    reason = "ReconcileError"


class InvalidSpecError(ReconcileError):
    """The declared spec cannot be converged until it is changed."""

    retryable = False
    reason = "InvalidSpec"


class UnresolvedReferenceError(ReconcileError):
    """A referenced object does not exist in the store."""

    reason = "UnresolvedReference"

    def __init__(self, kind: str, name: str, namespace: str) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        super().__init__(f"referenced {kind} '{namespace}/{name}' does not exist")


class NotYetProvisionedError(ReconcileError):
    """A referenced object exists but has no remote identity yet."""

    reason = "NotYetProvisioned"

    def __init__(self, kind: str, name: str, namespace: str) -> None:
        self.kind = kind
        self.name = name
        self.namespace = namespace
        super().__init__(f"referenced {kind} '{namespace}/{name}' has no ARN yet")


class DependencyBlockedError(ReconcileError):
    """Deletion refused because other declared objects still reference the target."""

    reason = "DependencyBlocked"

    def __init__(self, kind: str, name: str, namespace: str, blocker_kind: str, blocker: str) -> None:
        self.blocker_kind = blocker_kind
        self.blocker = blocker
        super().__init__(
            f"cannot delete {kind} '{namespace}/{name}' due to existing {blocker_kind} '{blocker}'"
        )


class ConcurrentModificationError(ReconcileError):
    """An optimistic-concurrency write to the store lost the race."""

    reason = "ConcurrentModification"


class StoreNotFoundError(ReconcileError):
    """An object read or written in the store no longer exists."""

    reason = "NotFound"


class ReconcileCancelledError(ReconcileError):
    """The reconcile deadline passed or the caller cancelled the pass."""

    reason = "Cancelled"


class RemoteError(ReconcileError):
    """Base class for errors returned by the remote identity service."""

    reason = "RemoteError"

    def __init__(self, message: str, code: str | None = None) -> None:
        self.code = code
        super().__init__(message)


class RemoteAlreadyExistsError(RemoteError):
    reason = "AlreadyExists"


class RemoteNotFoundError(RemoteError):
    reason = "NotFound"


class RemoteLimitExceededError(RemoteError):
    reason = "LimitExceeded"


class RemoteTransientError(RemoteError):
    reason = "Transient"


class RemoteInvalidError(RemoteError):
    retryable = False
    reason = "Invalid"


class RemoteConflictError(RemoteError):
    """The remote object is still in use (for example attached policies on delete)."""

    reason = "DeleteConflict"
