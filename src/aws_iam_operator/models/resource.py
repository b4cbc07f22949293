"""Managed resource model wrapping objects read from the store."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..constants import FINALIZER, TARGET_TYPES
from ..exceptions import InvalidSpecError


class SyncState(str, Enum):
    """Persisted convergence state of a managed resource."""

    SYNC = "SYNC"
    OK = "OK"
    ERROR = "ERROR"


class LifecycleState(str, Enum):
    """Deletion lifecycle of a managed resource."""

    ACTIVE = "Active"
    DELETING = "Deleting"
    GONE = "Gone"


_ALLOWED_TRANSITIONS = {
    LifecycleState.ACTIVE: {LifecycleState.DELETING},
    LifecycleState.DELETING: {LifecycleState.GONE},
    LifecycleState.GONE: set(),
}

_STATUS_FIELDS = {
    "state",
    "message",
    "lastSyncAttempt",
    "arn",
    "observedGeneration",
    "readVersion",
    "createCount",
}


@dataclass
class AWSObjectStatus:
    """Status block embedded in every managed resource.

    Unknown fields found in the persisted status are kept in ``extra`` and
    written back untouched.
    """

    state: SyncState | None = None
    message: str = ""
    last_sync_attempt: str = ""
    arn: str = ""
    observed_generation: int = 0
    read_version: str = ""
    create_count: int = 0
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AWSObjectStatus":
        data = data or {}
        raw_state = data.get("state")
        try:
            state = SyncState(raw_state) if raw_state else None
        except ValueError:
            state = None
        return cls(
            state=state,
            message=data.get("message", "") or "",
            last_sync_attempt=data.get("lastSyncAttempt", "") or "",
            arn=data.get("arn", "") or "",
            observed_generation=int(data.get("observedGeneration", 0) or 0),
            read_version=data.get("readVersion", "") or "",
            create_count=int(data.get("createCount", 0) or 0),
            extra={k: v for k, v in data.items() if k not in _STATUS_FIELDS},
        )

    def to_dict(self) -> dict[str, Any]:
        out = copy.deepcopy(self.extra)
        out.update({
            "state": self.state.value if self.state else "",
            "message": self.message,
            "lastSyncAttempt": self.last_sync_attempt,
            "arn": self.arn,
            "observedGeneration": self.observed_generation,
            "readVersion": self.read_version,
        })
        if self.create_count:
            out["createCount"] = self.create_count
        return out

    @property
    def provisioned(self) -> bool:
        return self.arn != ""


@dataclass(frozen=True)
class ResourceReference:
    """Named pointer to another declared object."""

    name: str
    namespace: str

    @classmethod
    def from_spec(cls, data: dict[str, Any] | None, default_namespace: str) -> "ResourceReference | None":
        if not data or not data.get("name"):
            return None
        return cls(name=data["name"], namespace=data.get("namespace") or default_namespace)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class TargetReference:
    """Named pointer to an attachment target (Role, User or Group)."""

    type: str
    name: str
    namespace: str

    @classmethod
    def from_spec(cls, data: dict[str, Any] | None, default_namespace: str) -> "TargetReference":
        data = data or {}
        target_type = data.get("type", "")
        if target_type not in TARGET_TYPES:
            raise InvalidSpecError(f"defined target reference type '{target_type}' is unknown")
        if not data.get("name"):
            raise InvalidSpecError("target.name is required")
        return cls(
            type=target_type,
            name=data["name"],
            namespace=data.get("namespace") or default_namespace,
        )

    def matches(self, kind: str, name: str, namespace: str) -> bool:
        return self.type == kind and self.name == name and self.namespace == namespace

    def __str__(self) -> str:
        return f"{self.type} {self.namespace}/{self.name}"


class ManagedResource:
    """A declared object whose remote counterpart this operator owns."""

    def __init__(self, kind: str, body: dict[str, Any]) -> None:
        self.kind = kind
        self.body = copy.deepcopy(body)
        self.status = AWSObjectStatus.from_dict(self.body.get("status"))

    @property
    def metadata(self) -> dict[str, Any]:
        return self.body.setdefault("metadata", {})

    @property
    def spec(self) -> dict[str, Any]:
        return self.body.get("spec") or {}

    @property
    def name(self) -> str:
        return self.metadata.get("name", "")

    @property
    def namespace(self) -> str:
        return self.metadata.get("namespace", "default")

    @property
    def uid(self) -> str:
        return self.metadata.get("uid", "")

    @property
    def generation(self) -> int:
        return int(self.metadata.get("generation", 0) or 0)

    @property
    def resource_version(self) -> str:
        return self.metadata.get("resourceVersion", "")

    @property
    def labels(self) -> dict[str, str]:
        return self.metadata.get("labels") or {}

    @property
    def finalizers(self) -> list[str]:
        return list(self.metadata.get("finalizers") or [])

    @property
    def deletion_requested(self) -> bool:
        return bool(self.metadata.get("deletionTimestamp"))

    @property
    def lifecycle(self) -> LifecycleState:
        if not self.deletion_requested:
            return LifecycleState.ACTIVE
        if self.has_finalizer():
            return LifecycleState.DELETING
        return LifecycleState.GONE

    def transition(self, target: LifecycleState) -> None:
        """Move the lifecycle to ``target``, updating the finalizer set.

        Raises:
            ValueError: If the transition is not allowed from the current state
        """
        current = self.lifecycle
        if target not in _ALLOWED_TRANSITIONS[current]:
            raise ValueError(f"illegal lifecycle transition {current.value} -> {target.value}")
        if target is LifecycleState.GONE:
            self.remove_finalizer()

    def has_finalizer(self) -> bool:
        return FINALIZER in self.finalizers

    def add_finalizer(self) -> bool:
        """Add the operator finalizer; returns True when the set changed."""
        if self.has_finalizer():
            return False
        self.metadata["finalizers"] = self.finalizers + [FINALIZER]
        return True

    def remove_finalizer(self) -> bool:
        """Remove the operator finalizer; returns True when the set changed."""
        if not self.has_finalizer():
            return False
        self.metadata["finalizers"] = [f for f in self.finalizers if f != FINALIZER]
        return True

    def owner_reference(self, api_version: str) -> dict[str, Any]:
        return {
            "apiVersion": api_version,
            "kind": self.kind,
            "name": self.name,
            "uid": self.uid,
            "controller": True,
            "blockOwnerDeletion": True,
        }

    def to_body(self) -> dict[str, Any]:
        body = copy.deepcopy(self.body)
        body["status"] = self.status.to_dict()
        return body

    def __repr__(self) -> str:
        return f"<{self.kind} {self.namespace}/{self.name} gen={self.generation}>"
