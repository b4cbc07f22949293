"""Data models for declared IAM objects."""

from .policy import PolicyDocument, StatementEntry, marshal, normalize_conditions
from .resource import (
    AWSObjectStatus,
    LifecycleState,
    ManagedResource,
    ResourceReference,
    SyncState,
    TargetReference,
)

__all__ = [
    "AWSObjectStatus",
    "LifecycleState",
    "ManagedResource",
    "PolicyDocument",
    "ResourceReference",
    "StatementEntry",
    "SyncState",
    "TargetReference",
    "marshal",
    "normalize_conditions",
]
