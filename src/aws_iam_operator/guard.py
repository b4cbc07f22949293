"""Deletion protection for objects still referenced by other declared objects."""

from __future__ import annotations

import logging
from typing import Any, Iterator

from . import metrics
from .constants import (
    KIND_ASSUME_ROLE_POLICY,
    KIND_GROUP,
    KIND_POLICY,
    KIND_POLICY_ATTACHMENT,
    KIND_ROLE,
    KIND_USER,
    TARGET_TYPES,
)
from .exceptions import DependencyBlockedError
from .models.resource import ManagedResource, ResourceReference
from .services.store import Store

logger = logging.getLogger(__name__)


def _meta(obj: dict[str, Any]) -> tuple[str, str]:
    meta = obj.get("metadata", {})
    return meta.get("name", ""), meta.get("namespace", "default")


def _labels_match(selector: dict[str, str], labels: dict[str, str]) -> bool:
    return all(labels.get(key) == value for key, value in selector.items())


class DependencyGuard:
    """Refuses deletion of objects that other declared objects point at.

    Every check is a full scan of the store. Nothing is locked, so a
    dependant declared right after the scan is not noticed.
    """

    def __init__(self, store: Store) -> None:
        self.store = store

    def check_deletable(self, resource: ManagedResource) -> None:
        """Raise if another declared object references ``resource``.

        Raises:
            DependencyBlockedError: Naming the first blocking object found
        """
        for blocker_kind, blocker in self.blockers(resource):
            metrics.dependency_blocked_total.labels(kind=resource.kind).inc()
            logger.info(
                f"Deletion of {resource.kind} {resource.namespace}/{resource.name} blocked by {blocker_kind} {blocker}"
            )
            raise DependencyBlockedError(resource.kind, resource.name, resource.namespace, blocker_kind, blocker)

    def blockers(self, resource: ManagedResource) -> Iterator[tuple[str, str]]:
        """Yield ``(kind, "namespace/name")`` for every object referencing ``resource``."""
        if resource.kind == KIND_POLICY:
            yield from self._attachments_referencing_policy(resource)
        elif resource.kind in TARGET_TYPES:
            yield from self._attachments_targeting(resource)
            if resource.kind == KIND_USER:
                yield from self._groups_containing(resource)
        elif resource.kind == KIND_ASSUME_ROLE_POLICY:
            yield from self._roles_trusting(resource)

    def _attachments_referencing_policy(self, policy: ManagedResource) -> Iterator[tuple[str, str]]:
        for obj in self.store.list(KIND_POLICY_ATTACHMENT):
            name, namespace = _meta(obj)
            ref = ResourceReference.from_spec((obj.get("spec") or {}).get("policy"), namespace)
            if ref is not None and ref.name == policy.name and ref.namespace == policy.namespace:
                yield KIND_POLICY_ATTACHMENT, f"{namespace}/{name}"

    def _attachments_targeting(self, target: ManagedResource) -> Iterator[tuple[str, str]]:
        for obj in self.store.list(KIND_POLICY_ATTACHMENT):
            name, namespace = _meta(obj)
            data = (obj.get("spec") or {}).get("target") or {}
            if (
                data.get("type") == target.kind
                and data.get("name") == target.name
                and (data.get("namespace") or namespace) == target.namespace
            ):
                yield KIND_POLICY_ATTACHMENT, f"{namespace}/{name}"

    def _groups_containing(self, user: ManagedResource) -> Iterator[tuple[str, str]]:
        for obj in self.store.list(KIND_GROUP):
            name, namespace = _meta(obj)
            spec = obj.get("spec") or {}
            for data in spec.get("users") or []:
                ref = ResourceReference.from_spec(data, namespace)
                if ref is not None and ref.name == user.name and ref.namespace == user.namespace:
                    yield KIND_GROUP, f"{namespace}/{name}"
                    break
            else:
                selector = spec.get("userSelector") or {}
                if selector and _labels_match(selector, user.labels):
                    yield KIND_GROUP, f"{namespace}/{name}"

    def _roles_trusting(self, document: ManagedResource) -> Iterator[tuple[str, str]]:
        for obj in self.store.list(KIND_ROLE):
            name, namespace = _meta(obj)
            ref = ResourceReference.from_spec((obj.get("spec") or {}).get("assumeRolePolicyRef"), namespace)
            if ref is not None and ref.name == document.name and ref.namespace == document.namespace:
                yield KIND_ROLE, f"{namespace}/{name}"
