"""Resolution of cross-object references into remote identities."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from .constants import KIND_USER, TARGET_TYPES
from .exceptions import InvalidSpecError, NotYetProvisionedError, StoreNotFoundError, UnresolvedReferenceError
from .models.resource import AWSObjectStatus, ManagedResource, ResourceReference, TargetReference
from .services.store import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedIdentity:
    """Remote identity of a referenced object.

    Attributes:
        arn: The referent's remote identity
        version: Token that changes whenever the referent is reconverged or
            recreated remotely, so dependants notice and reconverge too. A
            recreate can keep both generation and ARN, so the create count
            is part of it
        name: Declared name of the referent
        namespace: Declared namespace of the referent
    """

    arn: str
    version: str
    name: str = ""
    namespace: str = ""


class ReferenceResolver:
    """Reads referenced objects from the store on every call.

    Nothing is cached: the referent's remote identity can change between
    passes (for example after a delete-then-recreate).
    """

    def __init__(self, store: Store) -> None:
        self.store = store

    def _get(self, kind: str, name: str, namespace: str) -> dict[str, Any]:
        try:
            return self.store.get(kind, name, namespace)
        except StoreNotFoundError as e:
            raise UnresolvedReferenceError(kind, name, namespace) from e

    def resolve(self, kind: str, ref: ResourceReference) -> ResolvedIdentity:
        """Resolve a reference to a provisioned object.

        Raises:
            UnresolvedReferenceError: The referent does not exist
            NotYetProvisionedError: The referent exists but has no ARN yet
        """
        obj = self._get(kind, ref.name, ref.namespace)
        return self._identity(kind, obj, ref.name, ref.namespace)

    def resolve_target(self, target: TargetReference) -> ResolvedIdentity:
        """Resolve an attachment target of type Role, User or Group."""
        if target.type not in TARGET_TYPES:
            raise InvalidSpecError(f"defined target reference type '{target.type}' is unknown")
        return self.resolve(target.type, ResourceReference(name=target.name, namespace=target.namespace))

    def resolve_document(self, kind: str, ref: ResourceReference) -> tuple[list[dict[str, Any]], str]:
        """Read a store-only policy document.

        Returns:
            The declared statements and the referent's resourceVersion
        """
        obj = self._get(kind, ref.name, ref.namespace)
        statements = (obj.get("spec") or {}).get("statement") or []
        return list(statements), str(obj.get("metadata", {}).get("resourceVersion", ""))

    def resolve_members(self, group: ManagedResource) -> list[ResolvedIdentity]:
        """Resolve the users of a group from explicit references or a label selector.

        Raises:
            InvalidSpecError: Neither or both of users and userSelector are set
        """
        references = group.spec.get("users") or []
        selector = group.spec.get("userSelector") or {}
        if not references and not selector:
            raise InvalidSpecError("neither users nor userSelector defined")
        if references and selector:
            raise InvalidSpecError("both users and userSelector defined")

        members = []
        if references:
            for data in references:
                ref = ResourceReference.from_spec(data, group.namespace)
                if ref is None:
                    raise InvalidSpecError("users entries require a name")
                members.append(self.resolve(KIND_USER, ref))
        else:
            for obj in self.store.list(KIND_USER, label_selector=dict(selector)):
                meta = obj.get("metadata", {})
                members.append(self._identity(KIND_USER, obj, meta.get("name", ""), meta.get("namespace", "default")))

        logger.debug(f"Resolved {len(members)} members for group {group.namespace}/{group.name}")
        return sorted(members, key=lambda m: (m.namespace, m.name))

    @staticmethod
    def _identity(kind: str, obj: dict[str, Any], name: str, namespace: str) -> ResolvedIdentity:
        status = AWSObjectStatus.from_dict(obj.get("status"))
        if not status.provisioned:
            raise NotYetProvisionedError(kind, name, namespace)
        return ResolvedIdentity(
            arn=status.arn,
            version=f"{status.observed_generation}:{status.arn}:{status.create_count}",
            name=name,
            namespace=namespace,
        )
