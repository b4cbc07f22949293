"""Builders for managed policy desired state."""

from __future__ import annotations

from typing import Any

from ..adapters.policy import PolicyDesired
from ..config import OperatorConfig
from ..exceptions import InvalidSpecError
from ..models.policy import PolicyDocument, marshal
from ..models.resource import ManagedResource


def build_statements(spec: dict[str, Any], field: str = "statement") -> PolicyDocument:
    """Marshal the declared statement list found under ``field``.

    Raises:
        InvalidSpecError: If the statement list is missing or malformed
    """
    statements = spec.get(field)
    if not statements:
        raise InvalidSpecError(f"{field} must contain at least one entry")
    if not isinstance(statements, list) or not all(isinstance(s, dict) for s in statements):
        raise InvalidSpecError(f"{field} must be a list of statement objects")
    return marshal(statements)


def create_policy_desired_from_spec(resource: ManagedResource, config: OperatorConfig) -> tuple[PolicyDesired, str]:
    """Create the desired managed policy from a Policy object.

    Returns:
        The desired policy and its reference version token (always empty,
        a policy references nothing)
    """
    spec = resource.spec
    desired = PolicyDesired(
        name=config.remote_name(spec.get("awsPolicyName") or resource.name),
        document=build_statements(spec),
        description=spec.get("description", ""),
    )
    return desired, ""
