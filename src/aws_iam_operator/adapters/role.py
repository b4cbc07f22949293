"""Adapter for IAM roles."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..constants import DEFAULT_MAX_SESSION_DURATION, KIND_ROLE
from ..models.policy import PolicyDocument
from ..services.aws import name_from_arn
from ..utils.context import ReconcileContext
from .base import RemoteObjectAdapter


@dataclass
class RoleDesired:
    """Desired state of a role."""

    name: str
    trust_policy: PolicyDocument
    description: str = ""
    max_session_duration: int = DEFAULT_MAX_SESSION_DURATION


class RoleAdapter(RemoteObjectAdapter):
    """Roles are converged by delete-then-recreate."""

    kind = KIND_ROLE
    supports_update = False

    def create(self, desired: RoleDesired, ctx: ReconcileContext) -> str:
        return self.call(
            ctx,
            "create_role",
            self.iam.create_role,
            desired.name,
            desired.trust_policy.to_json(),
            desired.description,
            desired.max_session_duration,
        )

    def delete(self, arn: str, ctx: ReconcileContext, recorded: dict[str, Any] | None = None) -> None:
        # IAM refuses to delete a role with attached policies; delete_role detaches them first
        self.call(ctx, "delete_role", self.iam.delete_role, name_from_arn(arn))
