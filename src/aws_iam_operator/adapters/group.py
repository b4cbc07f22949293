"""Adapter for IAM groups and their memberships."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..constants import KIND_GROUP
from ..services.aws import name_from_arn
from ..utils.context import ReconcileContext
from .base import RemoteObjectAdapter


@dataclass
class GroupDesired:
    """Desired state of a group.

    Attributes:
        name: Remote group name
        members: Remote user names of the group members
    """

    name: str
    members: list[str] = field(default_factory=list)


class GroupAdapter(RemoteObjectAdapter):
    """Groups are converged by delete-then-recreate, members included."""

    kind = KIND_GROUP
    supports_update = False

    def create(self, desired: GroupDesired, ctx: ReconcileContext) -> str:
        arn = self.call(ctx, "create_group", self.iam.create_group, desired.name)
        for member in desired.members:
            self.call(ctx, "add_user_to_group", self.iam.add_user_to_group, desired.name, member)
        return arn

    def delete(self, arn: str, ctx: ReconcileContext, recorded: dict[str, Any] | None = None) -> None:
        self.call(ctx, "delete_group", self.iam.delete_group, name_from_arn(arn))
