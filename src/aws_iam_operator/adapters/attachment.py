"""Adapter for policy attachments on roles, users and groups."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..constants import KIND_POLICY_ATTACHMENT
from ..exceptions import InvalidSpecError
from ..services.aws import kind_from_arn, name_from_arn
from ..utils.context import ReconcileContext
from .base import RemoteObjectAdapter


@dataclass
class AttachmentDesired:
    """A policy attached to a target, both addressed by ARN."""

    policy_arn: str
    target_type: str
    target_arn: str

    @property
    def target_name(self) -> str:
        return name_from_arn(self.target_arn)


class PolicyAttachmentAdapter(RemoteObjectAdapter):
    """Attachments have no remote object of their own.

    The identity recorded for an attachment is the target ARN; the attached
    policy ARN is persisted alongside it so the edge that was actually created
    is the one removed, even after the declared references changed.
    """

    kind = KIND_POLICY_ATTACHMENT
    supports_update = False

    def create(self, desired: AttachmentDesired, ctx: ReconcileContext) -> str:
        self.call(
            ctx,
            "attach_policy",
            self.iam.attach_policy,
            desired.target_type,
            desired.target_name,
            desired.policy_arn,
        )
        return desired.target_arn

    def delete(self, arn: str, ctx: ReconcileContext, recorded: dict[str, Any] | None = None) -> None:
        policy_arn = (recorded or {}).get("policyArn")
        if not policy_arn:
            self.logger.warning(f"No attached policy recorded for target {arn}, nothing to detach")
            return
        try:
            target_type = kind_from_arn(arn)
        except ValueError as e:
            raise InvalidSpecError(str(e)) from e
        self.call(ctx, "detach_policy", self.iam.detach_policy, target_type, name_from_arn(arn), policy_arn)

    def status_fields(self, desired: AttachmentDesired) -> dict[str, Any]:
        return {"policyArn": desired.policy_arn}
