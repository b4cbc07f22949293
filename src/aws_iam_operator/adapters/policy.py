"""Adapter for IAM managed policies."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..constants import KIND_POLICY
from ..exceptions import (
    RemoteAlreadyExistsError,
    RemoteConflictError,
    RemoteError,
    RemoteLimitExceededError,
    RemoteNotFoundError,
)
from ..models.policy import PolicyDocument
from ..services.aws import name_from_arn
from ..utils.context import ReconcileContext
from .base import RemoteObjectAdapter


@dataclass
class PolicyDesired:
    """Desired state of a managed policy."""

    name: str
    document: PolicyDocument
    description: str = ""


class PolicyAdapter(RemoteObjectAdapter):
    """Managed policies are updated in place by publishing a new default version."""

    kind = KIND_POLICY
    supports_update = True

    def create(self, desired: PolicyDesired, ctx: ReconcileContext) -> str:
        try:
            return self.call(
                ctx,
                "create_policy",
                self.iam.create_policy,
                desired.name,
                desired.document.to_json(),
                desired.description,
            )
        except RemoteAlreadyExistsError:
            # A previous pass created the policy but failed before recording its ARN
            arn = self.call(ctx, "find_policy", self.iam.find_policy_arn, desired.name)
            if not arn:
                raise
            self.logger.info(f"Adopting existing policy {arn}")
            return self.update(arn, desired, ctx)

    def update(self, arn: str, desired: PolicyDesired, ctx: ReconcileContext) -> str:
        """Publish ``desired.document`` as the new default version.

        When the version limit is reached the oldest non-default version is
        pruned and the publish is retried once. A renamed policy is created
        under the new name before the old one is retired.
        """
        if name_from_arn(arn) != desired.name:
            new_arn = self.create(desired, ctx)
            self.retire(arn, ctx)
            return new_arn

        document = desired.document.to_json()
        try:
            self.call(ctx, "create_policy_version", self.iam.create_policy_version, arn, document)
        except RemoteLimitExceededError:
            self.prune_oldest_version(arn, ctx)
            self.call(ctx, "create_policy_version", self.iam.create_policy_version, arn, document)
        return arn

    def retire(self, arn: str, ctx: ReconcileContext) -> None:
        """Delete a policy replaced by one under a new name.

        Entities still attached to the old policy are detached first; their
        PolicyAttachments attach the new policy on their next pass. Failures
        are logged and leave the old policy in place.
        """
        try:
            try:
                self.delete(arn, ctx)
            except RemoteConflictError:
                entities = self.call(ctx, "list_policy_entities", self.iam.list_policy_entities, arn)
                for target_type, name in entities:
                    self.call(ctx, "detach_policy", self.iam.detach_policy, target_type, name, arn)
                self.delete(arn, ctx)
        except RemoteNotFoundError:
            pass
        except RemoteError as e:
            self.logger.warning(f"Could not delete replaced policy {arn}: {e}")
            return
        self.logger.info(f"Deleted replaced policy {arn}")

    def prune_oldest_version(self, arn: str, ctx: ReconcileContext) -> str | None:
        """Delete the oldest non-default policy version.

        Returns:
            The deleted version id, or None if there was nothing to prune
        """
        versions = self.call(ctx, "list_policy_versions", self.iam.list_policy_versions, arn)
        candidates = [v for v in versions if not v.get("IsDefaultVersion")]
        if not candidates:
            return None
        oldest = min(candidates, key=lambda v: (v.get("CreateDate") is None, v.get("CreateDate"), v["VersionId"]))
        self.call(ctx, "delete_policy_version", self.iam.delete_policy_version, arn, oldest["VersionId"])
        self.logger.info(f"Pruned policy version {oldest['VersionId']} of {arn}")
        return oldest["VersionId"]

    def delete(self, arn: str, ctx: ReconcileContext, recorded: dict[str, Any] | None = None) -> None:
        self.call(ctx, "delete_policy", self.iam.delete_policy, arn)
