"""Builders for user, group and policy attachment desired state."""

from __future__ import annotations

from ..adapters.attachment import AttachmentDesired
from ..adapters.group import GroupDesired
from ..adapters.user import UserDesired
from ..config import OperatorConfig
from ..constants import KIND_GROUP, KIND_POLICY, KIND_ROLE
from ..exceptions import InvalidSpecError
from ..models.resource import ManagedResource, ResourceReference, TargetReference
from ..resolver import ReferenceResolver
from ..services.aws import is_arn, name_from_arn

# Targets converged by delete-then-recreate lose their attachments on recreate
_RECREATED_TARGETS = (KIND_ROLE, KIND_GROUP)


def create_user_desired_from_spec(resource: ManagedResource, config: OperatorConfig) -> tuple[UserDesired, str]:
    """Create the desired user from a User object."""
    spec = resource.spec
    desired = UserDesired(
        name=config.remote_name(resource.name),
        login_profile=bool(spec.get("createLoginProfile")),
        programmatic_access=bool(spec.get("createProgrammaticAccess")),
    )
    return desired, ""


def create_group_desired_from_spec(
    resource: ManagedResource,
    resolver: ReferenceResolver,
    config: OperatorConfig,
) -> tuple[GroupDesired, str]:
    """Create the desired group from a Group object.

    Returns:
        The desired group and a token made of the member ARNs, so adding or
        removing a member reconverges the group
    """
    members = resolver.resolve_members(resource)
    arns = sorted({member.arn for member in members})
    desired = GroupDesired(
        name=config.remote_name(resource.name),
        members=[name_from_arn(arn) for arn in arns],
    )
    return desired, ",".join(arns)


def create_attachment_desired_from_spec(
    resource: ManagedResource,
    resolver: ReferenceResolver,
) -> tuple[AttachmentDesired, str]:
    """Create the desired attachment from a PolicyAttachment object.

    Exactly one of ``policy`` (a reference to a Policy object) and
    ``externalPolicy.arn`` must be set.

    Returns:
        The desired attachment and a token that changes when either side is
        replaced or the target is recreated
    """
    spec = resource.spec
    policy_ref = ResourceReference.from_spec(spec.get("policy"), resource.namespace)
    external_arn = (spec.get("externalPolicy") or {}).get("arn", "")

    if policy_ref is None and not external_arn:
        raise InvalidSpecError("one of policy or externalPolicy must be set")
    if policy_ref is not None and external_arn:
        raise InvalidSpecError("cannot define both policy and externalPolicy")

    target = TargetReference.from_spec(spec.get("target"), resource.namespace)

    if external_arn:
        if not is_arn(external_arn):
            raise InvalidSpecError(f"given ARN '{external_arn}' is not valid")
        policy_arn = external_arn
    else:
        policy_arn = resolver.resolve(KIND_POLICY, policy_ref).arn

    target_identity = resolver.resolve_target(target)
    target_token = target_identity.version if target.type in _RECREATED_TARGETS else target_identity.arn

    desired = AttachmentDesired(
        policy_arn=policy_arn,
        target_type=target.type,
        target_arn=target_identity.arn,
    )
    return desired, f"{policy_arn}|{target.type}:{target_token}"
