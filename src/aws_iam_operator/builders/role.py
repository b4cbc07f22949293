"""Builders for role desired state."""

from __future__ import annotations

from typing import Any

from ..adapters.role import RoleDesired
from ..config import OperatorConfig
from ..constants import DEFAULT_MAX_SESSION_DURATION, IRSA_ACTION, IRSA_AUDIENCE, KIND_ASSUME_ROLE_POLICY
from ..exceptions import InvalidSpecError
from ..models.policy import EFFECT_ALLOW, marshal
from ..models.resource import ManagedResource, ResourceReference
from ..resolver import ReferenceResolver
from ..services.aws import is_arn


def build_irsa_statement(oidc_provider_arn: str, namespace: str, service_account: str) -> dict[str, Any]:
    """Build the web identity trust statement for an EKS service account.

    Args:
        oidc_provider_arn: ARN of the cluster's OIDC provider
        namespace: Namespace of the service account
        service_account: Name of the service account

    Returns:
        Statement in declared form
    """
    if not is_arn(oidc_provider_arn) or "/" not in oidc_provider_arn:
        raise InvalidSpecError(f"OIDC provider ARN '{oidc_provider_arn}' is not valid")
    # arn:aws:iam::<account>:oidc-provider/<issuer host and path>
    issuer = oidc_provider_arn.split(":", 5)[5].split("/", 1)[1]
    return {
        "effect": EFFECT_ALLOW,
        "principal": {"Federated": oidc_provider_arn},
        "actions": [IRSA_ACTION],
        "conditions": {
            "StringEquals": {
                f"{issuer}:aud": IRSA_AUDIENCE,
                f"{issuer}:sub": f"system:serviceaccount:{namespace}:{service_account}",
            },
        },
    }


def create_role_desired_from_spec(
    resource: ManagedResource,
    resolver: ReferenceResolver,
    config: OperatorConfig,
) -> tuple[RoleDesired, str]:
    """Create the desired role from a Role object.

    The trust policy comes from the inline ``assumeRolePolicy`` statements or
    from a referenced AssumeRolePolicy object, optionally extended with an
    IRSA statement.

    Returns:
        The desired role and the resourceVersion of the referenced trust
        document (empty when the trust policy is declared inline)

    Raises:
        InvalidSpecError: If the trust policy declaration is ambiguous or missing
    """
    spec = resource.spec
    inline = spec.get("assumeRolePolicy") or []
    ref = ResourceReference.from_spec(spec.get("assumeRolePolicyRef"), resource.namespace)
    add_irsa = bool(spec.get("addIRSAPolicy"))

    if inline and ref is not None:
        raise InvalidSpecError("only one of assumeRolePolicy and assumeRolePolicyRef is allowed")
    if not inline and ref is None and not add_irsa:
        raise InvalidSpecError("one of assumeRolePolicy, assumeRolePolicyRef or addIRSAPolicy is required")

    token = ""
    statements: list[dict[str, Any]] = list(inline)
    if ref is not None:
        statements, token = resolver.resolve_document(KIND_ASSUME_ROLE_POLICY, ref)

    if add_irsa:
        if not config.oidc_provider_arn:
            raise InvalidSpecError("addIRSAPolicy is set but no OIDC provider ARN is configured")
        statements = statements + [build_irsa_statement(config.oidc_provider_arn, resource.namespace, resource.name)]

    max_session_duration = spec.get("maxSessionDuration") or DEFAULT_MAX_SESSION_DURATION
    try:
        max_session_duration = int(max_session_duration)
    except (TypeError, ValueError) as e:
        raise InvalidSpecError(f"maxSessionDuration must be an integer, got '{max_session_duration}'") from e

    desired = RoleDesired(
        name=config.remote_name(spec.get("awsRoleName") or resource.name),
        trust_policy=marshal(statements),
        description=spec.get("description", ""),
        max_session_duration=max_session_duration,
    )
    return desired, token
