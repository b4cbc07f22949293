"""Utilities for managing Secrets and ServiceAccounts owned by IAM objects."""

from __future__ import annotations

import logging
import secrets
import string
from typing import Any

from kubernetes import client

from ..constants import ANNOTATION_ROLE_ARN, FIELD_MANAGER, LABEL_MANAGED_BY
from .rate_limit import rate_limit_k8s

logger = logging.getLogger(__name__)

_PASSWORD_SYMBOLS = "!@#$%^&*()_+-=[]{}"


def generate_password(length: int = 24) -> str:
    """Generate a console password that satisfies the default IAM password policy."""
    # One character from each class, the rest drawn from all of them
    classes = [string.ascii_uppercase, string.ascii_lowercase, string.digits, _PASSWORD_SYMBOLS]
    characters = "".join(classes)
    chars = [secrets.choice(cls) for cls in classes]
    chars += [secrets.choice(characters) for _ in range(length - len(chars))]
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)


def create_secret(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
    data: dict[str, str],
    owner_references: list[dict[str, Any]] | None = None,
) -> None:
    """Create an Opaque secret, replacing an existing one with the same name.

    Args:
        api: Kubernetes API client
        namespace: Namespace for the secret
        secret_name: Name of the secret
        data: Secret data (plain strings, sent as stringData)
        owner_references: Owner references for the secret
    """
    secret = client.V1Secret(
        metadata=client.V1ObjectMeta(
            name=secret_name,
            namespace=namespace,
            owner_references=owner_references or [],
            labels={LABEL_MANAGED_BY: FIELD_MANAGER},
        ),
        type="Opaque",
        string_data=data,
    )

    try:
        rate_limit_k8s(api.create_namespaced_secret)(
            namespace=namespace,
            body=secret,
            field_manager=FIELD_MANAGER,
        )
    except client.exceptions.ApiException as e:
        if e.status != 409:
            raise
        rate_limit_k8s(api.replace_namespaced_secret)(
            name=secret_name,
            namespace=namespace,
            body=secret,
            field_manager=FIELD_MANAGER,
        )


def delete_secret(
    api: client.CoreV1Api,
    namespace: str,
    secret_name: str,
) -> bool:
    """Delete a secret.

    Returns:
        True if a secret was deleted, False if it did not exist
    """
    try:
        rate_limit_k8s(api.delete_namespaced_secret)(name=secret_name, namespace=namespace)
        return True
    except client.exceptions.ApiException as e:
        if e.status == 404:
            return False
        raise


def ensure_service_account(
    api: client.CoreV1Api,
    namespace: str,
    name: str,
    role_arn: str,
    labels: dict[str, str] | None = None,
    owner_references: list[dict[str, Any]] | None = None,
) -> None:
    """Create or patch a ServiceAccount annotated with the role ARN for IRSA."""
    service_account = client.V1ServiceAccount(
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            labels=labels or {},
            annotations={ANNOTATION_ROLE_ARN: role_arn},
            owner_references=owner_references or [],
        ),
    )

    try:
        rate_limit_k8s(api.create_namespaced_service_account)(
            namespace=namespace,
            body=service_account,
            field_manager=FIELD_MANAGER,
        )
        logger.info(f"Created ServiceAccount {namespace}/{name} for role {role_arn}")
    except client.exceptions.ApiException as e:
        if e.status != 409:
            raise
        rate_limit_k8s(api.patch_namespaced_service_account)(
            name=name,
            namespace=namespace,
            body={"metadata": {"annotations": {ANNOTATION_ROLE_ARN: role_arn}}},
            field_manager=FIELD_MANAGER,
        )
