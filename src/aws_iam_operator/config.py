"""Operator configuration loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping


def _float_env(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got '{raw}'") from e
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero, got '{raw}'")
    return value


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from e
    if value <= 0:
        raise ValueError(f"{name} must be greater than zero, got '{raw}'")
    return value


@dataclass(frozen=True)
class OperatorConfig:
    """Runtime configuration threaded into the IAM client, adapters and controller.

    Attributes:
        region: AWS region used for the IAM session
        iam_endpoint: Optional IAM endpoint URL override
        resource_prefix: Prefix prepended to every remote object name
        oidc_provider_arn: OIDC provider ARN used for IRSA trust statements
        resync_interval: Seconds between periodic reconciles of a converged object
        error_requeue_interval: Seconds before a failed reconcile is retried
        reconcile_timeout: Deadline in seconds for a single reconcile pass
        metrics_port: Port of the metrics and health server
        max_workers: Number of concurrent handler workers
        watch_namespace: Restrict watches to a namespace (all namespaces if None)
    """

    region: str = "eu-west-1"
    iam_endpoint: str | None = None
    resource_prefix: str = ""
    oidc_provider_arn: str | None = None
    resync_interval: float = 300.0
    error_requeue_interval: float = 30.0
    reconcile_timeout: float = 60.0
    metrics_port: int = 8080
    max_workers: int = 4
    watch_namespace: str | None = None

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "OperatorConfig":
        """Build configuration from environment variables.

        Raises:
            ValueError: If a numeric variable is malformed or not positive
        """
        if env is None:
            env = os.environ

        return cls(
            region=env.get("AWS_REGION") or "eu-west-1",
            iam_endpoint=env.get("IAM_ENDPOINT_URL") or None,
            resource_prefix=env.get("RESOURCE_PREFIX", ""),
            oidc_provider_arn=env.get("OIDC_PROVIDER_ARN") or None,
            resync_interval=_float_env(env, "RESYNC_INTERVAL_SECONDS", 300.0),
            error_requeue_interval=_float_env(env, "ERROR_REQUEUE_INTERVAL_SECONDS", 30.0),
            reconcile_timeout=_float_env(env, "RECONCILE_TIMEOUT_SECONDS", 60.0),
            metrics_port=_int_env(env, "METRICS_PORT", 8080),
            max_workers=_int_env(env, "MAX_WORKERS", 4),
            watch_namespace=env.get("WATCH_NAMESPACE") or None,
        )

    def remote_name(self, name: str) -> str:
        """Return the remote object name for a declared name."""
        return f"{self.resource_prefix}{name}"
