"""Declarative object store backed by the Kubernetes custom objects API."""

from __future__ import annotations

import time
from typing import Any, Protocol

from kubernetes import client

from .. import metrics
from ..constants import API_GROUP, API_VERSION, PLURALS
from ..exceptions import ConcurrentModificationError, StoreNotFoundError
from ..utils.rate_limit import is_rate_limit_error, rate_limit_k8s


class Store(Protocol):
    """Protocol for the declarative store consumed by the convergence engine."""

    def get(self, kind: str, name: str, namespace: str) -> dict[str, Any]:
        """Read one object; raises StoreNotFoundError if it does not exist."""
        ...

    def list(
        self,
        kind: str,
        namespace: str | None = None,
        label_selector: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        """List objects of a kind, optionally filtered."""
        ...

    def update(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """Write metadata/spec conditioned on metadata.resourceVersion."""
        ...

    def update_status(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        """Write the status subresource conditioned on metadata.resourceVersion."""
        ...


def format_label_selector(selector: dict[str, str] | None) -> str | None:
    if not selector:
        return None
    return ",".join(f"{key}={value}" for key, value in sorted(selector.items()))


class KubernetesStore:
    """Store implementation on top of ``CustomObjectsApi``.

    Writes use replace semantics, so the API server rejects them with 409 when
    ``metadata.resourceVersion`` is stale. That conflict is surfaced as
    :class:`ConcurrentModificationError`.
    """

    def __init__(self, api: client.CustomObjectsApi | None = None, max_rate_limit_retries: int = 3) -> None:
        self.api = api or client.CustomObjectsApi()
        self.max_rate_limit_retries = max_rate_limit_retries

    def _call(self, operation: str, func: Any, **kwargs: Any) -> Any:
        start_time = time.time()
        attempt = 0
        try:
            while True:
                try:
                    result = rate_limit_k8s(func)(**kwargs)
                    metrics.api_call_total.labels(api_type="k8s", operation=operation, result="success").inc()
                    return result
                except client.exceptions.ApiException as e:
                    if is_rate_limit_error(e) and attempt < self.max_rate_limit_retries:
                        # Exponential backoff: 1s, 2s, 4s
                        time.sleep(2 ** attempt)
                        attempt += 1
                        continue
                    metrics.api_call_total.labels(api_type="k8s", operation=operation, result="error").inc()
                    if e.status == 404:
                        raise StoreNotFoundError(f"{kwargs.get('plural')} '{kwargs.get('name')}' not found") from e
                    if e.status == 409:
                        raise ConcurrentModificationError(
                            f"{kwargs.get('plural')} '{kwargs.get('name')}' was modified concurrently"
                        ) from e
                    raise
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="k8s", operation=operation).observe(duration)

    def get(self, kind: str, name: str, namespace: str) -> dict[str, Any]:
        return self._call(
            f"get_{kind.lower()}",
            self.api.get_namespaced_custom_object,
            group=API_GROUP,
            version=API_VERSION,
            namespace=namespace,
            plural=PLURALS[kind],
            name=name,
        )

    def list(
        self,
        kind: str,
        namespace: str | None = None,
        label_selector: dict[str, str] | None = None,
    ) -> list[dict[str, Any]]:
        kwargs: dict[str, Any] = {
            "group": API_GROUP,
            "version": API_VERSION,
            "plural": PLURALS[kind],
        }
        selector = format_label_selector(label_selector)
        if selector:
            kwargs["label_selector"] = selector

        if namespace:
            response = self._call(
                f"list_{kind.lower()}",
                self.api.list_namespaced_custom_object,
                namespace=namespace,
                **kwargs,
            )
        else:
            response = self._call(f"list_{kind.lower()}", self.api.list_cluster_custom_object, **kwargs)
        return list(response.get("items", []))

    def update(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        metadata = body.get("metadata", {})
        return self._call(
            f"update_{kind.lower()}",
            self.api.replace_namespaced_custom_object,
            group=API_GROUP,
            version=API_VERSION,
            namespace=metadata.get("namespace"),
            plural=PLURALS[kind],
            name=metadata.get("name"),
            body=body,
        )

    def update_status(self, kind: str, body: dict[str, Any]) -> dict[str, Any]:
        metadata = body.get("metadata", {})
        return self._call(
            f"update_{kind.lower()}_status",
            self.api.replace_namespaced_custom_object_status,
            group=API_GROUP,
            version=API_VERSION,
            namespace=metadata.get("namespace"),
            plural=PLURALS[kind],
            name=metadata.get("name"),
            body=body,
        )


def load_kube_config() -> None:
    """Load in-cluster configuration, falling back to the local kubeconfig."""
    from kubernetes import config

    try:
        config.load_incluster_config()
    except config.ConfigException:
        config.load_kube_config()
