"""Main entry point for the AWS IAM Operator."""

from __future__ import annotations

import logging
from typing import Any

import kopf

from . import health
from . import logging as structured_logging
from .config import OperatorConfig
from .controller import ConvergenceController
from .handlers import setup_watches
from .kinds import default_kinds
from .services.aws import IAMService
from .services.store import KubernetesStore, load_kube_config
from .tracing import initialize_tracing

logger = logging.getLogger(__name__)


def configure_settings(settings: kopf.OperatorSettings, config: OperatorConfig) -> None:
    """Apply operator settings to kopf."""
    # Use annotations for kopf bookkeeping so status stays owned by the controller
    settings.persistence.progress_storage = kopf.AnnotationsProgressStorage()
    settings.persistence.diffbase_storage = kopf.AnnotationsDiffBaseStorage()

    settings.posting.level = logging.INFO
    settings.networking.request_timeout = 30.0
    settings.execution.max_workers = config.max_workers


def create_operator(
    config: OperatorConfig,
    registry: kopf.OperatorRegistry | None = None,
) -> ConvergenceController:
    """Wire the store, IAM client and controller, and register all handlers.

    Args:
        config: Operator configuration
        registry: kopf registry to register into (the default registry if None)

    Returns:
        The convergence controller serving every kind
    """
    iam = IAMService.from_config(config)
    store = KubernetesStore()
    controller = ConvergenceController(store, default_kinds(iam, config), config)

    @kopf.on.startup(registry=registry)
    def configure(settings: kopf.OperatorSettings, **_: Any) -> None:
        """Configure the operator."""
        configure_settings(settings, config)
        initialize_tracing()
        health.start_metrics_server(config.metrics_port)
        health.mark_ready()
        logger.info(f"Operator started (region={config.region}, resync={config.resync_interval}s)")

    @kopf.on.cleanup(registry=registry)
    def shutdown(**_: Any) -> None:
        health.mark_not_ready()

    setup_watches(controller, registry)
    return controller


def run() -> None:
    """Start the operator."""
    structured_logging.setup_structured_logging()
    config = OperatorConfig.from_env()
    load_kube_config()
    create_operator(config)

    if config.watch_namespace:
        kopf.run(namespaces=[config.watch_namespace])
    else:
        kopf.run(clusterwide=True)


if __name__ == "__main__":
    run()
