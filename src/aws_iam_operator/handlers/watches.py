"""Registration of kopf watches for every declared kind."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import API_GROUP, API_VERSION, PLURALS
from ..controller import ConvergenceController
from .base import BaseHandler


def _register_kind(
    kind: str,
    controller: ConvergenceController,
    registry: kopf.OperatorRegistry | None,
) -> BaseHandler:
    handler = BaseHandler(kind, controller)
    resource = (API_GROUP, API_VERSION, PLURALS[kind])
    prefix = kind.lower()

    @kopf.on.create(*resource, id=f"{prefix}-create", registry=registry)
    @kopf.on.update(*resource, id=f"{prefix}-update", registry=registry)
    @kopf.on.resume(*resource, id=f"{prefix}-resume", registry=registry)
    def handle(meta: dict[str, Any], stopped: Any = None, **_: Any) -> None:
        handler.reconcile(meta, stopped)

    # The controller owns its finalizer, so kopf must not add one for this handler
    @kopf.on.delete(*resource, id=f"{prefix}-delete", optional=True, registry=registry)
    def handle_delete(meta: dict[str, Any], stopped: Any = None, **_: Any) -> None:
        handler.reconcile(meta, stopped)

    @kopf.timer(
        *resource,
        id=f"{prefix}-resync",
        interval=controller.config.resync_interval,
        initial_delay=controller.config.resync_interval,
        registry=registry,
    )
    def resync(meta: dict[str, Any], stopped: Any = None, **_: Any) -> None:
        handler.reconcile(meta, stopped)

    return handler


def setup_watches(
    controller: ConvergenceController,
    registry: kopf.OperatorRegistry | None = None,
) -> dict[str, BaseHandler]:
    """Register create, update, resume, delete and resync handlers for every kind.

    Args:
        controller: Controller every handler delegates to
        registry: kopf registry to register into (the default registry if None)

    Returns:
        The handler created for each kind
    """
    return {kind: _register_kind(kind, controller, registry) for kind in controller.kinds}
