"""Utilities for emitting Kubernetes events."""

from __future__ import annotations

from typing import Any

import kopf

from ..constants import (
    EVENT_REASON_DELETION_BLOCKED,
    EVENT_REASON_RECONCILE_FAILED,
    EVENT_REASON_RECONCILE_STARTED,
    EVENT_REASON_RECONCILE_SUCCEEDED,
    EVENT_REASON_REFERENCES_NOT_READY,
    EVENT_REASON_REMOTE_CREATED,
    EVENT_REASON_REMOTE_DELETED,
    EVENT_REASON_REMOTE_UPDATED,
)


def emit_event(
    body: dict[str, Any],
    reason: str,
    message: str,
    type_: str = "Normal",
) -> None:
    """Emit a Kubernetes event.

    Args:
        body: Resource body (needs apiVersion, kind and metadata)
        reason: Event reason
        message: Event message
        type_: Event type (Normal or Warning)
    """
    kopf.event(
        body,
        reason=reason,
        message=message,
        type=type_,
    )


def emit_reconcile_started(body: dict[str, Any]) -> None:
    """Emit reconcile started event."""
    emit_event(body, EVENT_REASON_RECONCILE_STARTED, "Reconciliation started")


def emit_reconcile_succeeded(body: dict[str, Any], arn: str) -> None:
    """Emit reconcile succeeded event."""
    emit_event(body, EVENT_REASON_RECONCILE_SUCCEEDED, f"Reconciled {arn}")


def emit_reconcile_failed(body: dict[str, Any], message: str) -> None:
    """Emit reconcile failed event."""
    emit_event(body, EVENT_REASON_RECONCILE_FAILED, message, type_="Warning")


def emit_remote_created(body: dict[str, Any], arn: str) -> None:
    emit_event(body, EVENT_REASON_REMOTE_CREATED, f"Created {arn}")


def emit_remote_updated(body: dict[str, Any], arn: str) -> None:
    emit_event(body, EVENT_REASON_REMOTE_UPDATED, f"Updated {arn}")


def emit_remote_deleted(body: dict[str, Any], arn: str) -> None:
    emit_event(body, EVENT_REASON_REMOTE_DELETED, f"Deleted {arn}")


def emit_deletion_blocked(body: dict[str, Any], message: str) -> None:
    emit_event(body, EVENT_REASON_DELETION_BLOCKED, message, type_="Warning")


def emit_references_not_ready(body: dict[str, Any], message: str) -> None:
    emit_event(body, EVENT_REASON_REFERENCES_NOT_READY, message, type_="Warning")
