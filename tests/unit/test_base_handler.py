"""Tests for base handler functionality."""

from __future__ import annotations

from unittest.mock import MagicMock

import kopf
import pytest

from aws_iam_operator.config import OperatorConfig
from aws_iam_operator.controller import ReconcileFailed, ReconcileResult
from aws_iam_operator.exceptions import (
    ConcurrentModificationError,
    InvalidSpecError,
    RemoteTransientError,
)
from aws_iam_operator.handlers.base import MIN_RETRY_DELAY, BaseHandler
from aws_iam_operator.utils.context import ReconcileContext

META = {"name": "r1", "namespace": "team", "uid": "uid-1"}


@pytest.fixture
def controller() -> MagicMock:
    controller = MagicMock()
    controller.config = OperatorConfig(reconcile_timeout=45.0)
    controller.reconcile.return_value = ReconcileResult(300.0, "arn:aws:iam::123456789012:role/r1")
    return controller


class TestBaseHandler:
    """Test cases for BaseHandler class."""

    def test_init(self, controller):
        """Test handler initialization."""
        handler = BaseHandler("Role", controller)
        assert handler.kind == "Role"
        assert handler.controller is controller
        assert handler.logger is not None

    def test_get_resource_context_defaults(self, controller):
        """Test missing metadata fields get defaults."""
        ctx = BaseHandler("Role", controller)._get_resource_context({})

        assert ctx == {"name": "unknown", "namespace": "default", "uid": "unknown"}

    def test_reconcile_delegates_to_controller(self, controller):
        """Test the pass runs for the handler's kind with a deadline."""
        BaseHandler("Role", controller).reconcile(META)

        kind, name, namespace, context = controller.reconcile.call_args[0]
        assert (kind, name, namespace) == ("Role", "r1", "team")
        assert isinstance(context, ReconcileContext)
        assert context.remaining() <= 45.0

    def test_reconcile_passes_stop_flag(self, controller):
        """Test the kopf stop flag cancels the context."""
        BaseHandler("Role", controller).reconcile(META, stopped=True)

        context = controller.reconcile.call_args[0][3]
        assert context.cancelled is True

    def test_retryable_failure_raises_temporary_error(self, controller):
        """Test retryable failures are retried after the requested delay."""
        error = RemoteTransientError("Throttling", "Throttling")
        controller.reconcile.side_effect = ReconcileFailed(error, 30.0, True)

        with pytest.raises(kopf.TemporaryError) as exc_info:
            BaseHandler("Role", controller).reconcile(META)

        assert exc_info.value.delay == 30.0

    def test_immediate_retry_has_minimum_delay(self, controller):
        """Test a zero requeue is raised with the minimum delay."""
        error = ConcurrentModificationError("conflict")
        controller.reconcile.side_effect = ReconcileFailed(error, 0.0, True)

        with pytest.raises(kopf.TemporaryError) as exc_info:
            BaseHandler("Role", controller).reconcile(META)

        assert exc_info.value.delay == MIN_RETRY_DELAY

    def test_permanent_failure_raises_permanent_error(self, controller):
        """Test failures that need a spec change are not retried."""
        error = InvalidSpecError("only one of assumeRolePolicy and assumeRolePolicyRef is allowed")
        controller.reconcile.side_effect = ReconcileFailed(error, None, False)

        with pytest.raises(kopf.PermanentError, match="only one of"):
            BaseHandler("Role", controller).reconcile(META)

    def test_failure_message_sanitized(self, controller):
        """Test secrets in error messages never reach kopf."""
        error = RemoteTransientError("request failed password=hunter2", "ServiceFailure")
        controller.reconcile.side_effect = ReconcileFailed(error, 30.0, True)

        with pytest.raises(kopf.TemporaryError) as exc_info:
            BaseHandler("User", controller).reconcile(META)

        assert "hunter2" not in str(exc_info.value)
