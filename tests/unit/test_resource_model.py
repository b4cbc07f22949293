"""Tests for the managed resource model."""

from __future__ import annotations

import pytest

from aws_iam_operator.constants import FINALIZER
from aws_iam_operator.exceptions import InvalidSpecError
from aws_iam_operator.models.resource import (
    AWSObjectStatus,
    LifecycleState,
    ManagedResource,
    ResourceReference,
    SyncState,
    TargetReference,
)


def _resource(finalizers=None, deleting=False, status=None) -> ManagedResource:
    metadata = {"name": "r1", "namespace": "team", "uid": "uid-1", "generation": 3, "finalizers": finalizers or []}
    if deleting:
        metadata["deletionTimestamp"] = "2024-01-01T00:00:00Z"
    body = {"metadata": metadata, "spec": {}}
    if status is not None:
        body["status"] = status
    return ManagedResource("Role", body)


class TestAWSObjectStatus:
    """Test cases for AWSObjectStatus."""

    def test_from_empty(self):
        """Test a missing status block is unprovisioned."""
        status = AWSObjectStatus.from_dict(None)

        assert status.state is None
        assert status.arn == ""
        assert status.provisioned is False

    def test_round_trip_keeps_extra_fields(self):
        """Test unknown status fields are written back untouched."""
        data = {
            "state": "OK",
            "message": "reconciled",
            "arn": "arn:aws:iam::123456789012:role/r1",
            "observedGeneration": 2,
            "readVersion": "7",
            "lastSyncAttempt": "2024-01-01T00:00:00+00:00",
            "conditions": [{"type": "Ready", "status": "True"}],
        }

        status = AWSObjectStatus.from_dict(data)

        assert status.state is SyncState.OK
        assert status.extra == {"conditions": [{"type": "Ready", "status": "True"}]}
        assert status.to_dict() == data

    def test_sync_state_serialized(self):
        """Test the in-progress state is persisted as SYNC."""
        assert AWSObjectStatus(state=SyncState.SYNC).to_dict()["state"] == "SYNC"

    def test_create_count(self):
        """Test the create count is read back and only written once set."""
        assert AWSObjectStatus.from_dict({"createCount": 3}).create_count == 3
        assert AWSObjectStatus.from_dict({"createCount": 3}).to_dict()["createCount"] == 3
        assert "createCount" not in AWSObjectStatus().to_dict()

    def test_unknown_state_ignored(self):
        """Test an unknown persisted state reads as no state."""
        assert AWSObjectStatus.from_dict({"state": "Pending"}).state is None


class TestLifecycle:
    """Test cases for lifecycle transitions."""

    def test_active(self):
        """Test an object not marked for deletion is active."""
        assert _resource().lifecycle is LifecycleState.ACTIVE

    def test_deleting(self):
        """Test a marked object holding the finalizer is deleting."""
        assert _resource([FINALIZER], deleting=True).lifecycle is LifecycleState.DELETING

    def test_gone(self):
        """Test a marked object without the finalizer is gone."""
        assert _resource(["other"], deleting=True).lifecycle is LifecycleState.GONE

    def test_transition_to_gone_removes_finalizer(self):
        """Test finishing deletion drops only the operator finalizer."""
        resource = _resource([FINALIZER, "other"], deleting=True)

        resource.transition(LifecycleState.GONE)

        assert resource.finalizers == ["other"]

    def test_illegal_transition(self):
        """Test an active object cannot jump to gone."""
        with pytest.raises(ValueError, match="illegal lifecycle transition"):
            _resource([FINALIZER]).transition(LifecycleState.GONE)

    def test_add_finalizer_once(self):
        """Test the finalizer is only added when missing."""
        resource = _resource()

        assert resource.add_finalizer() is True
        assert resource.add_finalizer() is False
        assert resource.finalizers == [FINALIZER]

    def test_to_body_embeds_status(self):
        """Test the body written back carries the current status."""
        resource = _resource(status={"arn": "arn:aws:iam::123456789012:role/r1"})
        resource.status.state = SyncState.ERROR

        body = resource.to_body()

        assert body["status"]["state"] == "ERROR"
        assert body["status"]["arn"] == "arn:aws:iam::123456789012:role/r1"

    def test_owner_reference(self):
        """Test owner references point at the declared object."""
        ref = _resource().owner_reference("aws-iam.cloud37.dev/v1beta1")

        assert ref["kind"] == "Role"
        assert ref["uid"] == "uid-1"
        assert ref["controller"] is True


class TestReferences:
    """Test cases for reference parsing."""

    def test_reference_defaults_namespace(self):
        """Test a reference without namespace uses the referrer's namespace."""
        assert ResourceReference.from_spec({"name": "p1"}, "team") == ResourceReference("p1", "team")

    def test_reference_missing_name(self):
        """Test a reference without name is absent."""
        assert ResourceReference.from_spec({"namespace": "team"}, "team") is None
        assert ResourceReference.from_spec(None, "team") is None

    def test_target_reference(self):
        """Test target references are parsed with their type."""
        target = TargetReference.from_spec({"type": "Group", "name": "g1", "namespace": "ops"}, "team")

        assert target.matches("Group", "g1", "ops")
        assert not target.matches("User", "g1", "ops")

    def test_target_reference_unknown_type(self):
        """Test an unknown target type is rejected."""
        with pytest.raises(InvalidSpecError, match="'Policy' is unknown"):
            TargetReference.from_spec({"type": "Policy", "name": "p1"}, "team")

    def test_target_reference_missing_name(self):
        """Test a target without name is rejected."""
        with pytest.raises(InvalidSpecError, match="target.name"):
            TargetReference.from_spec({"type": "Role"}, "team")
