"""Tests for reference resolution."""

from __future__ import annotations

import pytest

from aws_iam_operator.exceptions import InvalidSpecError, NotYetProvisionedError, UnresolvedReferenceError
from aws_iam_operator.models.resource import ManagedResource, ResourceReference, TargetReference
from aws_iam_operator.resolver import ReferenceResolver

from fakes import arn


def _user(store, name: str, namespace: str = "default", labels: dict | None = None, provisioned: bool = True) -> None:
    status = {"arn": arn("user", name), "state": "OK", "observedGeneration": 1} if provisioned else None
    store.add("User", name, namespace=namespace, labels=labels, status=status)


def _group(spec: dict, namespace: str = "default") -> ManagedResource:
    return ManagedResource("Group", {"metadata": {"name": "g1", "namespace": namespace}, "spec": spec})


class TestResolve:
    """Test cases for single reference resolution."""

    def test_resolve_provisioned(self, store) -> None:
        """Test a provisioned referent resolves to its ARN and version."""
        store.add("Role", "r1", status={"arn": arn("role", "r1"), "observedGeneration": 2}, generation=2)

        identity = ReferenceResolver(store).resolve("Role", ResourceReference("r1", "default"))

        assert identity.arn == arn("role", "r1")
        assert identity.version == f"2:{arn('role', 'r1')}:0"
        assert identity.name == "r1"
        assert identity.namespace == "default"

    def test_resolve_missing(self, store) -> None:
        """Test a missing referent raises UnresolvedReferenceError."""
        with pytest.raises(UnresolvedReferenceError) as exc_info:
            ReferenceResolver(store).resolve("Policy", ResourceReference("p1", "default"))

        assert exc_info.value.kind == "Policy"
        assert exc_info.value.retryable is True

    def test_resolve_not_provisioned(self, store) -> None:
        """Test a referent without an ARN raises NotYetProvisionedError."""
        store.add("Policy", "p1", status={"state": "SYNC"})

        with pytest.raises(NotYetProvisionedError, match="Policy 'default/p1'"):
            ReferenceResolver(store).resolve("Policy", ResourceReference("p1", "default"))

    def test_resolve_reads_fresh_state(self, store) -> None:
        """Test the resolver does not cache identities between calls."""
        store.add("Role", "r1", status={"arn": arn("role", "r1"), "observedGeneration": 1})
        resolver = ReferenceResolver(store)
        first = resolver.resolve("Role", ResourceReference("r1", "default"))

        store.obj("Role", "r1")["status"]["observedGeneration"] = 2
        second = resolver.resolve("Role", ResourceReference("r1", "default"))

        assert first.version != second.version

    def test_recreate_changes_version(self, store) -> None:
        """Test a recreate that keeps generation and ARN still changes the version."""
        store.add("Role", "r1", status={"arn": arn("role", "r1"), "observedGeneration": 1, "createCount": 1})
        resolver = ReferenceResolver(store)
        first = resolver.resolve("Role", ResourceReference("r1", "default"))

        store.obj("Role", "r1")["status"]["createCount"] = 2
        second = resolver.resolve("Role", ResourceReference("r1", "default"))

        assert first.arn == second.arn
        assert first.version != second.version

    def test_resolve_target(self, store) -> None:
        """Test a Group target resolves through the Group kind."""
        store.add("Group", "g1", namespace="team", status={"arn": arn("group", "g1"), "observedGeneration": 1})

        identity = ReferenceResolver(store).resolve_target(TargetReference("Group", "g1", "team"))

        assert identity.arn == arn("group", "g1")

    def test_resolve_target_unknown_type(self, store) -> None:
        """Test an unknown target type is an invalid spec."""
        with pytest.raises(InvalidSpecError):
            ReferenceResolver(store).resolve_target(TargetReference("Bucket", "b1", "default"))

    def test_resolve_document(self, store) -> None:
        """Test a trust document is returned with its resourceVersion."""
        body = store.add("AssumeRolePolicy", "trust", spec={"statement": [{"actions": ["sts:AssumeRole"]}]})

        statements, version = ReferenceResolver(store).resolve_document(
            "AssumeRolePolicy", ResourceReference("trust", "default")
        )

        assert statements == [{"actions": ["sts:AssumeRole"]}]
        assert version == body["metadata"]["resourceVersion"]


class TestResolveMembers:
    """Test cases for group member resolution."""

    def test_explicit_users(self, store) -> None:
        """Test explicit references resolve in namespace/name order."""
        _user(store, "bob")
        _user(store, "alice", namespace="other")

        members = ReferenceResolver(store).resolve_members(
            _group({"users": [{"name": "bob"}, {"name": "alice", "namespace": "other"}]})
        )

        assert [m.name for m in members] == ["bob", "alice"]

    def test_label_selector_is_cluster_wide(self, store) -> None:
        """Test selector members are matched across namespaces."""
        _user(store, "alice", labels={"team": "data"})
        _user(store, "bob", namespace="other", labels={"team": "data"})
        _user(store, "carol", labels={"team": "web"})

        members = ReferenceResolver(store).resolve_members(_group({"userSelector": {"team": "data"}}))

        assert [(m.namespace, m.name) for m in members] == [("default", "alice"), ("other", "bob")]

    def test_selected_user_not_provisioned(self, store) -> None:
        """Test a selected user without an ARN blocks the group."""
        _user(store, "alice", labels={"team": "data"}, provisioned=False)

        with pytest.raises(NotYetProvisionedError):
            ReferenceResolver(store).resolve_members(_group({"userSelector": {"team": "data"}}))

    def test_neither_users_nor_selector(self, store) -> None:
        """Test a group needs users or a selector."""
        with pytest.raises(InvalidSpecError, match="neither users nor userSelector defined"):
            ReferenceResolver(store).resolve_members(_group({}))

    def test_both_users_and_selector(self, store) -> None:
        """Test users and selector are mutually exclusive."""
        with pytest.raises(InvalidSpecError, match="both users and userSelector defined"):
            ReferenceResolver(store).resolve_members(
                _group({"users": [{"name": "bob"}], "userSelector": {"team": "data"}})
            )

    def test_missing_user(self, store) -> None:
        """Test a referenced user that does not exist."""
        with pytest.raises(UnresolvedReferenceError):
            ReferenceResolver(store).resolve_members(_group({"users": [{"name": "ghost"}]}))
