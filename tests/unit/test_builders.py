"""Tests for desired state builders."""

from __future__ import annotations

import pytest

from aws_iam_operator.builders import (
    build_irsa_statement,
    build_statements,
    create_attachment_desired_from_spec,
    create_group_desired_from_spec,
    create_policy_desired_from_spec,
    create_role_desired_from_spec,
    create_user_desired_from_spec,
)
from aws_iam_operator.config import OperatorConfig
from aws_iam_operator.exceptions import InvalidSpecError, NotYetProvisionedError
from aws_iam_operator.models.resource import ManagedResource
from aws_iam_operator.resolver import ReferenceResolver

from fakes import arn

TRUST_STATEMENT = {"effect": "Allow", "principal": {"Service": "ec2.amazonaws.com"}, "actions": ["sts:AssumeRole"]}
OIDC_ARN = "arn:aws:iam::123456789012:oidc-provider/oidc.eks.eu-west-1.amazonaws.com/id/ABC123"
ISSUER = "oidc.eks.eu-west-1.amazonaws.com/id/ABC123"


def _resource(kind: str, name: str, spec: dict, namespace: str = "default") -> ManagedResource:
    return ManagedResource(
        kind,
        {"metadata": {"name": name, "namespace": namespace, "generation": 1}, "spec": spec},
    )


@pytest.fixture
def resolver(store) -> ReferenceResolver:
    return ReferenceResolver(store)


def _provisioned(store, kind: str, name: str, resource_type: str, generation: int = 1, **kwargs) -> None:
    store.add(
        kind,
        name,
        status={"arn": arn(resource_type, name), "state": "OK", "observedGeneration": generation},
        generation=generation,
        **kwargs,
    )


class TestPolicyBuilder:
    """Test cases for policy desired state."""

    def test_build_statements(self) -> None:
        """Test declared statements become a policy document."""
        document = build_statements({"statement": [{"actions": "s3:GetObject", "resources": ["*"]}]})

        assert document.to_aws()["Statement"] == [{"Effect": "Allow", "Action": ["s3:GetObject"], "Resource": ["*"]}]

    def test_build_statements_empty(self) -> None:
        """Test an empty statement list is rejected."""
        with pytest.raises(InvalidSpecError, match="at least one"):
            build_statements({"statement": []})

    def test_build_statements_malformed(self) -> None:
        """Test a statement list of non-objects is rejected."""
        with pytest.raises(InvalidSpecError, match="list of statement objects"):
            build_statements({"statement": ["s3:GetObject"]})

    def test_policy_name_override(self, config) -> None:
        """Test awsPolicyName takes precedence over the object name."""
        resource = _resource("Policy", "p1", {"awsPolicyName": "custom", "statement": [TRUST_STATEMENT]})

        desired, token = create_policy_desired_from_spec(resource, config)

        assert desired.name == "custom"
        assert token == ""

    def test_policy_description(self, config) -> None:
        """Test the declared description is carried over."""
        resource = _resource("Policy", "p1", {"description": "read", "statement": [TRUST_STATEMENT]})

        desired, _ = create_policy_desired_from_spec(resource, config)

        assert desired.name == "p1"
        assert desired.description == "read"


class TestRoleBuilder:
    """Test cases for role desired state."""

    def test_inline_trust_policy(self, resolver, config) -> None:
        """Test an inline trust policy has an empty token."""
        resource = _resource("Role", "r1", {"assumeRolePolicy": [TRUST_STATEMENT], "maxSessionDuration": "7200"})

        desired, token = create_role_desired_from_spec(resource, resolver, config)

        assert desired.name == "r1"
        assert desired.max_session_duration == 7200
        assert len(desired.trust_policy.statements) == 1
        assert token == ""

    def test_referenced_trust_policy(self, store, resolver, config) -> None:
        """Test a referenced trust document is read and versioned by resourceVersion."""
        body = store.add("AssumeRolePolicy", "trust", namespace="shared", spec={"statement": [TRUST_STATEMENT]})
        resource = _resource("Role", "r1", {"assumeRolePolicyRef": {"name": "trust", "namespace": "shared"}})

        desired, token = create_role_desired_from_spec(resource, resolver, config)

        assert desired.trust_policy.statements[0].actions == ["sts:AssumeRole"]
        assert token == body["metadata"]["resourceVersion"]

    def test_both_trust_sources(self, resolver, config) -> None:
        """Test inline and referenced trust policies are mutually exclusive."""
        resource = _resource(
            "Role", "r1", {"assumeRolePolicy": [TRUST_STATEMENT], "assumeRolePolicyRef": {"name": "trust"}}
        )

        with pytest.raises(InvalidSpecError, match="only one of"):
            create_role_desired_from_spec(resource, resolver, config)

    def test_no_trust_source(self, resolver, config) -> None:
        """Test a role without any trust source is rejected."""
        with pytest.raises(InvalidSpecError, match="is required"):
            create_role_desired_from_spec(_resource("Role", "r1", {}), resolver, config)

    def test_irsa_only(self, resolver, config) -> None:
        """Test addIRSAPolicy alone yields a web identity trust policy."""
        resource = _resource("Role", "app", {"addIRSAPolicy": True}, namespace="apps")

        desired, _ = create_role_desired_from_spec(resource, resolver, config)

        statement = desired.trust_policy.to_aws()["Statement"][0]
        assert statement["Principal"] == {"Federated": OIDC_ARN}
        assert statement["Action"] == ["sts:AssumeRoleWithWebIdentity"]
        assert statement["Condition"]["StringEquals"][f"{ISSUER}:sub"] == "system:serviceaccount:apps:app"

    def test_irsa_appended_to_inline(self, resolver, config) -> None:
        """Test the IRSA statement is appended after the declared ones."""
        resource = _resource("Role", "r1", {"assumeRolePolicy": [TRUST_STATEMENT], "addIRSAPolicy": True})

        desired, _ = create_role_desired_from_spec(resource, resolver, config)

        assert len(desired.trust_policy.statements) == 2
        assert desired.trust_policy.statements[0].principal == {"Service": "ec2.amazonaws.com"}

    def test_irsa_without_oidc_provider(self, resolver) -> None:
        """Test IRSA requires a configured OIDC provider."""
        resource = _resource("Role", "r1", {"addIRSAPolicy": True})

        with pytest.raises(InvalidSpecError, match="OIDC provider"):
            create_role_desired_from_spec(resource, resolver, OperatorConfig())

    def test_invalid_session_duration(self, resolver, config) -> None:
        """Test a non-numeric session duration is rejected."""
        resource = _resource("Role", "r1", {"assumeRolePolicy": [TRUST_STATEMENT], "maxSessionDuration": "long"})

        with pytest.raises(InvalidSpecError, match="maxSessionDuration"):
            create_role_desired_from_spec(resource, resolver, config)

    def test_build_irsa_statement(self) -> None:
        """Test the audience and subject conditions."""
        statement = build_irsa_statement(OIDC_ARN, "ns", "sa")

        assert statement["conditions"]["StringEquals"] == {
            f"{ISSUER}:aud": "sts.amazonaws.com",
            f"{ISSUER}:sub": "system:serviceaccount:ns:sa",
        }

    def test_build_irsa_statement_invalid_arn(self) -> None:
        """Test a malformed OIDC provider ARN is rejected."""
        with pytest.raises(InvalidSpecError):
            build_irsa_statement("oidc.eks.amazonaws.com", "ns", "sa")


class TestIdentityBuilders:
    """Test cases for user, group and attachment desired state."""

    def test_user_flags(self) -> None:
        """Test credential flags and the prefixed remote name."""
        resource = _resource("User", "u1", {"createLoginProfile": True})

        desired, token = create_user_desired_from_spec(resource, OperatorConfig(resource_prefix="dev-"))

        assert desired.name == "dev-u1"
        assert desired.login_profile is True
        assert desired.programmatic_access is False
        assert token == ""

    def test_group_members_and_token(self, store, resolver, config) -> None:
        """Test group members come from resolved user ARNs."""
        _provisioned(store, "User", "u2", "user")
        _provisioned(store, "User", "u1", "user")
        resource = _resource("Group", "g1", {"users": [{"name": "u2"}, {"name": "u1"}]})

        desired, token = create_group_desired_from_spec(resource, resolver, config)

        assert desired.members == ["u1", "u2"]
        assert token == f"{arn('user', 'u1')},{arn('user', 'u2')}"

    def test_group_member_not_provisioned(self, store, resolver, config) -> None:
        """Test a member without an ARN blocks the group."""
        store.add("User", "u1")
        resource = _resource("Group", "g1", {"users": [{"name": "u1"}]})

        with pytest.raises(NotYetProvisionedError):
            create_group_desired_from_spec(resource, resolver, config)

    def test_attachment_with_policy_reference(self, store, resolver) -> None:
        """Test the token tracks the role version and the policy ARN."""
        _provisioned(store, "Policy", "p1", "policy")
        _provisioned(store, "Role", "r1", "role", generation=3)
        resource = _resource(
            "PolicyAttachment", "a1", {"policy": {"name": "p1"}, "target": {"type": "Role", "name": "r1"}}
        )

        desired, token = create_attachment_desired_from_spec(resource, resolver)

        assert desired.policy_arn == arn("policy", "p1")
        assert desired.target_arn == arn("role", "r1")
        assert desired.target_name == "r1"
        assert token == f"{arn('policy', 'p1')}|Role:3:{arn('role', 'r1')}:0"

    def test_attachment_user_target_token_uses_arn(self, store, resolver) -> None:
        """Test user targets are versioned by ARN because users are updated in place."""
        _provisioned(store, "User", "u1", "user", generation=4)
        external = "arn:aws:iam::aws:policy/ReadOnlyAccess"
        resource = _resource(
            "PolicyAttachment", "a1", {"externalPolicy": {"arn": external}, "target": {"type": "User", "name": "u1"}}
        )

        desired, token = create_attachment_desired_from_spec(resource, resolver)

        assert desired.policy_arn == external
        assert token == f"{external}|User:{arn('user', 'u1')}"

    @pytest.mark.parametrize(
        "spec,message",
        [
            ({"target": {"type": "Role", "name": "r1"}}, "one of policy or externalPolicy"),
            (
                {
                    "policy": {"name": "p1"},
                    "externalPolicy": {"arn": "arn:aws:iam::aws:policy/ReadOnlyAccess"},
                    "target": {"type": "Role", "name": "r1"},
                },
                "cannot define both",
            ),
            (
                {"externalPolicy": {"arn": "ReadOnlyAccess"}, "target": {"type": "Role", "name": "r1"}},
                "is not valid",
            ),
            ({"policy": {"name": "p1"}, "target": {"type": "Bucket", "name": "b1"}}, "is unknown"),
        ],
    )
    def test_attachment_invalid_specs(self, resolver, spec, message) -> None:
        """Test malformed attachments are rejected before any lookup."""
        with pytest.raises(InvalidSpecError, match=message):
            create_attachment_desired_from_spec(_resource("PolicyAttachment", "a1", spec), resolver)
