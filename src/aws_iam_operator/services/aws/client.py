"""AWS IAM client implementation."""

from __future__ import annotations

import logging
import time
from typing import Any

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ... import metrics
from ...config import OperatorConfig
from ...exceptions import RemoteNotFoundError
from ...utils.rate_limit import rate_limit_iam
from .errors import translate_client_error

logger = logging.getLogger(__name__)


class IAMService:
    """Thin wrapper over the boto3 IAM client.

    Every call is rate limited, measured, and has its botocore errors
    translated into the remote error taxonomy.
    """

    def __init__(self, client: Any) -> None:
        self.client = client

    @classmethod
    def from_config(cls, config: OperatorConfig) -> "IAMService":
        """Create an IAM service from operator configuration.

        Credentials come from the default boto3 chain (environment, IRSA web
        identity, instance profile).
        """
        timeout = max(1, int(config.reconcile_timeout))
        logger.info(f"Creating IAM client for region {config.region}")
        boto_config = Config(
            region_name=config.region,
            connect_timeout=min(10, timeout),
            read_timeout=timeout,
            retries={"max_attempts": 3, "mode": "standard"},
        )
        session = boto3.session.Session(region_name=config.region)
        client = session.client("iam", endpoint_url=config.iam_endpoint, config=boto_config)
        return cls(client)

    def _call(self, operation: str, **kwargs: Any) -> dict[str, Any]:
        start_time = time.time()
        try:
            response = rate_limit_iam(getattr(self.client, operation))(**kwargs)
            metrics.api_call_total.labels(api_type="iam", operation=operation, result="success").inc()
            return response
        except (ClientError, BotoCoreError) as e:
            metrics.api_call_total.labels(api_type="iam", operation=operation, result="error").inc()
            raise translate_client_error(e, operation) from e
        finally:
            duration = time.time() - start_time
            metrics.api_call_duration_seconds.labels(api_type="iam", operation=operation).observe(duration)

    def _paginate(self, operation: str, key: str, **kwargs: Any) -> list[Any]:
        items: list[Any] = []
        try:
            paginator = self.client.get_paginator(operation)
            for page in paginator.paginate(**kwargs):
                items.extend(page.get(key, []))
        except (ClientError, BotoCoreError) as e:
            metrics.api_call_total.labels(api_type="iam", operation=operation, result="error").inc()
            raise translate_client_error(e, operation) from e
        metrics.api_call_total.labels(api_type="iam", operation=operation, result="success").inc()
        return items

    # Roles

    def create_role(
        self,
        name: str,
        trust_policy: str,
        description: str = "",
        max_session_duration: int = 3600,
    ) -> str:
        """Create a role and return its ARN."""
        response = self._call(
            "create_role",
            RoleName=name,
            AssumeRolePolicyDocument=trust_policy,
            Description=description,
            MaxSessionDuration=max_session_duration,
        )
        return response["Role"]["Arn"]

    def delete_role(self, name: str) -> None:
        """Delete a role after detaching everything the remote service requires gone first."""
        for attached in self._paginate("list_attached_role_policies", "AttachedPolicies", RoleName=name):
            self._ignore_missing(self._call, "detach_role_policy", RoleName=name, PolicyArn=attached["PolicyArn"])
        for policy_name in self._paginate("list_role_policies", "PolicyNames", RoleName=name):
            self._ignore_missing(self._call, "delete_role_policy", RoleName=name, PolicyName=policy_name)
        for profile in self._paginate("list_instance_profiles_for_role", "InstanceProfiles", RoleName=name):
            self._ignore_missing(
                self._call,
                "remove_role_from_instance_profile",
                InstanceProfileName=profile["InstanceProfileName"],
                RoleName=name,
            )
        self._call("delete_role", RoleName=name)
        logger.info(f"Deleted role {name}")

    # Managed policies

    def create_policy(self, name: str, document: str, description: str = "") -> str:
        """Create a managed policy and return its ARN."""
        response = self._call(
            "create_policy",
            PolicyName=name,
            PolicyDocument=document,
            Description=description,
        )
        return response["Policy"]["Arn"]

    def find_policy_arn(self, name: str) -> str | None:
        """Look up a customer managed policy ARN by name."""
        for policy in self._paginate("list_policies", "Policies", Scope="Local"):
            if policy.get("PolicyName") == name:
                return policy.get("Arn")
        return None

    def list_policy_versions(self, arn: str) -> list[dict[str, Any]]:
        return self._paginate("list_policy_versions", "Versions", PolicyArn=arn)

    def create_policy_version(self, arn: str, document: str) -> str:
        """Create a new default version of a policy and return the version id."""
        response = self._call(
            "create_policy_version",
            PolicyArn=arn,
            PolicyDocument=document,
            SetAsDefault=True,
        )
        return response["PolicyVersion"]["VersionId"]

    def delete_policy_version(self, arn: str, version_id: str) -> None:
        self._call("delete_policy_version", PolicyArn=arn, VersionId=version_id)

    _POLICY_ENTITIES = (
        ("Role", "PolicyRoles", "RoleName"),
        ("User", "PolicyUsers", "UserName"),
        ("Group", "PolicyGroups", "GroupName"),
    )

    def list_policy_entities(self, arn: str) -> list[tuple[str, str]]:
        """Return the (target type, name) pairs a managed policy is attached to."""
        entities = []
        for target_type, key, name_key in self._POLICY_ENTITIES:
            for entity in self._paginate("list_entities_for_policy", key, PolicyArn=arn, EntityFilter=target_type):
                entities.append((target_type, entity[name_key]))
        return entities

    def delete_policy(self, arn: str) -> None:
        """Delete a managed policy; non-default versions must go first."""
        for version in self.list_policy_versions(arn):
            if not version.get("IsDefaultVersion"):
                self._ignore_missing(self.delete_policy_version, arn, version["VersionId"])
        self._call("delete_policy", PolicyArn=arn)
        logger.info(f"Deleted policy {arn}")

    # Users

    def create_user(self, name: str) -> str:
        """Create a user and return its ARN."""
        return self._call("create_user", UserName=name)["User"]["Arn"]

    def create_login_profile(self, name: str, password: str) -> None:
        self._call("create_login_profile", UserName=name, Password=password, PasswordResetRequired=False)

    def has_login_profile(self, name: str) -> bool:
        try:
            self._call("get_login_profile", UserName=name)
        except RemoteNotFoundError:
            return False
        return True

    def delete_login_profile(self, name: str) -> None:
        self._call("delete_login_profile", UserName=name)

    def create_access_key(self, name: str) -> tuple[str, str]:
        """Create an access key and return (access key id, secret access key)."""
        key = self._call("create_access_key", UserName=name)["AccessKey"]
        return key["AccessKeyId"], key["SecretAccessKey"]

    def list_access_keys(self, name: str) -> list[str]:
        return [
            key["AccessKeyId"]
            for key in self._paginate("list_access_keys", "AccessKeyMetadata", UserName=name)
        ]

    def delete_access_key(self, name: str, access_key_id: str) -> None:
        self._call("delete_access_key", UserName=name, AccessKeyId=access_key_id)

    def delete_user(self, name: str) -> None:
        """Delete a user and everything hanging off it.

        Access keys, the login profile, inline and attached policies and
        group memberships are removed before the user itself.
        """
        for access_key_id in self.list_access_keys(name):
            self._ignore_missing(self.delete_access_key, name, access_key_id)
        self._ignore_missing(self.delete_login_profile, name)
        for policy_name in self._paginate("list_user_policies", "PolicyNames", UserName=name):
            self._ignore_missing(self._call, "delete_user_policy", UserName=name, PolicyName=policy_name)
        for attached in self._paginate("list_attached_user_policies", "AttachedPolicies", UserName=name):
            self._ignore_missing(self._call, "detach_user_policy", UserName=name, PolicyArn=attached["PolicyArn"])
        for group in self._paginate("list_groups_for_user", "Groups", UserName=name):
            self._ignore_missing(self.remove_user_from_group, group["GroupName"], name)
        self._call("delete_user", UserName=name)
        logger.info(f"Deleted user {name}")

    # Groups

    def create_group(self, name: str) -> str:
        """Create a group and return its ARN."""
        return self._call("create_group", GroupName=name)["Group"]["Arn"]

    def add_user_to_group(self, group_name: str, user_name: str) -> None:
        self._call("add_user_to_group", GroupName=group_name, UserName=user_name)

    def remove_user_from_group(self, group_name: str, user_name: str) -> None:
        self._call("remove_user_from_group", GroupName=group_name, UserName=user_name)

    def list_group_members(self, name: str) -> list[str]:
        return [user["UserName"] for user in self._paginate("get_group", "Users", GroupName=name)]

    def delete_group(self, name: str) -> None:
        """Delete a group after removing members and policies."""
        for user_name in self.list_group_members(name):
            self._ignore_missing(self.remove_user_from_group, name, user_name)
        for attached in self._paginate("list_attached_group_policies", "AttachedPolicies", GroupName=name):
            self._ignore_missing(self._call, "detach_group_policy", GroupName=name, PolicyArn=attached["PolicyArn"])
        for policy_name in self._paginate("list_group_policies", "PolicyNames", GroupName=name):
            self._ignore_missing(self._call, "delete_group_policy", GroupName=name, PolicyName=policy_name)
        self._call("delete_group", GroupName=name)
        logger.info(f"Deleted group {name}")

    # Attachments

    _ATTACH_OPERATIONS = {
        "Role": ("attach_role_policy", "detach_role_policy", "RoleName"),
        "User": ("attach_user_policy", "detach_user_policy", "UserName"),
        "Group": ("attach_group_policy", "detach_group_policy", "GroupName"),
    }

    def attach_policy(self, target_type: str, target_name: str, policy_arn: str) -> None:
        """Attach a managed policy to a role, user or group."""
        attach, _, name_param = self._ATTACH_OPERATIONS[target_type]
        self._call(attach, **{name_param: target_name, "PolicyArn": policy_arn})

    def detach_policy(self, target_type: str, target_name: str, policy_arn: str) -> None:
        """Detach a managed policy from a role, user or group."""
        _, detach, name_param = self._ATTACH_OPERATIONS[target_type]
        self._call(detach, **{name_param: target_name, "PolicyArn": policy_arn})

    @staticmethod
    def _ignore_missing(func: Any, *args: Any, **kwargs: Any) -> None:
        try:
            func(*args, **kwargs)
        except RemoteNotFoundError:
            logger.debug(f"{getattr(func, '__name__', func)} target already gone: {args}")
