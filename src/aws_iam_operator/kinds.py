"""Per-kind wiring of builders, adapters and post-converge hooks."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from kubernetes import client

from .adapters import (
    GroupAdapter,
    PolicyAdapter,
    PolicyAttachmentAdapter,
    RemoteObjectAdapter,
    RoleAdapter,
    UserAdapter,
    UserDesired,
)
from .builders import (
    build_statements,
    create_attachment_desired_from_spec,
    create_group_desired_from_spec,
    create_policy_desired_from_spec,
    create_role_desired_from_spec,
    create_user_desired_from_spec,
)
from .config import OperatorConfig
from .constants import (
    ACCESS_KEY_SECRET_ID_KEY,
    ACCESS_KEY_SECRET_SECRET_KEY,
    ACCESS_KEY_SECRET_SUFFIX,
    API_GROUP_VERSION,
    KIND_ASSUME_ROLE_POLICY,
    KIND_GROUP,
    KIND_POLICY,
    KIND_POLICY_ATTACHMENT,
    KIND_ROLE,
    KIND_USER,
    LOGIN_SECRET_PASSWORD_KEY,
    LOGIN_SECRET_SUFFIX,
    LOGIN_SECRET_USER_KEY,
)
from .exceptions import ReconcileError, RemoteError
from .models.resource import ManagedResource
from .resolver import ReferenceResolver
from .services.aws import IAMService
from .utils.context import ReconcileContext
from .utils.secrets import create_secret, delete_secret, ensure_service_account

logger = logging.getLogger(__name__)


@dataclass
class DesiredState:
    """Desired remote state computed for one pass.

    Attributes:
        value: Adapter-specific desired object (None for store-only kinds)
        token: Version token of everything the object references
    """

    value: Any
    token: str = ""


class KindDefinition:
    """Everything the convergence controller needs to know about one kind.

    Store-only kinds have no adapter: they get finalizer and deletion
    protection handling but no remote calls.
    """

    kind: str = ""

    def __init__(self, adapter: RemoteObjectAdapter | None, config: OperatorConfig) -> None:
        self.adapter = adapter
        self.config = config

    @property
    def store_only(self) -> bool:
        return self.adapter is None

    def build(self, resource: ManagedResource, resolver: ReferenceResolver) -> DesiredState:
        """Resolve references and build the desired state for ``resource``."""
        raise NotImplementedError

    def after_converge(self, resource: ManagedResource, desired: DesiredState, arn: str, ctx: ReconcileContext) -> None:
        """Run side effects that depend on the converged remote object."""

    def after_delete(self, resource: ManagedResource) -> None:
        """Clean up side effects once the remote object is gone."""


class PolicyKind(KindDefinition):
    kind = KIND_POLICY

    def build(self, resource: ManagedResource, resolver: ReferenceResolver) -> DesiredState:
        return DesiredState(*create_policy_desired_from_spec(resource, self.config))


class AssumeRolePolicyKind(KindDefinition):
    """Trust documents live only in the store and are read by roles."""

    kind = KIND_ASSUME_ROLE_POLICY

    def build(self, resource: ManagedResource, resolver: ReferenceResolver) -> DesiredState:
        # Validate the document so a broken one surfaces on its own status
        build_statements(resource.spec)
        return DesiredState(None, "")


class RoleKind(KindDefinition):
    kind = KIND_ROLE

    def __init__(self, adapter: RemoteObjectAdapter | None, config: OperatorConfig, core_api: client.CoreV1Api) -> None:
        super().__init__(adapter, config)
        self.core_api = core_api

    def build(self, resource: ManagedResource, resolver: ReferenceResolver) -> DesiredState:
        return DesiredState(*create_role_desired_from_spec(resource, resolver, self.config))

    def after_converge(self, resource: ManagedResource, desired: DesiredState, arn: str, ctx: ReconcileContext) -> None:
        if not resource.spec.get("createServiceAccount"):
            return
        ctx.check()
        try:
            ensure_service_account(
                self.core_api,
                resource.namespace,
                resource.name,
                arn,
                labels=resource.labels,
                owner_references=[resource.owner_reference(API_GROUP_VERSION)],
            )
        except client.exceptions.ApiException as e:
            raise ReconcileError(f"unable to create ServiceAccount for Role: {e.reason}") from e


class UserKind(KindDefinition):
    """Users publish freshly minted credentials into owned Secrets."""

    kind = KIND_USER

    def __init__(self, adapter: RemoteObjectAdapter | None, config: OperatorConfig, core_api: client.CoreV1Api) -> None:
        super().__init__(adapter, config)
        self.core_api = core_api

    def build(self, resource: ManagedResource, resolver: ReferenceResolver) -> DesiredState:
        return DesiredState(*create_user_desired_from_spec(resource, self.config))

    def after_converge(self, resource: ManagedResource, desired: DesiredState, arn: str, ctx: ReconcileContext) -> None:
        user: UserDesired = desired.value
        issued = user.issued
        owner = [resource.owner_reference(API_GROUP_VERSION)]
        login_secret = f"{resource.name}{LOGIN_SECRET_SUFFIX}"
        access_key_secret = f"{resource.name}{ACCESS_KEY_SECRET_SUFFIX}"

        try:
            if issued.password:
                create_secret(
                    self.core_api,
                    resource.namespace,
                    login_secret,
                    {LOGIN_SECRET_USER_KEY: user.name, LOGIN_SECRET_PASSWORD_KEY: issued.password},
                    owner,
                )
            elif not user.login_profile:
                delete_secret(self.core_api, resource.namespace, login_secret)

            if issued.access_key_id:
                create_secret(
                    self.core_api,
                    resource.namespace,
                    access_key_secret,
                    {
                        ACCESS_KEY_SECRET_ID_KEY: issued.access_key_id,
                        ACCESS_KEY_SECRET_SECRET_KEY: issued.secret_access_key or "",
                    },
                    owner,
                )
            elif not user.programmatic_access:
                delete_secret(self.core_api, resource.namespace, access_key_secret)
        except client.exceptions.ApiException as e:
            # A credential nobody can read is useless; revoke it so the next pass mints a new one
            self._revoke_unpublished(user)
            raise ReconcileError(f"unable to publish User access details: {e.reason}") from e

    def _revoke_unpublished(self, user: UserDesired) -> None:
        iam: IAMService = self.adapter.iam
        try:
            if user.issued.password:
                iam.delete_login_profile(user.name)
            if user.issued.access_key_id:
                iam.delete_access_key(user.name, user.issued.access_key_id)
        except RemoteError as e:
            logger.error(f"Failed to revoke unpublished credentials of user {user.name}: {e}")
            return
        logger.warning(f"Revoked unpublished credentials of user {user.name}")

    def after_delete(self, resource: ManagedResource) -> None:
        # Secrets are owned by the User and garbage collected, removing them eagerly is best effort
        for suffix in (LOGIN_SECRET_SUFFIX, ACCESS_KEY_SECRET_SUFFIX):
            try:
                delete_secret(self.core_api, resource.namespace, f"{resource.name}{suffix}")
            except client.exceptions.ApiException as e:
                logger.warning(f"Failed to delete secret {resource.name}{suffix}: {e.reason}")


class GroupKind(KindDefinition):
    kind = KIND_GROUP

    def build(self, resource: ManagedResource, resolver: ReferenceResolver) -> DesiredState:
        return DesiredState(*create_group_desired_from_spec(resource, resolver, self.config))


class PolicyAttachmentKind(KindDefinition):
    kind = KIND_POLICY_ATTACHMENT

    def build(self, resource: ManagedResource, resolver: ReferenceResolver) -> DesiredState:
        return DesiredState(*create_attachment_desired_from_spec(resource, resolver))


def default_kinds(
    iam: IAMService,
    config: OperatorConfig,
    core_api: client.CoreV1Api | None = None,
) -> dict[str, KindDefinition]:
    """Build the definition of every supported kind."""
    core_api = core_api or client.CoreV1Api()
    definitions: list[KindDefinition] = [
        PolicyKind(PolicyAdapter(iam), config),
        AssumeRolePolicyKind(None, config),
        RoleKind(RoleAdapter(iam), config, core_api),
        UserKind(UserAdapter(iam), config, core_api),
        GroupKind(GroupAdapter(iam), config),
        PolicyAttachmentKind(PolicyAttachmentAdapter(iam), config),
    ]
    return {definition.kind: definition for definition in definitions}
