"""Adapter for IAM users and their credentials."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..constants import KIND_USER
from ..services.aws import name_from_arn
from ..utils.context import ReconcileContext
from ..utils.secrets import generate_password
from .base import RemoteObjectAdapter


@dataclass
class UserCredentials:
    """Credentials minted during one reconcile pass.

    Only freshly created credentials are known; the remote service never
    returns a secret twice.
    """

    password: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None
    login_profile_removed: bool = False
    access_keys_removed: bool = False


@dataclass
class UserDesired:
    """Desired state of a user."""

    name: str
    login_profile: bool = False
    programmatic_access: bool = False
    issued: UserCredentials = field(default_factory=UserCredentials)


class UserAdapter(RemoteObjectAdapter):
    """Users are updated in place: credential presence follows the declared flags."""

    kind = KIND_USER
    supports_update = True

    def create(self, desired: UserDesired, ctx: ReconcileContext) -> str:
        arn = self.call(ctx, "create_user", self.iam.create_user, desired.name)
        if desired.login_profile:
            self._create_login_profile(desired, ctx)
        if desired.programmatic_access:
            self._create_access_key(desired, ctx)
        return arn

    def update(self, arn: str, desired: UserDesired, ctx: ReconcileContext) -> str:
        name = name_from_arn(arn)
        if name != desired.name:
            # The remote name changed (prefix or rename); users cannot be renamed in place
            self.delete(arn, ctx)
            return self.create(desired, ctx)

        has_profile = self.call(ctx, "get_login_profile", self.iam.has_login_profile, name)
        if desired.login_profile and not has_profile:
            self._create_login_profile(desired, ctx)
        elif not desired.login_profile and has_profile:
            self.call(ctx, "delete_login_profile", self.iam.delete_login_profile, name)
            desired.issued.login_profile_removed = True

        access_keys = self.call(ctx, "list_access_keys", self.iam.list_access_keys, name)
        if desired.programmatic_access and not access_keys:
            self._create_access_key(desired, ctx)
        elif not desired.programmatic_access and access_keys:
            for access_key_id in access_keys:
                self.call(ctx, "delete_access_key", self.iam.delete_access_key, name, access_key_id)
            desired.issued.access_keys_removed = True
        return arn

    def delete(self, arn: str, ctx: ReconcileContext, recorded: dict[str, Any] | None = None) -> None:
        self.call(ctx, "delete_user", self.iam.delete_user, name_from_arn(arn))

    def status_fields(self, desired: UserDesired) -> dict[str, Any]:
        return {
            "loginProfileCreated": desired.login_profile,
            "programmaticAccessCreated": desired.programmatic_access,
        }

    def _create_login_profile(self, desired: UserDesired, ctx: ReconcileContext) -> None:
        password = generate_password()
        self.call(ctx, "create_login_profile", self.iam.create_login_profile, desired.name, password)
        desired.issued.password = password

    def _create_access_key(self, desired: UserDesired, ctx: ReconcileContext) -> None:
        access_key_id, secret_access_key = self.call(
            ctx, "create_access_key", self.iam.create_access_key, desired.name
        )
        desired.issued.access_key_id = access_key_id
        desired.issued.secret_access_key = secret_access_key
