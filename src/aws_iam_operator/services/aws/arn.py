"""Helpers for ARN-addressed remote identities."""

from __future__ import annotations

import re

_ARN_PATTERN = re.compile(r"^arn:aws[a-zA-Z\-]*:[a-z0-9\-]+:[a-z0-9\-]*:(\d{12}|aws)?:.+$")


def is_arn(value: str) -> bool:
    return bool(value) and bool(_ARN_PATTERN.match(value))


def name_from_arn(arn: str) -> str:
    """Return the object name encoded in an IAM ARN.

    IAM ARNs carry an optional path, e.g. ``arn:aws:iam::123456789012:role/path/name``;
    the name is the last path segment.
    """
    if not is_arn(arn):
        raise ValueError(f"'{arn}' is not a valid ARN")
    resource = arn.split(":", 5)[5]
    return resource.split("/")[-1]


_RESOURCE_TYPES = {
    "role": "Role",
    "user": "User",
    "group": "Group",
    "policy": "Policy",
}


def kind_from_arn(arn: str) -> str:
    """Return the declared kind addressed by an IAM ARN (Role, User, Group or Policy)."""
    if not is_arn(arn):
        raise ValueError(f"'{arn}' is not a valid ARN")
    resource_type = arn.split(":", 5)[5].split("/")[0]
    try:
        return _RESOURCE_TYPES[resource_type]
    except KeyError:
        raise ValueError(f"'{arn}' does not address an IAM role, user, group or policy") from None
