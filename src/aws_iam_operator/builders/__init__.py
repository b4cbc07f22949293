"""Builders turning declared objects into adapter desired state."""

from .identity import (
    create_attachment_desired_from_spec,
    create_group_desired_from_spec,
    create_user_desired_from_spec,
)
from .policy import build_statements, create_policy_desired_from_spec
from .role import build_irsa_statement, create_role_desired_from_spec

__all__ = [
    "build_irsa_statement",
    "build_statements",
    "create_attachment_desired_from_spec",
    "create_group_desired_from_spec",
    "create_policy_desired_from_spec",
    "create_role_desired_from_spec",
    "create_user_desired_from_spec",
]
