"""Remote object adapters, one per declared kind."""

from .attachment import AttachmentDesired, PolicyAttachmentAdapter
from .base import RemoteObjectAdapter
from .group import GroupAdapter, GroupDesired
from .policy import PolicyAdapter, PolicyDesired
from .role import RoleAdapter, RoleDesired
from .user import UserAdapter, UserCredentials, UserDesired

__all__ = [
    "AttachmentDesired",
    "GroupAdapter",
    "GroupDesired",
    "PolicyAdapter",
    "PolicyAttachmentAdapter",
    "PolicyDesired",
    "RemoteObjectAdapter",
    "RoleAdapter",
    "RoleDesired",
    "UserAdapter",
    "UserCredentials",
    "UserDesired",
]
