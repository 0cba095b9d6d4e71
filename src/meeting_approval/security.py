"""Roles, permissions, and the explicit session context for workflow calls."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Permission(StrEnum):
    """Permissions checked by the workflow."""

    VIEW = "view"
    CREATE = "create"
    APPROVE = "approve"


class RoleName(StrEnum):
    """Roles referenced by the meeting workflow."""

    REQUESTER = "REQUESTER"
    APPROVER_HO = "APPROVER_HO"
    APPROVER_MGMT = "APPROVER_MGMT"


@dataclass(frozen=True)
class Role:
    """Role definition including its permissions."""

    name: RoleName
    permissions: frozenset[Permission]

    def can(self, permission: Permission) -> bool:
        """Return whether the role grants a permission."""

        return permission in self.permissions


DEFAULT_ROLES: dict[RoleName, Role] = {
    RoleName.REQUESTER: Role(
        name=RoleName.REQUESTER,
        permissions=frozenset({Permission.VIEW, Permission.CREATE}),
    ),
    # Head-office and management approvers also schedule their own meetings.
    RoleName.APPROVER_HO: Role(
        name=RoleName.APPROVER_HO,
        permissions=frozenset(Permission),
    ),
    RoleName.APPROVER_MGMT: Role(
        name=RoleName.APPROVER_MGMT,
        permissions=frozenset(Permission),
    ),
}

APPROVER_ROLES: frozenset[RoleName] = frozenset(
    role.name for role in DEFAULT_ROLES.values() if role.can(Permission.APPROVE)
)


def role_can(role: RoleName | str, permission: Permission) -> bool:
    """Return whether a role name grants a permission; unknown roles grant nothing."""

    try:
        resolved = RoleName(role)
    except ValueError:
        return False
    return DEFAULT_ROLES[resolved].can(permission)


def is_approver(role: RoleName | str) -> bool:
    """Return True when the role may decide pending requests."""

    return role_can(role, Permission.APPROVE)


@dataclass(frozen=True)
class SessionContext:
    """Acting user, role, and bearer credential passed into every workflow call."""

    user_id: str
    role: RoleName
    credential: str | None = None

    @property
    def has_credential(self) -> bool:
        return bool(self.credential)

    def can(self, permission: Permission) -> bool:
        return role_can(self.role, permission)
