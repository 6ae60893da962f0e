"""Actor identity and role resolution.

Hosts hand over permissions either as a list of names or as a map of
name -> granted flag. Both shapes are normalized here, once, at the session
boundary; nothing downstream inspects raw permission payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping

PERMISSION_APPROVAL_OVERRIDE = "approval.override"
PERMISSION_APPROVAL_MANAGE = "approval.manage"
PERMISSION_APPROVAL_VIEW = "approval.view"
PERMISSION_PAYROLL_MANAGE = "payroll.manage"
PERMISSION_ATTENDANCE_IMPORT = "attendance.import"


class Role(str, Enum):
    ADMIN = "admin"
    HR = "hr"
    MANAGER = "manager"
    EMPLOYEE = "employee"


# Highest role wins.
ROLE_PERMISSIONS: tuple[tuple[str, Role], ...] = (
    (PERMISSION_APPROVAL_OVERRIDE, Role.ADMIN),
    (PERMISSION_APPROVAL_MANAGE, Role.HR),
    (PERMISSION_APPROVAL_VIEW, Role.MANAGER),
)


def normalize_permissions(
    permissions: Iterable[str] | Mapping[str, bool] | None,
) -> frozenset[str]:
    """Turn a permission list or a permission->bool map into a set."""
    if permissions is None:
        return frozenset()
    if isinstance(permissions, Mapping):
        return frozenset(name for name, granted in permissions.items() if granted)
    if isinstance(permissions, str):
        return frozenset(p.strip() for p in permissions.split(",") if p.strip())
    return frozenset(permissions)


def resolve_role(permissions: frozenset[str]) -> Role:
    for permission, role in ROLE_PERMISSIONS:
        if permission in permissions:
            return role
    return Role.EMPLOYEE


@dataclass(frozen=True)
class ActorContext:
    """Who is calling, with normalized permissions and role."""

    actor_id: str
    actor_name: str
    permissions: frozenset[str]
    role: Role

    @classmethod
    def from_claims(
        cls,
        actor_id: str,
        actor_name: str | None = None,
        permissions: Iterable[str] | Mapping[str, bool] | None = None,
    ) -> ActorContext:
        normalized = normalize_permissions(permissions)
        return cls(
            actor_id=actor_id,
            actor_name=actor_name or actor_id,
            permissions=normalized,
            role=resolve_role(normalized),
        )

    @classmethod
    def system(cls) -> ActorContext:
        return cls(
            actor_id="system",
            actor_name="System",
            permissions=frozenset(),
            role=Role.ADMIN,
        )

    def has(self, permission: str) -> bool:
        return permission in self.permissions

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_hr_or_admin(self) -> bool:
        return self.role in (Role.ADMIN, Role.HR)
