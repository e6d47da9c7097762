"""
Role, permission and grant contracts.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, FrozenSet, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from ..errors import DataIntegrityError
from .plans import utcnow


class Role(str, Enum):
    """Closed set of user roles."""
    SUPER_ADMIN = "SUPER_ADMIN"
    SCHOOL_ADMIN = "SCHOOL_ADMIN"
    MANAGER = "MANAGER"
    PERSONNEL = "PERSONNEL"
    ASSISTANT = "ASSISTANT"
    SECRETARY = "SECRETARY"
    TEACHER = "TEACHER"
    STUDENT = "STUDENT"
    PARENT = "PARENT"

    @property
    def is_full_admin(self) -> bool:
        return self in FULL_ADMIN_ROLES

    @classmethod
    def parse(cls, value: Any) -> "Role":
        """Parse a stored or claimed role; anything outside the set is fatal."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise DataIntegrityError(
                "Unknown role",
                details={"role": str(value)}
            )


FULL_ADMIN_ROLES = frozenset({Role.SUPER_ADMIN, Role.SCHOOL_ADMIN})


class Principal(BaseModel):
    """The authenticated user a request acts as."""
    model_config = ConfigDict(frozen=True)

    user_id: str
    role: Role
    tenant_id: Optional[str] = None

    @model_validator(mode="after")
    def _tenant_scope(self) -> "Principal":
        if self.role is not Role.SUPER_ADMIN and not self.tenant_id:
            raise ValueError(f"{self.role.value} users must belong to a tenant")
        return self


class Grant(BaseModel):
    """One (category, action) pair."""
    model_config = ConfigDict(frozen=True)

    category: str
    action: str


class Permission(BaseModel):
    """Named capability within a category, global across tenants."""
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    category: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=64)
    description: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_validator("category", "name")
    @classmethod
    def _normalize(cls, value: str) -> str:
        value = value.strip().lower()
        if "." in value:
            raise ValueError("must not contain '.'")
        return value

    @property
    def key(self) -> str:
        return f"{self.category}.{self.name}"

    def as_grant(self) -> Grant:
        return Grant(category=self.category, action=self.name)


class UserPermissionGrant(BaseModel):
    """Row granting one permission to one user."""
    user_id: str
    permission_id: str
    granted_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)


class EffectivePermissions(BaseModel):
    """What a user may do: the all-access marker or an explicit grant set."""
    user_id: str
    role: Role
    tenant_id: Optional[str] = None
    all_access: bool = False
    grants: FrozenSet[Grant] = Field(default_factory=frozenset)

    @model_validator(mode="after")
    def _admin_marker(self) -> "EffectivePermissions":
        if self.all_access and self.grants:
            raise ValueError("all-access permissions carry no enumerated grants")
        return self

    @field_serializer("grants")
    def _sorted_grants(self, grants: FrozenSet[Grant]) -> List[dict]:
        return [
            {"category": g.category, "action": g.action}
            for g in sorted(grants, key=lambda g: (g.category, g.action))
        ]

    @classmethod
    def for_principal(cls, principal: Principal,
                      permissions: Iterable[Permission] = ()) -> "EffectivePermissions":
        if principal.role.is_full_admin:
            return cls(
                user_id=principal.user_id,
                role=principal.role,
                tenant_id=principal.tenant_id,
                all_access=True,
            )
        return cls(
            user_id=principal.user_id,
            role=principal.role,
            tenant_id=principal.tenant_id,
            grants=frozenset(p.as_grant() for p in permissions),
        )


class UserAccount(BaseModel):
    """Stored user row as read from the data store.

    ``role`` keeps the raw stored value; ``principal()`` validates it.
    """
    user_id: str
    role: str
    tenant_id: Optional[str] = None
    display_name: Optional[str] = None

    def principal(self) -> Principal:
        role = Role.parse(self.role)
        if role is not Role.SUPER_ADMIN and not self.tenant_id:
            raise DataIntegrityError(
                "User has no school",
                details={"user_id": self.user_id, "role": role.value}
            )
        return Principal(user_id=self.user_id, role=role, tenant_id=self.tenant_id)
