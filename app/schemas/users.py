"""User, role and employee schemas shared by the workflow and notification layers."""

from __future__ import annotations

from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RoleName(str, Enum):
    """Role names granted to users."""

    EMPLOYEE = "ROLE_EMPLOYEE"
    NURSE = "ROLE_NURSE"
    DOCTOR = "ROLE_DOCTOR"
    RH = "ROLE_RH"
    ADMIN = "ROLE_ADMIN"


MEDICAL_ROLES = frozenset({RoleName.NURSE, RoleName.DOCTOR})
PRIVILEGED_ROLES = frozenset({RoleName.NURSE, RoleName.DOCTOR, RoleName.RH, RoleName.ADMIN})


class UserSummary(BaseModel):
    """A user account with its role set."""

    id: UUID
    email: str
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    roles: frozenset[RoleName] = Field(default_factory=frozenset)
    is_active: bool = True

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @property
    def display_name(self) -> str:
        """Full name when known, otherwise the email address."""
        if self.first_name and self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.email

    def has_role(self, role: RoleName) -> bool:
        return role in self.roles

    def has_any_role(self, roles: frozenset[RoleName] | set[RoleName]) -> bool:
        return bool(self.roles & roles)


class EmployeeProfile(BaseModel):
    """HR profile of an employee, with the N+1 and N+2 managers."""

    id: UUID
    user: UserSummary | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None
    manager1: EmployeeProfile | None = None
    manager2: EmployeeProfile | None = None

    model_config = ConfigDict(frozen=True, from_attributes=True)

    @property
    def user_id(self) -> UUID | None:
        return self.user.id if self.user else None

    @property
    def email(self) -> str:
        return self.user.email if self.user else ""

    @property
    def display_name(self) -> str:
        """Employee name as shown in notifications."""
        if self.first_name and self.first_name.strip() and self.last_name and self.last_name.strip():
            return f"{self.first_name} {self.last_name}"
        if self.user:
            return self.user.email
        return "Collaborateur"

    def manager_users(self) -> list[UserSummary]:
        """Users behind manager1 and manager2, skipping missing links."""
        result = []
        for manager in (self.manager1, self.manager2):
            if manager is not None and manager.user is not None:
                result.append(manager.user)
        return result


class CurrentActor(BaseModel):
    """Identity context of the caller: user, roles and linked employee profile."""

    user: UserSummary
    employee: EmployeeProfile | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def id(self) -> UUID:
        return self.user.id

    @property
    def is_medical_staff(self) -> bool:
        return self.user.has_any_role(MEDICAL_ROLES)

    @property
    def is_rh(self) -> bool:
        return self.user.has_role(RoleName.RH)

    @property
    def is_privileged(self) -> bool:
        return self.user.has_any_role(PRIVILEGED_ROLES)

    @property
    def is_nurse(self) -> bool:
        return self.user.has_role(RoleName.NURSE)

    @property
    def is_doctor(self) -> bool:
        return self.user.has_role(RoleName.DOCTOR)
