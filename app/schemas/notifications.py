"""Notification schemas: scenario tags, actors, in-app records and email payloads."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class NotificationScenario(str, Enum):
    """Closed set of business events that trigger notifications."""

    APPOINTMENT_REQUESTED = "APPOINTMENT_REQUESTED"
    APPOINTMENT_SLOT_PROPOSED = "APPOINTMENT_SLOT_PROPOSED"
    APPOINTMENT_CONFIRMED = "APPOINTMENT_CONFIRMED"
    APPOINTMENT_CONFIRMED_RH = "APPOINTMENT_CONFIRMED_RH"
    APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"
    MEDICAL_VISIT_PLANNED = "MEDICAL_VISIT_PLANNED"
    MEDICAL_VISIT_CONFIRMED_BY_EMPLOYEE = "MEDICAL_VISIT_CONFIRMED_BY_EMPLOYEE"
    MEDICAL_VISIT_CANCELLED = "MEDICAL_VISIT_CANCELLED"

    @classmethod
    def from_string(cls, value: "str | NotificationScenario | None") -> "NotificationScenario | None":
        """Parse a scenario tag, returning None for unknown values."""
        if value is None:
            return None
        if isinstance(value, cls):
            return value
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class NotificationActor(str, Enum):
    """Role context attributed to whoever triggered a scenario."""

    EMPLOYEE = "EMPLOYEE"
    MEDICAL_STAFF = "MEDICAL_STAFF"
    RH = "RH"
    SYSTEM = "SYSTEM"

    @classmethod
    def from_scenario(cls, scenario: "str | NotificationScenario | None") -> "NotificationActor | None":
        """Derive the actor from a scenario tag when no override is given."""
        if scenario is None:
            return None
        tag = scenario.value if isinstance(scenario, NotificationScenario) else scenario.upper()
        if "_BY_EMPLOYEE" in tag:
            return cls.EMPLOYEE
        if tag.endswith("_RH"):
            return cls.RH
        if any(key in tag for key in ("MEDICAL_STAFF", "OBLIGATORY", "SLOT_PROPOSED", "MEDICAL_VISIT_PLANNED")):
            return cls.MEDICAL_STAFF
        if "CREATION" in tag:
            return cls.SYSTEM
        return None


class NotificationType(str, Enum):
    """Type tag of an in-app notification."""

    APPOINTMENT = "APPOINTMENT"
    VALIDATION = "VALIDATION"
    SYSTEM = "SYSTEM"


APPOINTMENT_ENTITY = "APPOINTMENT"


class InAppNotification(BaseModel):
    """In-app notification record."""

    id: UUID
    user_id: UUID
    title: str
    message: str
    type: NotificationType
    read: bool
    related_entity_type: str | None = None
    related_entity_id: UUID | None = None
    action_url: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class NotificationListResponse(BaseModel):
    """Schema for paginated notification feed."""

    total: int
    page: int
    page_size: int
    items: list[InAppNotification]


class UnreadCountResponse(BaseModel):
    """Schema for unread notification count."""

    unread: int


class MarkAllReadResponse(BaseModel):
    """Schema for bulk mark-as-read result."""

    updated: int


class EmailCta(BaseModel):
    """Call-to-action button of an email."""

    url: str
    label: str = ""

    model_config = ConfigDict(frozen=True)


class OutgoingEmail(BaseModel):
    """One templated email handed to the transport."""

    to: str
    subject: str
    template_name: str
    context: dict[str, Any] = Field(default_factory=dict)
