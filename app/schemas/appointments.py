"""Appointment schemas for the workflow domain and request/response validation."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.schemas.users import EmployeeProfile, UserSummary


class AppointmentStatus(str, Enum):
    """Appointment workflow status enumeration."""

    REQUESTED_EMPLOYEE = "REQUESTED_EMPLOYEE"
    OBLIGATORY = "OBLIGATORY"
    PROPOSED_MEDECIN = "PROPOSED_MEDECIN"
    PLANNED_BY_MEDICAL_STAFF = "PLANNED_BY_MEDICAL_STAFF"
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED})


class AppointmentType(str, Enum):
    """Occupational-medicine visit type."""

    SPONTANEOUS = "SPONTANEOUS"
    PRE_RECRUITMENT = "PRE_RECRUITMENT"
    PERIODIC = "PERIODIC"
    RETURN_TO_WORK = "RETURN_TO_WORK"
    SURVEILLANCE_PARTICULIERE = "SURVEILLANCE_PARTICULIERE"
    MEDICAL_CALL = "MEDICAL_CALL"
    OTHER = "OTHER"


class VisitMode(str, Enum):
    """How the visit takes place."""

    IN_PERSON = "IN_PERSON"
    REMOTE = "REMOTE"


class AppointmentComment(BaseModel):
    """A comment attached to an appointment."""

    id: UUID | None = None
    author: UserSummary | None = None
    comment: str
    created_at: datetime

    model_config = ConfigDict(frozen=True)


class Appointment(BaseModel):
    """Appointment as seen by the workflow: references are hydrated snapshots."""

    id: UUID | None = None
    employee: EmployeeProfile
    nurse: UserSummary | None = None
    doctor: UserSummary | None = None
    type: AppointmentType | None = None
    status: AppointmentStatus
    visit_mode: VisitMode | None = None
    is_obligatory: bool = False
    requested_date_employee: datetime | None = None
    proposed_date: datetime | None = None
    scheduled_time: datetime | None = None
    motif: str | None = None
    reason: str | None = None
    notes: str | None = None
    medical_instructions: str | None = None
    medical_service_phone: str | None = None
    cancellation_reason: str | None = None
    comments: list[AppointmentComment] = Field(default_factory=list)
    created_by: UserSummary | None = None
    updated_by: UserSummary | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def effective_when(self) -> datetime | None:
        """The authoritative date: scheduled, then proposed, then requested."""
        return self.scheduled_time or self.proposed_date or self.requested_date_employee

    @property
    def latest_comment(self) -> str | None:
        if not self.comments:
            return None
        text = self.comments[-1].comment
        return text.strip() if text and text.strip() else None


class AppointmentRequestCreate(BaseModel):
    """Employee self-service appointment request."""

    type: AppointmentType = AppointmentType.SPONTANEOUS
    requested_date_employee: datetime
    visit_mode: VisitMode | None = None
    motif: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)


class ObligatoryVisitCreate(BaseModel):
    """RH-initiated obligatory visit for one employee."""

    employee_id: UUID
    type: AppointmentType = AppointmentType.PERIODIC
    requested_date_employee: datetime | None = None
    visit_mode: VisitMode | None = None
    reason: str | None = Field(None, max_length=500)
    notes: str | None = Field(None, max_length=1000)
    extra_message: str | None = Field(None, max_length=255)


class MedicalVisitPlan(BaseModel):
    """Medical staff planning a visit directly."""

    employee_id: UUID
    type: AppointmentType
    scheduled_time: datetime
    visit_mode: VisitMode | None = None
    medical_instructions: str | None = Field(None, max_length=2000)
    notes: str | None = Field(None, max_length=1000)


class SlotProposal(BaseModel):
    """Medical staff proposing a slot."""

    proposed_date: datetime | None = None
    visit_mode: VisitMode | None = None
    comment: str | None = Field(None, max_length=1000)


class MedicalStaffConfirmation(BaseModel):
    """Medical staff confirming an employee request."""

    visit_mode: VisitMode | None = None


class AppointmentCancel(BaseModel):
    """Cancellation request."""

    reason: str | None = Field(None, max_length=1000)


class CommentCreate(BaseModel):
    """New comment on an appointment."""

    comment: str = Field(..., min_length=1, max_length=1000)

    @field_validator("comment")
    @classmethod
    def validate_comment(cls, v: str) -> str:
        """Reject comments that are only whitespace."""
        if not v.strip():
            raise ValueError("Comment must not be blank")
        return v.strip()


class CommentResponse(BaseModel):
    """Comment as returned to callers."""

    id: UUID | None
    author_id: UUID | None
    author_name: str | None
    comment: str
    created_at: datetime


class AppointmentResponse(BaseModel):
    """Privacy-filtered appointment projection with viewer-dependent action flags."""

    id: UUID
    employee_id: UUID
    employee_name: str
    employee_email: str
    nurse_id: UUID | None = None
    doctor_id: UUID | None = None
    type: AppointmentType | None = None
    status: AppointmentStatus
    visit_mode: VisitMode | None = None
    is_obligatory: bool
    requested_date_employee: datetime | None = None
    proposed_date: datetime | None = None
    scheduled_time: datetime | None = None
    motif: str | None = None
    notes: str | None = None
    medical_instructions: str | None = None
    medical_service_phone: str | None = None
    cancellation_reason: str | None = None
    comments: list[CommentResponse] = Field(default_factory=list)
    can_confirm: bool = False
    can_cancel: bool = False
    can_propose: bool = False
    can_comment: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    type: AppointmentType | None = None
    statuses: list[AppointmentStatus] | None = None
    visit_mode: VisitMode | None = None
    employee_id: UUID | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)
