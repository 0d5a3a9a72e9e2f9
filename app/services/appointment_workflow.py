"""
Appointment workflow state machine.

Validates and applies transitions without touching persistence. Every
operation works on an immutable copy: a rejected transition raises before
anything is produced, so the caller's appointment keeps its status.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

import structlog

from app.core.exceptions import (
    InvalidStateTransitionException,
    UnauthorizedActionException,
    ValidationException,
)
from app.schemas.appointments import (
    Appointment,
    AppointmentComment,
    AppointmentRequestCreate,
    AppointmentStatus,
    AppointmentType,
    MedicalStaffConfirmation,
    MedicalVisitPlan,
    ObligatoryVisitCreate,
    SlotProposal,
)
from app.schemas.notifications import NotificationScenario
from app.schemas.users import CurrentActor, EmployeeProfile, RoleName

logger = structlog.get_logger(__name__)


class Transition(str, Enum):
    """Operations of the workflow."""

    REQUEST = "REQUEST"
    CREATE_OBLIGATORY = "CREATE_OBLIGATORY"
    PLAN = "PLAN"
    PROPOSE_SLOT = "PROPOSE_SLOT"
    CONFIRM_BY_EMPLOYEE = "CONFIRM_BY_EMPLOYEE"
    CONFIRM_BY_MEDICAL_STAFF = "CONFIRM_BY_MEDICAL_STAFF"
    CANCEL = "CANCEL"
    COMMENT = "COMMENT"
    COMPLETE = "COMPLETE"


_NON_TERMINAL = frozenset(s for s in AppointmentStatus if not s.is_terminal)


@dataclass(frozen=True)
class TransitionRule:
    """Who may run a transition, from which states, and where it lands.

    ``valid_from`` is None for creations. ``target`` is None when the status
    does not change (comments).
    """

    allowed: Callable[[CurrentActor, Appointment | None], bool]
    valid_from: frozenset[AppointmentStatus] | None
    target: AppointmentStatus | None


def _is_owner(actor: CurrentActor, appointment: Appointment | None) -> bool:
    if appointment is None:
        return False
    if actor.employee is not None and actor.employee.id == appointment.employee.id:
        return True
    return appointment.employee.user_id is not None and appointment.employee.user_id == actor.id


def _is_employee(actor: CurrentActor, _: Appointment | None) -> bool:
    return actor.user.has_role(RoleName.EMPLOYEE) and actor.employee is not None


def _is_medical(actor: CurrentActor, _: Appointment | None) -> bool:
    return actor.is_medical_staff


def _is_rh(actor: CurrentActor, _: Appointment | None) -> bool:
    return actor.is_rh


TRANSITIONS: dict[Transition, TransitionRule] = {
    Transition.REQUEST: TransitionRule(_is_employee, None, AppointmentStatus.REQUESTED_EMPLOYEE),
    Transition.CREATE_OBLIGATORY: TransitionRule(_is_rh, None, AppointmentStatus.OBLIGATORY),
    Transition.PLAN: TransitionRule(_is_medical, None, AppointmentStatus.PLANNED_BY_MEDICAL_STAFF),
    Transition.PROPOSE_SLOT: TransitionRule(
        _is_medical,
        frozenset(
            {
                AppointmentStatus.REQUESTED_EMPLOYEE,
                AppointmentStatus.OBLIGATORY,
                AppointmentStatus.PROPOSED_MEDECIN,
            }
        ),
        AppointmentStatus.PROPOSED_MEDECIN,
    ),
    Transition.CONFIRM_BY_EMPLOYEE: TransitionRule(
        _is_owner,
        frozenset({AppointmentStatus.PROPOSED_MEDECIN, AppointmentStatus.PLANNED_BY_MEDICAL_STAFF}),
        AppointmentStatus.CONFIRMED,
    ),
    Transition.CONFIRM_BY_MEDICAL_STAFF: TransitionRule(
        _is_medical,
        frozenset({AppointmentStatus.REQUESTED_EMPLOYEE}),
        AppointmentStatus.CONFIRMED,
    ),
    Transition.CANCEL: TransitionRule(
        lambda actor, appt: _is_owner(actor, appt) or actor.is_medical_staff or actor.is_rh,
        _NON_TERMINAL,
        AppointmentStatus.CANCELLED,
    ),
    Transition.COMMENT: TransitionRule(
        lambda actor, appt: _is_owner(actor, appt) or actor.is_medical_staff,
        _NON_TERMINAL,
        None,
    ),
    Transition.COMPLETE: TransitionRule(
        _is_medical,
        frozenset({AppointmentStatus.CONFIRMED}),
        AppointmentStatus.COMPLETED,
    ),
}


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of an accepted transition."""

    appointment: Appointment
    scenario: NotificationScenario | None
    previous_status: AppointmentStatus | None
    new_comment: str | None = None


class AppointmentWorkflow:
    """The appointment state machine."""

    def __init__(
        self,
        fallback_phone: str,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the workflow.

        Args:
            fallback_phone: Medical service phone used when nobody has one
            clock: Source of the current time, injectable for tests
        """
        self.fallback_phone = fallback_phone
        self.clock = clock or (lambda: datetime.now(UTC))

    def check(
        self,
        transition: Transition,
        actor: CurrentActor,
        appointment: Appointment | None = None,
    ) -> TransitionRule:
        """
        Enforce the actor and state preconditions of a transition.

        Args:
            transition: Requested transition
            actor: Acting user
            appointment: Current appointment (None for creations)

        Returns:
            The matching rule

        Raises:
            UnauthorizedActionException: Wrong role or not the owner
            InvalidStateTransitionException: Current status does not allow it
        """
        rule = TRANSITIONS[transition]

        if not rule.allowed(actor, appointment):
            logger.info(
                "appointment_transition_rejected",
                transition=transition.value,
                reason="unauthorized",
                actor_id=str(actor.id),
                appointment_id=str(appointment.id) if appointment else None,
            )
            raise UnauthorizedActionException(
                f"User is not allowed to perform {transition.value.lower()} on this appointment"
            )

        if appointment is not None and rule.valid_from is not None:
            if appointment.status not in rule.valid_from:
                target = rule.target or appointment.status
                logger.info(
                    "appointment_transition_rejected",
                    transition=transition.value,
                    reason="invalid_state",
                    current_status=appointment.status.value,
                    target_status=target.value,
                    appointment_id=str(appointment.id),
                )
                raise InvalidStateTransitionException(appointment.status.value, target.value)

        return rule

    def _assign_actor(self, appointment: Appointment, actor: CurrentActor, only_if_unset: bool) -> dict:
        update = {}
        if actor.is_nurse and (appointment.nurse is None or not only_if_unset):
            update["nurse"] = actor.user
        if actor.is_doctor and (appointment.doctor is None or not only_if_unset):
            update["doctor"] = actor.user
        return update

    def resolve_medical_service_phone(self, appointment: Appointment, actor: CurrentActor) -> str:
        """Nurse phone, else the existing value, else the actor's phone, else the fallback."""
        if appointment.nurse is not None and appointment.nurse.phone and appointment.nurse.phone.strip():
            return appointment.nurse.phone
        existing = appointment.medical_service_phone
        if existing and existing.strip():
            return existing
        if actor.user.phone and actor.user.phone.strip():
            return actor.user.phone
        return self.fallback_phone

    def request(self, actor: CurrentActor, data: AppointmentRequestCreate) -> TransitionResult:
        """Employee self-service request."""
        self.check(Transition.REQUEST, actor)
        appointment = Appointment(
            employee=actor.employee,
            type=data.type or AppointmentType.SPONTANEOUS,
            status=AppointmentStatus.REQUESTED_EMPLOYEE,
            visit_mode=data.visit_mode,
            requested_date_employee=data.requested_date_employee,
            motif=data.motif,
            notes=data.notes,
            created_by=actor.user,
            updated_by=actor.user,
        )
        return TransitionResult(appointment, NotificationScenario.APPOINTMENT_REQUESTED, None)

    def create_obligatory(
        self,
        actor: CurrentActor,
        employee: EmployeeProfile,
        data: ObligatoryVisitCreate,
    ) -> TransitionResult:
        """RH-initiated obligatory visit."""
        self.check(Transition.CREATE_OBLIGATORY, actor)
        appointment = Appointment(
            employee=employee,
            type=data.type,
            status=AppointmentStatus.OBLIGATORY,
            is_obligatory=True,
            visit_mode=data.visit_mode,
            requested_date_employee=data.requested_date_employee,
            reason=data.reason,
            notes=data.notes,
            created_by=actor.user,
            updated_by=actor.user,
        )
        return TransitionResult(appointment, NotificationScenario.APPOINTMENT_REQUESTED, None)

    def plan(
        self,
        actor: CurrentActor,
        employee: EmployeeProfile,
        data: MedicalVisitPlan,
    ) -> TransitionResult:
        """Medical staff plans a visit directly."""
        self.check(Transition.PLAN, actor)
        appointment = Appointment(
            employee=employee,
            type=data.type,
            status=AppointmentStatus.PLANNED_BY_MEDICAL_STAFF,
            visit_mode=data.visit_mode,
            scheduled_time=data.scheduled_time,
            medical_instructions=data.medical_instructions,
            notes=data.notes,
            created_by=actor.user,
            updated_by=actor.user,
        )
        appointment = appointment.model_copy(update=self._assign_actor(appointment, actor, False))
        appointment = appointment.model_copy(
            update={"medical_service_phone": self.resolve_medical_service_phone(appointment, actor)}
        )
        return TransitionResult(appointment, NotificationScenario.MEDICAL_VISIT_PLANNED, None)

    def propose_slot(
        self,
        actor: CurrentActor,
        appointment: Appointment,
        data: SlotProposal,
    ) -> TransitionResult:
        """Medical staff proposes a slot."""
        rule = self.check(Transition.PROPOSE_SLOT, actor, appointment)
        if data.proposed_date is None:
            raise ValidationException("A proposed date is required to propose a slot")

        update = self._assign_actor(appointment, actor, True)
        update.update(
            {
                "proposed_date": data.proposed_date,
                "status": rule.target,
                "updated_by": actor.user,
            }
        )
        update["medical_service_phone"] = self.resolve_medical_service_phone(
            appointment.model_copy(update=update), actor
        )
        if data.visit_mode is not None:
            update["visit_mode"] = data.visit_mode

        comment = data.comment.strip() if data.comment and data.comment.strip() else None
        if comment:
            update["comments"] = [
                *appointment.comments,
                AppointmentComment(author=actor.user, comment=comment, created_at=self.clock()),
            ]

        return TransitionResult(
            appointment.model_copy(update=update),
            NotificationScenario.APPOINTMENT_SLOT_PROPOSED,
            appointment.status,
            new_comment=comment,
        )

    def confirm_by_employee(self, actor: CurrentActor, appointment: Appointment) -> TransitionResult:
        """Owner employee confirms a proposed or planned visit."""
        rule = self.check(Transition.CONFIRM_BY_EMPLOYEE, actor, appointment)
        update = {"status": rule.target, "updated_by": actor.user}

        if appointment.status == AppointmentStatus.PROPOSED_MEDECIN:
            if appointment.proposed_date is None:
                raise ValidationException("The appointment has no proposed date to confirm")
            update["scheduled_time"] = appointment.proposed_date

        return TransitionResult(
            appointment.model_copy(update=update),
            NotificationScenario.MEDICAL_VISIT_CONFIRMED_BY_EMPLOYEE,
            appointment.status,
        )

    def confirm_by_medical_staff(
        self,
        actor: CurrentActor,
        appointment: Appointment,
        data: MedicalStaffConfirmation | None = None,
    ) -> TransitionResult:
        """Medical staff accepts the employee's requested date."""
        rule = self.check(Transition.CONFIRM_BY_MEDICAL_STAFF, actor, appointment)
        if appointment.requested_date_employee is None:
            raise ValidationException("The request has no requested date to confirm")

        update = self._assign_actor(appointment, actor, True)
        update.update(
            {
                "status": rule.target,
                "scheduled_time": appointment.requested_date_employee,
                "updated_by": actor.user,
            }
        )
        update["medical_service_phone"] = self.resolve_medical_service_phone(
            appointment.model_copy(update=update), actor
        )
        if data is not None and data.visit_mode is not None:
            update["visit_mode"] = data.visit_mode

        return TransitionResult(
            appointment.model_copy(update=update),
            NotificationScenario.APPOINTMENT_CONFIRMED,
            appointment.status,
        )

    def cancel(
        self,
        actor: CurrentActor,
        appointment: Appointment,
        reason: str | None,
    ) -> TransitionResult:
        """Cancel a non-terminal appointment.

        The scenario is MEDICAL_VISIT_CANCELLED when the visit came from the
        medical side (planned, proposed, or carrying medical instructions).
        """
        rule = self.check(Transition.CANCEL, actor, appointment)
        medical_originated = (
            appointment.status
            in (AppointmentStatus.PLANNED_BY_MEDICAL_STAFF, AppointmentStatus.PROPOSED_MEDECIN)
            or appointment.medical_instructions is not None
        )
        scenario = (
            NotificationScenario.MEDICAL_VISIT_CANCELLED
            if medical_originated
            else NotificationScenario.APPOINTMENT_CANCELLED
        )
        updated = appointment.model_copy(
            update={
                "status": rule.target,
                "cancellation_reason": reason.strip() if reason and reason.strip() else None,
                "updated_by": actor.user,
            }
        )
        return TransitionResult(updated, scenario, appointment.status)

    def add_comment(self, actor: CurrentActor, appointment: Appointment, text: str) -> TransitionResult:
        """Append a comment; no notification."""
        self.check(Transition.COMMENT, actor, appointment)
        comment = text.strip() if text else ""
        if not comment:
            raise ValidationException("Comment must not be blank")
        updated = appointment.model_copy(
            update={
                "comments": [
                    *appointment.comments,
                    AppointmentComment(author=actor.user, comment=comment, created_at=self.clock()),
                ],
            }
        )
        return TransitionResult(updated, None, appointment.status, new_comment=comment)

    def complete(self, actor: CurrentActor, appointment: Appointment) -> TransitionResult:
        """Close a confirmed visit; no notification."""
        rule = self.check(Transition.COMPLETE, actor, appointment)
        updated = appointment.model_copy(update={"status": rule.target, "updated_by": actor.user})
        return TransitionResult(updated, None, appointment.status)
