"""
Visibility policy.

Pure functions deciding who a user is with respect to an appointment and
which fields and calls-to-action that user may see. Both the notification
strategies and the appointment projection go through these rules.
"""

from dataclasses import dataclass

from app.schemas.appointments import Appointment, AppointmentStatus
from app.schemas.users import MEDICAL_ROLES, PRIVILEGED_ROLES, RoleName, UserSummary

# Fields that never reach RH or line managers
_MEDICAL_FIELDS = ("medical_instructions", "medical_service_phone")
_FREE_TEXT_FIELDS = ("motif", "reason", "notes")


def is_rh(user: UserSummary | None) -> bool:
    return user is not None and user.has_role(RoleName.RH)


def is_medical_staff(user: UserSummary | None) -> bool:
    return user is not None and user.has_any_role(MEDICAL_ROLES)


def is_privileged(user: UserSummary | None) -> bool:
    return user is not None and user.has_any_role(PRIVILEGED_ROLES)


def is_manager_for_appointment(user: UserSummary | None, appointment: Appointment | None) -> bool:
    """True when the user is the N+1 or N+2 of the appointment's employee."""
    if user is None or appointment is None:
        return False
    return any(manager.id == user.id for manager in appointment.employee.manager_users())


def is_employee_recipient(user: UserSummary | None, appointment: Appointment | None) -> bool:
    """True when the user is the employee the appointment is for."""
    if user is None or appointment is None:
        return False
    owner_id = appointment.employee.user_id
    return owner_id is not None and owner_id == user.id


def should_hide_email_cta(user: UserSummary | None, appointment: Appointment | None) -> bool:
    return is_rh(user) or is_manager_for_appointment(user, appointment)


def _is_rh_or_manager_only(user: UserSummary | None, appointment: Appointment | None) -> bool:
    if is_employee_recipient(user, appointment) or is_medical_staff(user):
        return False
    return is_rh(user) or is_manager_for_appointment(user, appointment)


def can_see_motif(user: UserSummary | None, appointment: Appointment | None) -> bool:
    return not _is_rh_or_manager_only(user, appointment)


def can_see_notes(user: UserSummary | None, appointment: Appointment | None) -> bool:
    return not _is_rh_or_manager_only(user, appointment)


def can_see_medical_details(user: UserSummary | None, appointment: Appointment | None) -> bool:
    """Medical instructions and the medical service phone."""
    return is_employee_recipient(user, appointment) or is_medical_staff(user)


def can_see_cancellation_reason(user: UserSummary | None, appointment: Appointment | None) -> bool:
    return is_employee_recipient(user, appointment) or is_medical_staff(user)


def redact_for(user: UserSummary | None, appointment: Appointment) -> Appointment:
    """
    Return a copy of the appointment stripped of every field the user may not see.

    Strategies build messages and email context from this copy only, so
    restricted text is gone before any message is assembled.

    Args:
        user: Viewer or notification recipient
        appointment: Full appointment

    Returns:
        Redacted appointment copy
    """
    hidden: dict[str, None] = {}
    if not can_see_medical_details(user, appointment):
        hidden.update(dict.fromkeys(_MEDICAL_FIELDS))
    if not can_see_motif(user, appointment):
        hidden.update(dict.fromkeys(_FREE_TEXT_FIELDS))
    if not can_see_cancellation_reason(user, appointment):
        hidden["cancellation_reason"] = None

    update = dict(hidden)
    if _is_rh_or_manager_only(user, appointment) and appointment.comments:
        update["comments"] = []
    if not update:
        return appointment
    return appointment.model_copy(update=update)


@dataclass(frozen=True)
class ActionFlags:
    """Actions a viewer may take on an appointment."""

    can_confirm: bool = False
    can_cancel: bool = False
    can_propose: bool = False
    can_comment: bool = False


_EMPLOYEE_ACTIONABLE = frozenset(
    {AppointmentStatus.PLANNED_BY_MEDICAL_STAFF, AppointmentStatus.PROPOSED_MEDECIN}
)
_PROPOSABLE = frozenset(
    {
        AppointmentStatus.REQUESTED_EMPLOYEE,
        AppointmentStatus.OBLIGATORY,
        AppointmentStatus.PROPOSED_MEDECIN,
    }
)


def action_flags(user: UserSummary | None, appointment: Appointment) -> ActionFlags:
    """Compute the role-dependent action flags of the appointment projection."""
    can_confirm = can_cancel = can_propose = can_comment = False
    status = appointment.status

    if is_employee_recipient(user, appointment):
        can_confirm = can_cancel = status in _EMPLOYEE_ACTIONABLE
        can_comment = not status.is_terminal

    if is_medical_staff(user):
        can_comment = True
        if status == AppointmentStatus.REQUESTED_EMPLOYEE:
            can_confirm = True
        if status in _PROPOSABLE:
            can_propose = True
        if not status.is_terminal:
            can_cancel = True

    if is_rh(user) and not status.is_terminal:
        can_cancel = True

    return ActionFlags(
        can_confirm=can_confirm,
        can_cancel=can_cancel,
        can_propose=can_propose,
        can_comment=can_comment,
    )
