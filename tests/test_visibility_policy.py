"""Tests for the visibility policy."""

import pytest

from app.schemas.appointments import AppointmentComment, AppointmentStatus
from app.schemas.users import RoleName
from app.services import visibility_policy as policy
from tests.factories import VISIT_AT, make_appointment, make_user


@pytest.fixture
def appointment(people):
    return make_appointment(
        people,
        medical_instructions="À jeun",
        medical_service_phone="+212600000002",
        cancellation_reason="Indisponible",
        comments=[AppointmentComment(author=people.nurse, comment="RAS", created_at=VISIT_AT)],
    )


def test_manager_detection(people, appointment) -> None:
    assert policy.is_manager_for_appointment(people.manager1, appointment)
    assert policy.is_manager_for_appointment(people.manager2, appointment)
    assert not policy.is_manager_for_appointment(people.nurse, appointment)
    assert not policy.is_manager_for_appointment(None, appointment)


def test_employee_recipient(people, appointment) -> None:
    assert policy.is_employee_recipient(people.employee_user, appointment)
    assert not policy.is_employee_recipient(people.other_user, appointment)
    assert not policy.is_employee_recipient(people.employee_user, None)


def test_cta_hidden_for_rh_and_managers_only(people, appointment) -> None:
    assert policy.should_hide_email_cta(people.rh, appointment)
    assert policy.should_hide_email_cta(people.manager1, appointment)
    assert not policy.should_hide_email_cta(people.employee_user, appointment)
    assert not policy.should_hide_email_cta(people.nurse, appointment)


def test_rh_sees_no_free_text_or_medical_fields(people, appointment) -> None:
    view = policy.redact_for(people.rh, appointment)

    assert view.motif is None
    assert view.notes is None
    assert view.medical_instructions is None
    assert view.medical_service_phone is None
    assert view.cancellation_reason is None
    assert view.comments == []
    # The original is untouched
    assert appointment.motif == "Douleurs lombaires"


def test_manager_sees_no_free_text_or_medical_fields(people, appointment) -> None:
    view = policy.redact_for(people.manager2, appointment)

    assert view.motif is None
    assert view.notes is None
    assert view.medical_instructions is None
    assert view.cancellation_reason is None


def test_employee_sees_everything(people, appointment) -> None:
    assert policy.redact_for(people.employee_user, appointment) == appointment


def test_medical_staff_sees_everything(people, appointment) -> None:
    assert policy.redact_for(people.doctor, appointment) == appointment


def test_rh_who_is_also_medical_staff_sees_everything(people, appointment) -> None:
    dual = make_user("dual@corp.test", RoleName.RH, RoleName.NURSE)
    assert policy.can_see_motif(dual, appointment)
    assert policy.can_see_medical_details(dual, appointment)


def test_outsider_keeps_motif_but_not_medical_details(people, appointment) -> None:
    view = policy.redact_for(people.admin, appointment)

    assert view.motif == "Douleurs lombaires"
    assert view.medical_instructions is None
    assert view.cancellation_reason is None


@pytest.mark.parametrize(
    ("status", "can_confirm", "can_cancel", "can_comment"),
    [
        (AppointmentStatus.REQUESTED_EMPLOYEE, False, False, True),
        (AppointmentStatus.PROPOSED_MEDECIN, True, True, True),
        (AppointmentStatus.PLANNED_BY_MEDICAL_STAFF, True, True, True),
        (AppointmentStatus.CONFIRMED, False, False, True),
        (AppointmentStatus.CANCELLED, False, False, False),
    ],
)
def test_owner_action_flags(people, status, can_confirm, can_cancel, can_comment) -> None:
    flags = policy.action_flags(people.employee_user, make_appointment(people, status=status))

    assert flags.can_confirm is can_confirm
    assert flags.can_cancel is can_cancel
    assert flags.can_comment is can_comment
    assert flags.can_propose is False


def test_medical_staff_action_flags(people) -> None:
    requested = policy.action_flags(people.nurse, make_appointment(people))
    assert requested.can_confirm and requested.can_propose and requested.can_cancel
    assert requested.can_comment

    obligatory = policy.action_flags(
        people.nurse, make_appointment(people, status=AppointmentStatus.OBLIGATORY)
    )
    assert obligatory.can_propose and not obligatory.can_confirm

    completed = policy.action_flags(
        people.doctor, make_appointment(people, status=AppointmentStatus.COMPLETED)
    )
    assert not completed.can_cancel and not completed.can_propose
    assert completed.can_comment


def test_rh_can_only_cancel_open_appointments(people) -> None:
    open_flags = policy.action_flags(people.rh, make_appointment(people))
    assert open_flags == policy.ActionFlags(can_cancel=True)

    closed = policy.action_flags(
        people.rh, make_appointment(people, status=AppointmentStatus.CANCELLED)
    )
    assert closed == policy.ActionFlags()
