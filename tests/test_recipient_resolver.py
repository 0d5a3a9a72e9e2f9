"""Tests for recipient resolution."""

import pytest

from app.services.recipient_resolver import RecipientResolver
from tests.factories import make_appointment


@pytest.fixture
def resolver(directory) -> RecipientResolver:
    return RecipientResolver(directory)


def ids(users) -> list:
    return [user.id for user in users]


@pytest.mark.asyncio
async def test_default_audience_covers_every_stakeholder_once(people, resolver) -> None:
    appointment = make_appointment(people, nurse=people.nurse)

    recipients = await resolver.default_audience(appointment)

    assert ids(recipients) == [
        people.employee_user.id,
        people.nurse.id,
        people.manager1.id,
        people.manager2.id,
        people.doctor.id,
        people.rh.id,
    ]
    assert len(set(ids(recipients))) == len(recipients)
    assert people.admin.id not in ids(recipients)
    assert people.other_user.id not in ids(recipients)


@pytest.mark.asyncio
async def test_role_membership_is_queried_every_time(people, resolver, directory) -> None:
    appointment = make_appointment(people)

    await resolver.default_audience(appointment)
    await resolver.default_audience(appointment)

    assert directory.role_queries == 2


@pytest.mark.asyncio
async def test_employee_without_account_is_skipped(people, resolver) -> None:
    employee = people.employee.model_copy(update={"user": None, "manager1": None, "manager2": None})
    appointment = make_appointment(people, employee=employee)

    recipients = await resolver.default_audience(appointment)

    assert None not in recipients
    assert people.employee_user.id not in ids(recipients)


@pytest.mark.asyncio
async def test_medical_staff_and_rh_groups(people, resolver) -> None:
    assert set(ids(await resolver.medical_staff())) == {people.nurse.id, people.doctor.id}
    assert ids(await resolver.rh_users()) == [people.rh.id]
    assert set(ids(await resolver.rh_and_medical_staff())) == {
        people.nurse.id,
        people.doctor.id,
        people.rh.id,
    }


@pytest.mark.asyncio
async def test_employee_action_on_obligatory_visit_narrows_to_rh_and_medical(people, resolver) -> None:
    appointment = make_appointment(people, is_obligatory=True)

    recipients = await resolver.for_employee_action(appointment)

    assert set(ids(recipients)) == {people.nurse.id, people.doctor.id, people.rh.id}


@pytest.mark.asyncio
async def test_employee_action_on_regular_visit_uses_default_audience(people, resolver) -> None:
    appointment = make_appointment(people)

    recipients = await resolver.for_employee_action(appointment)

    assert ids(recipients) == ids(await resolver.default_audience(appointment))


@pytest.mark.asyncio
async def test_slot_proposal_excludes_the_proposer(people, resolver) -> None:
    appointment = make_appointment(people)

    recipients = await resolver.for_slot_proposal(appointment, people.nurse)

    assert people.nurse.id not in ids(recipients)
    assert people.doctor.id in ids(recipients)
    assert people.employee_user.id in ids(recipients)


@pytest.mark.asyncio
async def test_slot_proposal_on_obligatory_visit(people, resolver) -> None:
    appointment = make_appointment(people, is_obligatory=True)

    recipients = await resolver.for_slot_proposal(appointment, people.doctor)

    assert ids(recipients) == [people.employee_user.id, people.rh.id, people.doctor.id]
