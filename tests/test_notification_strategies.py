"""Tests for the per-scenario notification texts, links and emails."""

import pytest

from app.schemas.appointments import (
    AppointmentComment,
    AppointmentStatus,
    AppointmentType,
    VisitMode,
)
from app.schemas.notifications import NotificationActor, NotificationScenario
from app.services.strategies import DispatchContext
from app.services.strategies.base import enrich_subject, is_employee_initiated, with_extra
from tests.factories import FRONTEND, VISIT_AT, make_appointment


def in_app(harness, user):
    rows = harness.store.for_user(user)
    assert len(rows) == 1
    return rows[0]


def link(appointment, action: str) -> str:
    return f"{FRONTEND}/appointment_action?id={appointment.id}&action={action}"


class TestHelpers:
    def test_with_extra(self) -> None:
        assert with_extra("Base", None) == "Base"
        assert with_extra("Base", "   ") == "Base"
        assert with_extra("Base", " Merci ") == "Base – Merci"

    def test_enrich_subject(self, people) -> None:
        appointment = make_appointment(people)
        assert enrich_subject("Sujet", appointment) == "Sujet — 14/03/2026 09:30"
        assert enrich_subject("Sujet", None) == "Sujet"

    @pytest.mark.parametrize(
        ("appointment_type", "created_by_owner", "expected"),
        [
            (AppointmentType.SPONTANEOUS, False, True),
            (AppointmentType.PERIODIC, True, False),
            (AppointmentType.SURVEILLANCE_PARTICULIERE, True, False),
            (AppointmentType.MEDICAL_CALL, True, False),
            (AppointmentType.RETURN_TO_WORK, True, True),
            (AppointmentType.RETURN_TO_WORK, False, False),
            (AppointmentType.PRE_RECRUITMENT, True, True),
            (AppointmentType.OTHER, False, False),
        ],
    )
    def test_is_employee_initiated(self, people, appointment_type, created_by_owner, expected) -> None:
        creator = people.employee_user if created_by_owner else people.nurse
        appointment = make_appointment(people, type=appointment_type, created_by=creator)
        assert is_employee_initiated(appointment) is expected


class TestRequested:
    @pytest.mark.asyncio
    async def test_texts_per_audience(self, harness, people) -> None:
        appointment = make_appointment(people)

        await harness.router.dispatch(
            NotificationScenario.APPOINTMENT_REQUESTED,
            [people.employee_user, people.nurse, people.rh, people.manager1],
            appointment,
            acting_user_id=people.employee_user.id,
        )

        own = in_app(harness, people.employee_user)
        assert own.title == "Demande envoyée"
        assert "Date souhaitée : 14/03/2026 09:30" in own.message
        assert harness.transport.to(people.employee_user) == []

        nurse = in_app(harness, people.nurse)
        assert "Motif : Douleurs lombaires" in nurse.message
        assert "Notes : Plutôt le matin" in nurse.message
        assert nurse.action_url == link(appointment, "view")

        for user in (people.rh, people.manager1):
            row = in_app(harness, user)
            assert row.message.startswith("Le service médical a reçu une demande")
            assert "Douleurs lombaires" not in row.message
            assert "Plutôt le matin" not in row.message

    @pytest.mark.asyncio
    async def test_emails_per_audience(self, harness, people) -> None:
        appointment = make_appointment(people)

        await harness.router.dispatch(
            NotificationScenario.APPOINTMENT_REQUESTED, [people.nurse, people.rh], appointment
        )

        (to_nurse,) = harness.transport.to(people.nurse)
        assert to_nurse.template_name == "appointment-requested-template"
        assert to_nurse.subject == "Nouvelle demande de rendez-vous (Spontané) – Sara Alami (sara@corp.test)"
        assert to_nurse.context["actionLabel"] == "Confirmer ou proposer un créneau"
        assert to_nurse.context["appointment"]["motif"] == "Douleurs lombaires"

        (to_rh,) = harness.transport.to(people.rh)
        assert to_rh.template_name == "appointment-requested-rh-template"
        assert "actionUrl" not in to_rh.context
        assert to_rh.context["appointment"]["motif"] is None
        assert to_rh.context["appointment"]["notes"] is None

    def test_empty_motif_is_shown_as_none(self, harness, people) -> None:
        strategy = harness.router.strategy_for(NotificationScenario.APPOINTMENT_REQUESTED)
        appointment = make_appointment(people, motif="N/A", notes="  ")

        rendered = strategy.render(
            people.doctor,
            appointment,
            DispatchContext(NotificationScenario.APPOINTMENT_REQUESTED, appointment),
        )

        assert "Motif : Néant" in rendered.message
        assert "Notes : Néant" in rendered.message

    @pytest.mark.parametrize(
        "overrides",
        [
            {
                "is_obligatory": True,
                "status": AppointmentStatus.OBLIGATORY,
                "type": AppointmentType.PERIODIC,
            },
            {"type": AppointmentType.PRE_RECRUITMENT},
        ],
    )
    def test_medical_staff_is_asked_to_propose(self, harness, people, overrides) -> None:
        strategy = harness.router.strategy_for(NotificationScenario.APPOINTMENT_REQUESTED)
        appointment = make_appointment(people, **overrides)

        rendered = strategy.render(
            people.nurse,
            appointment,
            DispatchContext(NotificationScenario.APPOINTMENT_REQUESTED, appointment),
        )

        assert rendered.primary_cta.url == link(appointment, "propose")
        assert rendered.primary_cta.label == "Proposer un créneau"

    def test_obligatory_visit_texts(self, harness, people) -> None:
        strategy = harness.router.strategy_for(NotificationScenario.APPOINTMENT_REQUESTED)
        appointment = make_appointment(
            people,
            is_obligatory=True,
            status=AppointmentStatus.OBLIGATORY,
            type=AppointmentType.PERIODIC,
        )
        context = DispatchContext(
            NotificationScenario.APPOINTMENT_REQUESTED,
            appointment,
            extra_message="Merci de répondre rapidement",
        )

        employee = strategy.render(people.employee_user, appointment, context)
        nurse = strategy.render(people.nurse, appointment, context)

        assert employee.message.startswith("Une visite médicale obligatoire (Périodique)")
        assert employee.message.endswith("– Merci de répondre rapidement")
        assert nurse.message.startswith("RH a initié une visite médicale obligatoire (Périodique)")
        assert nurse.subject.startswith("Visite médicale obligatoire (Périodique)")

    def test_return_to_work_offers_the_certificate(self, harness, people) -> None:
        strategy = harness.router.strategy_for(NotificationScenario.APPOINTMENT_REQUESTED)
        appointment = make_appointment(
            people, type=AppointmentType.RETURN_TO_WORK, created_by=people.employee_user
        )

        rendered = strategy.render(
            people.doctor,
            appointment,
            DispatchContext(NotificationScenario.APPOINTMENT_REQUESTED, appointment),
        )

        assert rendered.secondary_cta.url == link(appointment, "certificate")


class TestSlotProposed:
    @pytest.fixture
    def appointment(self, people):
        return make_appointment(
            people,
            status=AppointmentStatus.PROPOSED_MEDECIN,
            proposed_date=VISIT_AT,
            visit_mode=VisitMode.REMOTE,
            updated_by=people.nurse,
            comments=[
                AppointmentComment(
                    author=people.nurse, comment="Médecin absent le matin", created_at=VISIT_AT
                )
            ],
        )

    @pytest.mark.asyncio
    async def test_employee_is_asked_to_confirm(self, harness, people, appointment) -> None:
        await harness.router.dispatch(
            NotificationScenario.APPOINTMENT_SLOT_PROPOSED,
            [people.employee_user],
            appointment,
            acting_user_id=people.nurse.id,
        )

        row = in_app(harness, people.employee_user)
        assert row.action_url == link(appointment, "confirm")
        assert "Mode : À distance" in row.message

        (email,) = harness.transport.to(people.employee_user)
        assert email.template_name == "appointment-proposal-template"
        assert email.context["actionUrl"] == link(appointment, "confirm")
        assert email.context["secondaryActionUrl"] == link(appointment, "cancel")
        assert email.context["justification"] == "Médecin absent le matin"

    @pytest.mark.asyncio
    async def test_medical_staff_gets_in_app_only(self, harness, people, appointment) -> None:
        await harness.router.dispatch(
            NotificationScenario.APPOINTMENT_SLOT_PROPOSED,
            [people.nurse, people.doctor],
            appointment,
            acting_user_id=people.nurse.id,
        )

        assert in_app(harness, people.nurse).message.startswith("Vous avez proposé un nouveau créneau")
        assert in_app(harness, people.doctor).message.startswith(
            "Le service médical a proposé un nouveau créneau"
        )
        assert harness.transport.sent == []

    def test_obligatory_visit_is_flagged_for_all_medical_staff(self, harness, people, appointment) -> None:
        strategy = harness.router.strategy_for(NotificationScenario.APPOINTMENT_SLOT_PROPOSED)
        obligatory = appointment.model_copy(update={"is_obligatory": True})
        context = DispatchContext(NotificationScenario.APPOINTMENT_SLOT_PROPOSED, obligatory)

        proposer = strategy.render(people.nurse, obligatory, context).message
        colleague = strategy.render(people.doctor, obligatory, context).message
        rh = strategy.render(people.rh, obligatory, context).message

        assert proposer.startswith("Vous avez proposé un nouveau créneau (Obligatoire – ")
        assert colleague.startswith("Le service médical a proposé un nouveau créneau (Obligatoire – ")
        assert "– Initiée par RH)" in proposer
        assert "– Initiée par RH)" in colleague
        assert "Initiée par RH" not in rh

    def test_extra_message_replaces_the_text(self, harness, people, appointment) -> None:
        strategy = harness.router.strategy_for(NotificationScenario.APPOINTMENT_SLOT_PROPOSED)

        rendered = strategy.render(
            people.employee_user,
            appointment,
            DispatchContext(
                NotificationScenario.APPOINTMENT_SLOT_PROPOSED,
                appointment,
                extra_message="Nouveau créneau suite à votre indisponibilité",
            ),
        )

        assert rendered.message == "Nouveau créneau suite à votre indisponibilité"


class TestConfirmed:
    @pytest.fixture
    def appointment(self, people):
        return make_appointment(
            people,
            status=AppointmentStatus.CONFIRMED,
            scheduled_time=VISIT_AT,
            visit_mode=VisitMode.IN_PERSON,
        )

    def render(self, harness, recipient, appointment, actor, scenario=None):
        scenario = scenario or NotificationScenario.APPOINTMENT_CONFIRMED
        strategy = harness.router.strategy_for(scenario)
        return strategy.render(recipient, appointment, DispatchContext(scenario, appointment, actor))

    def test_confirmed_by_employee(self, harness, people, appointment) -> None:
        own = self.render(harness, people.employee_user, appointment, NotificationActor.EMPLOYEE)
        nurse = self.render(harness, people.nurse, appointment, NotificationActor.EMPLOYEE)

        assert own.message.startswith(
            "Vous avez confirmé le créneau proposé pour votre demande de rendez-vous"
        )
        assert nurse.message.startswith("L'employé Sara Alami – sara@corp.test a confirmé")
        assert own.subject == "Confirmation du créneau proposé — Sara Alami"

    def test_confirmed_by_medical_staff(self, harness, people, appointment) -> None:
        own = self.render(harness, people.employee_user, appointment, NotificationActor.MEDICAL_STAFF)

        assert own.message == (
            "Votre demande de rendez-vous a été confirmée par le service médical"
            " – Date : 14/03/2026 – 09:30 – Statut : Confirmé."
        )
        assert own.subject == "Confirmation de votre rendez-vous médical"
        assert own.template_name == "appointment-confirmation-template"

    def test_confirming_staff_reads_own_action(self, harness, people, appointment) -> None:
        confirmed = appointment.model_copy(update={"updated_by": people.doctor})

        rendered = self.render(harness, people.doctor, confirmed, NotificationActor.MEDICAL_STAFF)

        assert rendered.message.startswith("Vous avez confirmé la demande de rendez-vous de Sara Alami")
        assert rendered.template_name == "appointment-confirmation-medical-template"

    def test_rh_variant(self, harness, people, appointment) -> None:
        rendered = self.render(
            harness,
            people.rh,
            appointment,
            NotificationActor.RH,
            NotificationScenario.APPOINTMENT_CONFIRMED_RH,
        )

        assert rendered.message.startswith(
            "Le service médical a confirmé la demande de rendez-vous pour l'employé Sara Alami"
        )
        assert rendered.template_name == "appointment-confirmation-rh-template"
        assert rendered.primary_cta is None


class TestCancelled:
    @pytest.fixture
    def appointment(self, people):
        return make_appointment(
            people,
            status=AppointmentStatus.CANCELLED,
            cancellation_reason="Indisponible",
            updated_by=people.employee_user,
        )

    @pytest.mark.asyncio
    async def test_employee_cancelled_own_request(self, harness, people, appointment) -> None:
        await harness.router.dispatch(
            NotificationScenario.APPOINTMENT_CANCELLED,
            [people.employee_user, people.nurse, people.manager1],
            appointment,
            acting_user_id=people.employee_user.id,
        )

        own = in_app(harness, people.employee_user)
        assert own.message.startswith("Vous avez annulé votre demande de rendez-vous")
        assert own.message.endswith("Motif d'annulation : Indisponible")

        nurse = in_app(harness, people.nurse)
        assert nurse.message.startswith("L'employé Sara Alami – sara@corp.test a annulé")
        assert "Motif d'annulation : Indisponible" in nurse.message

        manager = in_app(harness, people.manager1)
        assert "Indisponible" not in manager.message
        (to_manager,) = harness.transport.to(people.manager1)
        assert to_manager.template_name == "appointment-cancellation-rh-template"

        # The employee acted; no email to them
        assert harness.transport.to(people.employee_user) == []

    def test_cancelled_by_medical_staff(self, harness, people, appointment) -> None:
        cancelled = appointment.model_copy(update={"updated_by": people.nurse})
        strategy = harness.router.strategy_for(NotificationScenario.APPOINTMENT_CANCELLED)

        rendered = strategy.render(
            people.employee_user,
            cancelled,
            DispatchContext(NotificationScenario.APPOINTMENT_CANCELLED, cancelled),
        )

        assert "annulé par le service médical" in rendered.message


class TestMedicalVisit:
    @pytest.fixture
    def appointment(self, people):
        return make_appointment(
            people,
            type=AppointmentType.PERIODIC,
            status=AppointmentStatus.PLANNED_BY_MEDICAL_STAFF,
            scheduled_time=VISIT_AT,
            visit_mode=VisitMode.IN_PERSON,
            medical_instructions="À jeun",
            medical_service_phone="+212600000002",
            created_by=people.nurse,
            updated_by=people.nurse,
            motif=None,
            notes=None,
        )

    @pytest.mark.asyncio
    async def test_planned_visit(self, harness, people, appointment) -> None:
        await harness.router.dispatch(
            NotificationScenario.MEDICAL_VISIT_PLANNED,
            [people.employee_user, people.nurse, people.manager2],
            appointment,
            acting_user_id=people.nurse.id,
        )

        own = in_app(harness, people.employee_user)
        assert own.message.startswith("Le service médical vous propose une visite médicale (Périodique)")
        assert "Consignes : À jeun" in own.message

        assert in_app(harness, people.nurse).message.startswith("Vous avez planifié")

        manager = in_app(harness, people.manager2)
        assert "À jeun" not in manager.message

        (to_employee,) = harness.transport.to(people.employee_user)
        assert to_employee.template_name == "medical-visit-planned-employee-template"
        assert to_employee.context["actionUrl"] == link(appointment, "confirm")
        assert to_employee.context["actionLabel"] == "Répondre"
        assert to_employee.context["medicalInstructions"] == "À jeun"

        (to_manager,) = harness.transport.to(people.manager2)
        assert to_manager.template_name == "medical-visit-planned-rh-template"
        assert to_manager.context["medicalInstructions"] is None
        assert "actionUrl" not in to_manager.context

    @pytest.mark.asyncio
    async def test_confirmed_by_employee_suppresses_own_email(self, harness, people, appointment) -> None:
        confirmed = appointment.model_copy(
            update={"status": AppointmentStatus.CONFIRMED, "updated_by": people.employee_user}
        )

        await harness.router.dispatch(
            NotificationScenario.MEDICAL_VISIT_CONFIRMED_BY_EMPLOYEE,
            [people.employee_user, people.doctor],
            confirmed,
            acting_user_id=people.employee_user.id,
        )

        own = in_app(harness, people.employee_user)
        assert own.message.startswith(
            "Vous avez confirmé la visite médicale (Périodique) proposée par le service médical"
        )
        assert harness.transport.to(people.employee_user) == []

        (to_doctor,) = harness.transport.to(people.doctor)
        assert to_doctor.template_name == "medical-visit-confirmed-medical-template"
        assert to_doctor.subject == "Confirmation de visite médicale – Sara Alami (sara@corp.test)"

    @pytest.mark.asyncio
    async def test_privileged_actor_still_gets_own_email(self, harness, people, appointment) -> None:
        cancelled = appointment.model_copy(update={"status": AppointmentStatus.CANCELLED})

        await harness.router.dispatch(
            NotificationScenario.MEDICAL_VISIT_CANCELLED,
            [people.nurse],
            cancelled,
            acting_user_id=people.nurse.id,
        )

        assert len(harness.transport.to(people.nurse)) == 1

    def test_cancelled_obligatory_visit(self, harness, people, appointment) -> None:
        cancelled = appointment.model_copy(
            update={
                "status": AppointmentStatus.CANCELLED,
                "is_obligatory": True,
                "cancellation_reason": "Arrêt maladie",
                "updated_by": people.employee_user,
            }
        )
        strategy = harness.router.strategy_for(NotificationScenario.MEDICAL_VISIT_CANCELLED)
        context = DispatchContext(NotificationScenario.MEDICAL_VISIT_CANCELLED, cancelled)

        nurse = strategy.render(people.nurse, cancelled, context)

        assert nurse.message.startswith(
            "L'employé [Sara Alami (sara@corp.test)] a annulé la visite médicale obligatoire"
        )
        assert nurse.message.endswith("Motif d'annulation : Arrêt maladie")
        assert nurse.subject == (
            "Annulation – Visite médicale obligatoire (Périodique) – Sara Alami (sara@corp.test)"
        )


class TestGenericNotice:
    @pytest.mark.asyncio
    async def test_obligatory_notice(self, harness, people) -> None:
        appointment = make_appointment(
            people, status=AppointmentStatus.OBLIGATORY, is_obligatory=True
        )

        await harness.router.dispatch("obligatory", [people.employee_user, people.rh], appointment)

        own = in_app(harness, people.employee_user)
        assert own.title == "Visite médicale obligatoire"
        assert own.action_url == link(appointment, "confirm")

        (to_employee,) = harness.transport.to(people.employee_user)
        assert to_employee.template_name == "appointment-generic"
        assert to_employee.subject == "Visite médicale obligatoire — 14/03/2026 09:30"
        assert to_employee.context["actionLabel"] == "Confirmer le rendez-vous"

        (to_rh,) = harness.transport.to(people.rh)
        assert "actionUrl" not in to_rh.context
