"""Notifications for a new request or a new obligatory visit."""

from app.schemas.appointments import Appointment, AppointmentType
from app.schemas.notifications import NotificationScenario
from app.schemas.users import UserSummary
from app.services.strategies.base import (
    SEPARATOR,
    Audience,
    DispatchContext,
    NotificationStrategy,
    RenderedNotification,
    classify,
    format_when,
    type_label,
    with_extra,
)

EMPTY_FIELD = "Néant"


def _or_none_text(value: str | None) -> str:
    if value is None or not value.strip() or value.strip().upper() == "N/A":
        return EMPTY_FIELD
    return value.strip()


class AppointmentRequestedStrategy(NotificationStrategy):
    """A request was sent by an employee, or RH created an obligatory visit."""

    scenarios = frozenset({NotificationScenario.APPOINTMENT_REQUESTED})

    def render(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        context: DispatchContext,
    ) -> RenderedNotification:
        audience = classify(recipient, appointment)
        name = appointment.employee.display_name
        email = appointment.employee.email
        when = format_when(appointment.effective_when)
        visit_type = type_label(appointment.type)
        obligatory = appointment.is_obligatory

        if audience == Audience.EMPLOYEE:
            if obligatory:
                message = (
                    f"Une visite médicale obligatoire ({visit_type}) a été créée pour vous"
                    f"{SEPARATOR}Statut : En attente."
                )
            else:
                message = (
                    "Votre demande de rendez-vous a été envoyée au service médical"
                    f"{SEPARATOR}Date souhaitée : {when}{SEPARATOR}Statut : En attente."
                )
            return RenderedNotification(
                title="Demande envoyée",
                message=with_extra(message, context.extra_message),
                send_email=False,
            )

        if obligatory:
            subject = f"Visite médicale obligatoire ({visit_type}) – {name} ({email})"
        else:
            subject = f"Nouvelle demande de rendez-vous ({visit_type}) – {name} ({email})"

        if audience == Audience.RH_OR_MANAGER:
            if obligatory:
                message = (
                    f"Une visite médicale obligatoire ({visit_type}) a été créée pour l'employé "
                    f"{name}{SEPARATOR}{email}{SEPARATOR}Statut : En attente."
                )
            else:
                message = (
                    "Le service médical a reçu une demande de rendez-vous pour l'employé "
                    f"{name}{SEPARATOR}{email}{SEPARATOR}Date souhaitée : {when}"
                    f"{SEPARATOR}Statut : En attente."
                )
            return RenderedNotification(
                title="Nouvelle demande de rendez-vous",
                message=with_extra(message, context.extra_message),
                subject=subject,
                template_name="appointment-requested-rh-template",
            )

        if obligatory:
            message = (
                f"RH a initié une visite médicale obligatoire ({visit_type}) pour "
                f"{name}{SEPARATOR}{email}{SEPARATOR}Statut : En attente."
            )
        else:
            motif = _or_none_text(appointment.motif or appointment.reason)
            notes = _or_none_text(appointment.notes)
            message = (
                f"Nouvelle demande de rendez-vous médical{SEPARATOR}{name}{SEPARATOR}{email}"
                f"{SEPARATOR}Statut : En attente. Date souhaitée : {when}"
                f"{SEPARATOR}Motif : {motif}{SEPARATOR}Notes : {notes}"
            )

        propose_only = obligatory or appointment.type == AppointmentType.PRE_RECRUITMENT
        if propose_only:
            primary = self.cta(appointment, "propose", "Proposer un créneau")
        else:
            primary = self.cta(appointment, "view", "Confirmer ou proposer un créneau")

        return RenderedNotification(
            title="Nouvelle demande de rendez-vous",
            message=with_extra(message, context.extra_message),
            subject=subject,
            template_name="appointment-requested-template",
            primary_cta=primary,
            secondary_cta=self.certificate_cta(appointment),
        )
