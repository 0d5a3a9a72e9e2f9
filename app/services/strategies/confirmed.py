"""Notifications for a confirmed appointment."""

from app.schemas.appointments import Appointment
from app.schemas.notifications import NotificationActor, NotificationScenario
from app.schemas.users import UserSummary
from app.services.strategies.base import (
    SEPARATOR,
    Audience,
    DispatchContext,
    NotificationStrategy,
    RenderedNotification,
    classify,
    format_when,
    is_employee_initiated,
    mode_label,
)

ANY_MODE = "Présentiel ou à distance"


class AppointmentConfirmedStrategy(NotificationStrategy):
    """
    An appointment was confirmed.

    Handles both the standard tag and the RH variant sent to RH recipients when
    the medical service confirms. Phrasing depends on who confirmed (actor),
    who reads, and whether the visit was initiated by the employee.
    """

    scenarios = frozenset(
        {
            NotificationScenario.APPOINTMENT_CONFIRMED,
            NotificationScenario.APPOINTMENT_CONFIRMED_RH,
        }
    )

    def _message(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        actor: NotificationActor | None,
        audience: Audience,
    ) -> str:
        name = appointment.employee.display_name
        email = appointment.employee.email
        when = format_when(appointment.scheduled_time or appointment.proposed_date)
        mode = mode_label(appointment.visit_mode, ANY_MODE)
        initiated = is_employee_initiated(appointment)
        status = f"{SEPARATOR}Statut : Confirmé."

        if actor == NotificationActor.EMPLOYEE:
            if audience == Audience.EMPLOYEE:
                what = (
                    "pour votre demande de rendez-vous" if initiated else "par le service médical"
                )
                return (
                    f"Vous avez confirmé le créneau proposé {what}{SEPARATOR}Date confirmée : {when}"
                    f"{SEPARATOR}Mode : {mode}{status}"
                )
            if audience == Audience.RH_OR_MANAGER:
                what = (
                    "le créneau proposé pour sa demande de rendez-vous"
                    if initiated
                    else "le rendez-vous proposé par le service médical"
                )
            else:
                what = (
                    "le créneau proposé pour sa demande"
                    if initiated
                    else "le rendez-vous que vous aviez proposé"
                )
            return (
                f"L'employé {name}{SEPARATOR}{email} a confirmé {what}"
                f"{SEPARATOR}Date confirmée : {when}{SEPARATOR}Mode : {mode}{status}"
            )

        if actor == NotificationActor.RH:
            what = (
                f"la demande de rendez-vous pour l'employé {name}"
                if initiated
                else f"la visite planifiée pour {name}"
            )
            return (
                f"Le service médical a confirmé {what}{SEPARATOR}{email}"
                f"{SEPARATOR}Date validée : {when}{SEPARATOR}Mode : {mode}{status}"
            )

        # Confirmed by the medical service
        if audience == Audience.EMPLOYEE:
            date_part, _, time_part = when.partition(" ")
            what = (
                "Votre demande de rendez-vous a été confirmée"
                if initiated
                else "La visite médicale planifiée a été confirmée"
            )
            return (
                f"{what} par le service médical{SEPARATOR}Date : {date_part}"
                f"{SEPARATOR}{time_part}{status}"
            )

        is_confirming_staff = (
            audience == Audience.MEDICAL_STAFF
            and appointment.updated_by is not None
            and appointment.updated_by.id == recipient.id
        )
        if is_confirming_staff:
            what = "la demande de rendez-vous de" if initiated else "la visite planifiée pour"
            return (
                f"Vous avez confirmé {what} {name}{SEPARATOR}{email}"
                f"{SEPARATOR}Date validée : {when}{SEPARATOR}Mode : {mode}{status}"
            )

        what = (
            "la demande de rendez-vous de l'employé" if initiated else "la visite planifiée pour l'employé"
        )
        return (
            f"Le service médical a confirmé {what} {name}{SEPARATOR}{email}"
            f"{SEPARATOR}Date validée : {when}{SEPARATOR}Mode : {mode}{status}"
        )

    def render(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        context: DispatchContext,
    ) -> RenderedNotification:
        audience = classify(recipient, appointment)
        actor = context.actor

        message = self._message(recipient, appointment, actor, audience)
        if context.extra_message and context.extra_message.strip():
            message = context.extra_message.strip()

        if actor == NotificationActor.EMPLOYEE:
            subject = f"Confirmation du créneau proposé — {appointment.employee.display_name}"
        else:
            subject = "Confirmation de votre rendez-vous médical"

        rendered = RenderedNotification(
            title="Rendez-vous confirmé",
            message=message,
            subject=subject,
        )
        if audience == Audience.RH_OR_MANAGER:
            rendered.template_name = "appointment-confirmation-rh-template"
            return rendered

        if audience == Audience.MEDICAL_STAFF:
            rendered.template_name = "appointment-confirmation-medical-template"
        else:
            rendered.template_name = "appointment-confirmation-template"
        rendered.primary_cta = self.cta(appointment, "view", "Voir le rendez-vous")
        rendered.secondary_cta = self.certificate_cta(appointment)
        return rendered
