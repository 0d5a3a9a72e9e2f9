"""Notifications for a cancelled appointment request."""

from app.schemas.appointments import Appointment
from app.schemas.notifications import NotificationScenario
from app.schemas.users import UserSummary
from app.services.strategies.base import (
    SEPARATOR,
    Audience,
    DispatchContext,
    NotificationStrategy,
    RenderedNotification,
    cancelled_by,
    classify,
    format_when,
    is_employee_initiated,
    mode_label,
    type_label,
)


class AppointmentCancelledStrategy(NotificationStrategy):
    """
    An appointment that did not come from the medical side was cancelled.

    The caller's extra message is not used: the text always states who
    cancelled and, for viewers allowed to see it, why.
    """

    scenarios = frozenset({NotificationScenario.APPOINTMENT_CANCELLED})

    def _message(self, appointment: Appointment, audience: Audience) -> str:
        name = appointment.employee.display_name
        email = appointment.employee.email
        when = format_when(appointment.effective_when)
        mode = mode_label(appointment.visit_mode, "Non spécifié")
        initiated = is_employee_initiated(appointment)
        status = f"{SEPARATOR}Statut : Annulé."
        who = cancelled_by(appointment)

        if who is not None:
            if audience == Audience.EMPLOYEE:
                return f"Votre rendez-vous du {when} a été annulé par {who}{SEPARATOR}Mode : {mode}{status}"
            return (
                f"Le rendez-vous de l'employé {name}{SEPARATOR}{email} a été annulé par {who}"
                f"{SEPARATOR}Date : {when}{status}"
            )

        if initiated:
            what, date_label = "sa demande de rendez-vous", "Date demandée"
        else:
            what, date_label = "le rendez-vous proposé par le service médical", "Date proposée"

        if audience == Audience.EMPLOYEE:
            own = "votre demande de rendez-vous" if initiated else what
            return (
                f"Vous avez annulé {own}{SEPARATOR}{date_label} : {when}"
                f"{SEPARATOR}Mode : {mode}{status}"
            )
        if audience == Audience.RH_OR_MANAGER:
            return (
                f"L'employé {name}{SEPARATOR}{email} a annulé {what}{SEPARATOR}{date_label} : {when}"
                f"{SEPARATOR}Mode : {mode}{status}"
            )
        if not initiated:
            what = "le rendez-vous que vous aviez proposé"
        return f"L'employé {name}{SEPARATOR}{email} a annulé {what}{status}"

    def render(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        context: DispatchContext,
    ) -> RenderedNotification:
        audience = classify(recipient, appointment)
        message = self._message(appointment, audience)

        reason = appointment.cancellation_reason
        if reason and reason.strip():
            message += f"{SEPARATOR}Motif d'annulation : {reason.strip()}"

        name = appointment.employee.display_name
        email = appointment.employee.email
        rendered = RenderedNotification(
            title="Rendez-vous annulé",
            message=message,
            subject=f"Annulation ({type_label(appointment.type)}) – {name} ({email})",
        )
        if audience == Audience.RH_OR_MANAGER:
            rendered.template_name = "appointment-cancellation-rh-template"
        else:
            rendered.template_name = "appointment-cancellation-medical-template"
            rendered.primary_cta = self.cta(appointment, "view", "Voir les détails")
        return rendered
