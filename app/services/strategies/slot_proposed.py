"""Notifications for a slot proposed by the medical service."""

from app.schemas.appointments import Appointment
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
    mode_label,
    type_label,
)


class AppointmentSlotProposedStrategy(NotificationStrategy):
    """The medical service proposed a (new) slot."""

    scenarios = frozenset({NotificationScenario.APPOINTMENT_SLOT_PROPOSED})

    def render(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        context: DispatchContext,
    ) -> RenderedNotification:
        audience = classify(recipient, appointment)
        name = appointment.employee.display_name
        email = appointment.employee.email
        proposed = format_when(appointment.proposed_date)
        visit_type = type_label(appointment.type)
        obligatory = appointment.is_obligatory
        obligatory_part = f" (Obligatoire – {visit_type})" if obligatory else ""
        initiated = f" (Obligatoire – {visit_type} – Initiée par RH)" if obligatory else ""
        is_proposer = appointment.updated_by is not None and appointment.updated_by.id == recipient.id

        if audience == Audience.EMPLOYEE:
            mode_part = ""
            if appointment.visit_mode is not None:
                mode_part = f"{SEPARATOR}Mode : {mode_label(appointment.visit_mode, '')}"
            message = (
                f"Le service médical vous propose un nouveau créneau{obligatory_part}"
                f"{SEPARATOR}{proposed}{mode_part}{SEPARATOR}Statut : Créneau proposé."
            )
        elif audience == Audience.MEDICAL_STAFF and is_proposer:
            message = (
                f"Vous avez proposé un nouveau créneau{initiated} pour {name}{SEPARATOR}{email}"
                f"{SEPARATOR}Nouvelle proposition : {proposed}"
                f"{SEPARATOR}Statut : En attente de réponse."
            )
        elif audience == Audience.MEDICAL_STAFF:
            message = (
                f"Le service médical a proposé un nouveau créneau{initiated} pour l'employé "
                f"{name}{SEPARATOR}{email}{SEPARATOR}Nouvelle proposition : {proposed}"
                f"{SEPARATOR}Statut : Créneau proposé."
            )
        else:
            message = (
                f"Le service médical a proposé un nouveau créneau{obligatory_part} pour l'employé "
                f"{name}{SEPARATOR}{email}{SEPARATOR}Nouvelle proposition : {proposed}"
                f"{SEPARATOR}Statut : Créneau proposé."
            )

        if context.extra_message and context.extra_message.strip():
            message = context.extra_message.strip()

        if obligatory:
            subject = (
                f"Nouveau créneau proposé – Visite médicale obligatoire ({visit_type})"
                f" – {name} ({email})"
            )
        else:
            subject = f"Nouveau créneau proposé ({visit_type}) – {name} ({email})"

        rendered = RenderedNotification(
            title="Créneau proposé",
            message=message,
            link_action="confirm" if audience == Audience.EMPLOYEE else "view",
            subject=subject,
        )

        if audience == Audience.EMPLOYEE:
            rendered.template_name = "appointment-proposal-template"
            rendered.primary_cta = self.cta(appointment, "confirm", "Confirmer le créneau")
            rendered.secondary_cta = self.cta(appointment, "cancel", "Refuser la proposition")
            rendered.extra_vars = {"justification": appointment.latest_comment}
        elif audience == Audience.MEDICAL_STAFF:
            # The medical side follows proposals in-app only
            rendered.send_email = False
        elif audience == Audience.RH_OR_MANAGER:
            rendered.template_name = "appointment-proposal-rh-template"
        else:
            rendered.template_name = "appointment-proposal-template"
            rendered.primary_cta = self.cta(appointment, "view", "Voir les détails")

        return rendered
