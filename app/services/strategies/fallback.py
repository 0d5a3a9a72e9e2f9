"""Generic notices for legacy scenario strings outside the scenario enum."""

from app.schemas.appointments import Appointment, AppointmentStatus
from app.schemas.users import UserSummary
from app.services import visibility_policy as policy
from app.services.strategies.base import (
    DispatchContext,
    NotificationStrategy,
    RenderedNotification,
    enrich_subject,
    format_when,
    with_extra,
)

GENERIC_TEMPLATE = "appointment-generic"

CREATION = "CREATION"
STATUS_UPDATE = "STATUS_UPDATE"
OBLIGATORY = "OBLIGATORY"
LEGACY_SCENARIOS = frozenset({CREATION, STATUS_UPDATE, OBLIGATORY})

STATUS_LABELS = {
    AppointmentStatus.REQUESTED_EMPLOYEE: "En attente",
    AppointmentStatus.OBLIGATORY: "Obligatoire",
    AppointmentStatus.PROPOSED_MEDECIN: "Créneau proposé",
    AppointmentStatus.PLANNED_BY_MEDICAL_STAFF: "Planifié",
    AppointmentStatus.CONFIRMED: "Confirmé",
    AppointmentStatus.CANCELLED: "Annulé",
    AppointmentStatus.COMPLETED: "Terminé",
}


def legacy_tag(scenario) -> str | None:
    """Normalize a legacy scenario string, or None if it is not one."""
    if not isinstance(scenario, str):
        return None
    tag = scenario.strip().upper()
    return tag if tag in LEGACY_SCENARIOS else None


class GenericNoticeStrategy(NotificationStrategy):
    """Minimal notices: created, status changed, obligatory visit."""

    def supports(self, scenario) -> bool:
        return legacy_tag(scenario) is not None

    def render(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        context: DispatchContext,
    ) -> RenderedNotification:
        tag = legacy_tag(context.scenario)
        when = format_when(appointment.effective_when)

        if tag == OBLIGATORY:
            title = "Visite médicale obligatoire"
            message = (
                "Une visite médicale obligatoire a été programmée pour vous. "
                "Veuillez confirmer votre disponibilité."
            )
            action, label = "confirm", "Confirmer le rendez-vous"
        elif tag == CREATION:
            title = "Nouveau rendez-vous"
            message = f"Un nouveau rendez-vous a été créé pour le {when}." if when else "Un nouveau rendez-vous a été créé."
            action, label = "view", "Ouvrir le rendez-vous"
        else:
            title = "Mise à jour de votre rendez-vous"
            message = f"Le statut du rendez-vous est maintenant : {STATUS_LABELS[appointment.status]}."
            action, label = "view", "Voir le rendez-vous"

        rendered = RenderedNotification(
            title=title,
            message=with_extra(message, context.extra_message),
            link_action=action,
            subject=enrich_subject(title, appointment),
            template_name=GENERIC_TEMPLATE,
        )
        if not policy.should_hide_email_cta(recipient, appointment):
            rendered.primary_cta = self.cta(appointment, action, label)
        return rendered
