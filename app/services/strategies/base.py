"""
Base class and shared helpers of the notification strategies.

A strategy turns (recipient, appointment, scenario, actor) into one in-app
notification and, unless suppressed, one email. Messages are always built from
the appointment as redacted for the recipient, so text the recipient may not
see is gone before any sentence is assembled.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID

import structlog

from app.core.exceptions import NotificationDeliveryFailure
from app.schemas.appointments import Appointment, AppointmentType, VisitMode
from app.schemas.notifications import (
    APPOINTMENT_ENTITY,
    EmailCta,
    NotificationActor,
    NotificationScenario,
    NotificationType,
)
from app.schemas.users import UserSummary
from app.services import visibility_policy as policy
from app.services.email_service import EmailService
from app.services.notification_service import NotificationService

logger = structlog.get_logger(__name__)

DATE_TIME = "%d/%m/%Y %H:%M"
SEPARATOR = " – "

TYPE_LABELS = {
    AppointmentType.SPONTANEOUS: "Spontané",
    AppointmentType.PRE_RECRUITMENT: "Embauche",
    AppointmentType.PERIODIC: "Périodique",
    AppointmentType.RETURN_TO_WORK: "Reprise",
    AppointmentType.SURVEILLANCE_PARTICULIERE: "Surveillance particulière",
    AppointmentType.MEDICAL_CALL: "À l'appel du médecin",
    AppointmentType.OTHER: "Autre",
}

VISIT_TYPE_LABELS = {
    **TYPE_LABELS,
    AppointmentType.PRE_RECRUITMENT: "Pré-recrutement",
    AppointmentType.RETURN_TO_WORK: "Reprise de travail",
}


class Audience(str, Enum):
    """How a recipient relates to the appointment, for message selection."""

    EMPLOYEE = "employee"
    MEDICAL_STAFF = "medical_staff"
    RH_OR_MANAGER = "rh_or_manager"
    OTHER = "other"


def classify(user: UserSummary, appointment: Appointment) -> Audience:
    """Employee first, then medical staff, then RH or line manager."""
    if policy.is_employee_recipient(user, appointment):
        return Audience.EMPLOYEE
    if policy.is_medical_staff(user):
        return Audience.MEDICAL_STAFF
    if policy.is_rh(user) or policy.is_manager_for_appointment(user, appointment):
        return Audience.RH_OR_MANAGER
    return Audience.OTHER


def format_when(value: datetime | None) -> str:
    return value.strftime(DATE_TIME) if value else ""


def type_label(appointment_type: AppointmentType | None) -> str:
    if appointment_type is None:
        return "Non spécifié"
    return TYPE_LABELS[appointment_type]


def visit_type_label(appointment_type: AppointmentType | None) -> str:
    if appointment_type is None:
        return "Non spécifié"
    return VISIT_TYPE_LABELS[appointment_type]


def mode_label(visit_mode: VisitMode | None, default: str) -> str:
    if visit_mode is None:
        return default
    return "À distance" if visit_mode == VisitMode.REMOTE else "Présentiel"


def is_employee_initiated(appointment: Appointment) -> bool:
    """
    Whether the visit was initiated by the employee rather than the medical side.

    Spontaneous requests always are. Periodic, surveillance and medical-call
    visits never are. For pre-recruitment, return-to-work and other visits the
    creator is compared to the employee's own account.
    """
    match appointment.type:
        case AppointmentType.SPONTANEOUS:
            return True
        case AppointmentType.PRE_RECRUITMENT | AppointmentType.RETURN_TO_WORK | AppointmentType.OTHER:
            owner_id = appointment.employee.user_id
            return (
                appointment.created_by is not None
                and owner_id is not None
                and appointment.created_by.id == owner_id
            )
        case _:
            return False


def with_extra(message: str, extra_message: str | None) -> str:
    """Append the caller's extra message, if any."""
    if extra_message and extra_message.strip():
        return message + SEPARATOR + extra_message.strip()
    return message


def employee_with_email(appointment: Appointment) -> str:
    """``Name (email)``, or just the name when the email is unknown."""
    email = appointment.employee.email
    name = appointment.employee.display_name
    return f"{name} ({email})" if email else name


def enrich_subject(base: str, appointment: Appointment | None) -> str:
    """Suffix a subject with the authoritative date of the appointment."""
    if appointment is None or appointment.effective_when is None:
        return base
    return f"{base} — {appointment.effective_when.strftime(DATE_TIME)}"


@dataclass(frozen=True)
class DispatchContext:
    """Everything a strategy needs besides the recipient."""

    scenario: NotificationScenario | str
    appointment: Appointment
    actor: NotificationActor | None = None
    extra_message: str | None = None
    acting_user_id: UUID | None = None


@dataclass
class RenderedNotification:
    """Message and email choices computed for one recipient."""

    title: str
    message: str
    link_action: str = "view"
    subject: str = ""
    template_name: str | None = None
    primary_cta: EmailCta | None = None
    secondary_cta: EmailCta | None = None
    extra_vars: dict[str, Any] = field(default_factory=dict)
    send_email: bool = True


class NotificationStrategy(ABC):
    """Handles the notifications of one or more scenarios."""

    scenarios: ClassVar[frozenset[NotificationScenario]] = frozenset()

    def __init__(
        self,
        notifications: NotificationService,
        emails: EmailService,
        frontend_base_url: str,
    ):
        """
        Initialize strategy.

        Args:
            notifications: In-app notification store
            emails: Email delivery adapter
            frontend_base_url: Base of the action links
        """
        self.notifications = notifications
        self.emails = emails
        self.frontend_base_url = frontend_base_url

    def supports(self, scenario: NotificationScenario | str | None) -> bool:
        return scenario in self.scenarios

    def action_link(self, appointment: Appointment, action: str | None = None) -> str:
        """Deep link to the appointment action page of the frontend."""
        base = self.frontend_base_url.rstrip("/")
        if appointment.id is None:
            return base
        link = f"{base}/appointment_action?id={appointment.id}"
        if action:
            link += f"&action={action}"
        return link

    def cta(self, appointment: Appointment, action: str, label: str) -> EmailCta:
        return EmailCta(url=self.action_link(appointment, action), label=label)

    def certificate_cta(self, appointment: Appointment) -> EmailCta | None:
        """Secondary link to the certificate, offered for return-to-work visits only."""
        if appointment.type != AppointmentType.RETURN_TO_WORK:
            return None
        return self.cta(appointment, "certificate", "Voir le certificat")

    @abstractmethod
    def render(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        context: DispatchContext,
    ) -> RenderedNotification:
        """
        Build the notification for one recipient.

        Args:
            recipient: User being notified
            appointment: Appointment already redacted for that user
            context: Scenario, actor and extra message of the dispatch

        Returns:
            Message, link and email choices
        """

    def is_self_action(self, recipient: UserSummary, context: DispatchContext) -> bool:
        """The recipient performed the action and holds no privileged role."""
        return (
            context.acting_user_id is not None
            and recipient.id == context.acting_user_id
            and not policy.is_privileged(recipient)
        )

    async def notify(self, recipient: UserSummary, context: DispatchContext) -> None:
        """
        Notify one recipient on both channels.

        The two channels fail independently: an in-app store failure does not
        prevent the email, and email failures are only logged.
        """
        view = policy.redact_for(recipient, context.appointment)
        rendered = self.render(recipient, view, context)
        log = logger.bind(
            strategy=type(self).__name__,
            recipient_id=str(recipient.id),
            appointment_id=str(view.id) if view.id else None,
        )

        try:
            await self.notifications.send_general_notification(
                recipient,
                rendered.title,
                rendered.message,
                NotificationType.APPOINTMENT,
                self.action_link(view, rendered.link_action),
                APPOINTMENT_ENTITY,
                view.id,
            )
        except NotificationDeliveryFailure as e:
            log.warning("notification_channel_failed", channel=e.channel, error=e.message)

        if not rendered.send_email:
            return
        if self.is_self_action(recipient, context):
            log.debug("email_suppressed", reason="self_action")
            return

        try:
            await self.emails.send_appointment_notification(
                [recipient],
                view,
                rendered.subject,
                rendered.template_name,
                primary_cta=rendered.primary_cta,
                secondary_cta=rendered.secondary_cta,
                extra_vars=rendered.extra_vars or None,
            )
        except Exception as e:
            log.warning("notification_channel_failed", channel="email", error=str(e))


def cancelled_by(appointment: Appointment) -> str | None:
    """Who cancelled, when it was not the employee: "le service médical" or "les RH"."""
    canceller = appointment.updated_by
    if canceller is None or canceller.id == appointment.employee.user_id:
        return None
    if policy.is_medical_staff(canceller):
        return "le service médical"
    if policy.is_rh(canceller):
        return "les RH"
    return "un administrateur"
