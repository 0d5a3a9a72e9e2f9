"""
Email delivery adapter.

Builds the template context of appointment emails and hands one message per
recipient to a transport. Sends are bounded by a timeout; a slow or failing
transport is logged and dropped, never retried.
"""

import asyncio
from collections.abc import Iterable
from typing import Any, Protocol

import httpx
import structlog

from app.config import Settings
from app.schemas.appointments import Appointment
from app.schemas.notifications import EmailCta, OutgoingEmail
from app.schemas.users import UserSummary

logger = structlog.get_logger(__name__)

GENERIC_TEMPLATE = "appointment-generic"
DEFAULT_ACTION_LABEL = "Ouvrir l'application"
DEFAULT_SECONDARY_ACTION_LABEL = "Annuler"


class EmailTransport(Protocol):
    """Sends one rendered-by-the-provider templated email."""

    async def send(self, email: OutgoingEmail) -> None: ...


class HttpEmailTransport:
    """Posts templated emails to an HTTP email provider."""

    def __init__(self, api_url: str, api_key: str, from_address: str, timeout: float = 10.0):
        self.api_url = api_url
        self.api_key = api_key
        self.from_address = from_address
        self.timeout = timeout

    async def send(self, email: OutgoingEmail) -> None:
        """
        Post one email to the provider.

        Raises:
            httpx.HTTPError: On transport errors or a non-2xx response
        """
        payload = {
            "from": self.from_address,
            "to": [email.to],
            "subject": email.subject,
            "template": email.template_name,
            "variables": email.context,
        }
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.post(self.api_url, json=payload, headers=headers)
            response.raise_for_status()


class LoggingEmailTransport:
    """Transport used when no provider is configured: records the send in the log."""

    async def send(self, email: OutgoingEmail) -> None:
        logger.info(
            "email_send_skipped",
            reason="no_email_provider",
            to=email.to,
            subject=email.subject,
            template=email.template_name,
        )


def build_transport(settings: Settings) -> EmailTransport:
    """Pick the transport for the configured environment."""
    if settings.email_api_url:
        return HttpEmailTransport(
            api_url=settings.email_api_url,
            api_key=settings.email_api_key,
            from_address=settings.email_from_address,
            timeout=settings.email_send_timeout_seconds,
        )
    return LoggingEmailTransport()


def _fmt(value) -> str | None:
    return value.strftime("%d/%m/%Y %H:%M") if value else None


def appointment_context(appointment: Appointment) -> dict[str, Any]:
    """Flatten an (already privacy-filtered) appointment for the template engine."""
    employee = appointment.employee
    return {
        "id": str(appointment.id) if appointment.id else None,
        "type": appointment.type.value if appointment.type else None,
        "status": appointment.status.value,
        "visitMode": appointment.visit_mode.value if appointment.visit_mode else None,
        "isObligatory": appointment.is_obligatory,
        "employeeName": employee.display_name,
        "employeeEmail": employee.email,
        "requestedDateEmployee": _fmt(appointment.requested_date_employee),
        "proposedDate": _fmt(appointment.proposed_date),
        "scheduledTime": _fmt(appointment.scheduled_time),
        "motif": appointment.motif,
        "notes": appointment.notes,
        "medicalInstructions": appointment.medical_instructions,
        "medicalServicePhone": appointment.medical_service_phone,
        "cancellationReason": appointment.cancellation_reason,
    }


class EmailService:
    """Service for templated appointment emails."""

    def __init__(
        self,
        transport: EmailTransport,
        timeout_seconds: float = 10.0,
        known_templates: Iterable[str] | None = None,
    ):
        """
        Initialize email service.

        Args:
            transport: Delivery transport
            timeout_seconds: Upper bound of a single send
            known_templates: Template names the provider knows; empty trusts every name
        """
        self.transport = transport
        self.timeout_seconds = timeout_seconds
        self.known_templates = frozenset(known_templates or ())

    def resolve_template(self, template_name: str | None) -> str:
        """Return the template name to use, falling back to the generic template."""
        name = (template_name or "").strip()
        if not name:
            return GENERIC_TEMPLATE
        if self.known_templates and name not in self.known_templates:
            logger.warning("email_template_unknown", template=name, fallback=GENERIC_TEMPLATE)
            return GENERIC_TEMPLATE
        return name

    def build_context(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        subject: str,
        primary_cta: EmailCta | None = None,
        secondary_cta: EmailCta | None = None,
        extra_vars: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        context: dict[str, Any] = {
            "recipientName": recipient.display_name,
            "appointment": appointment_context(appointment),
            "subject": subject,
        }
        if primary_cta is not None:
            context["actionUrl"] = primary_cta.url
            context["actionLabel"] = primary_cta.label or DEFAULT_ACTION_LABEL
        if secondary_cta is not None:
            context["secondaryActionUrl"] = secondary_cta.url
            context["secondaryActionLabel"] = secondary_cta.label or DEFAULT_SECONDARY_ACTION_LABEL
        if extra_vars:
            context.update(extra_vars)
        return context

    async def send_appointment_notification(
        self,
        recipients: Iterable[UserSummary],
        appointment: Appointment,
        subject: str,
        template_name: str | None,
        primary_cta: EmailCta | None = None,
        secondary_cta: EmailCta | None = None,
        extra_vars: dict[str, Any] | None = None,
    ) -> int:
        """
        Send an appointment email to each recipient.

        Each recipient gets its own transport call. A send that times out or
        fails is logged and dropped; the others proceed.

        Args:
            recipients: Users to email
            appointment: Privacy-filtered appointment for the context
            subject: Email subject
            template_name: Requested template
            primary_cta: Main call-to-action
            secondary_cta: Optional second call-to-action
            extra_vars: Additional template variables

        Returns:
            Number of emails handed off successfully
        """
        template = self.resolve_template(template_name)
        sent = 0

        for recipient in recipients:
            if recipient is None or not recipient.email:
                continue

            email = OutgoingEmail(
                to=recipient.email,
                subject=subject,
                template_name=template,
                context=self.build_context(
                    recipient, appointment, subject, primary_cta, secondary_cta, extra_vars
                ),
            )
            try:
                await asyncio.wait_for(self.transport.send(email), timeout=self.timeout_seconds)
            except TimeoutError:
                logger.warning(
                    "email_send_timeout",
                    to=recipient.email,
                    template=template,
                    timeout_seconds=self.timeout_seconds,
                    appointment_id=str(appointment.id) if appointment.id else None,
                )
                continue
            except Exception as e:
                logger.error(
                    "email_send_failed",
                    to=recipient.email,
                    template=template,
                    appointment_id=str(appointment.id) if appointment.id else None,
                    error=str(e),
                )
                continue

            sent += 1
            logger.info(
                "email_sent",
                to=recipient.email,
                template=template,
                appointment_id=str(appointment.id) if appointment.id else None,
            )

        return sent
