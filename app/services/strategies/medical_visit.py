"""Notifications for visits planned by the medical service and the employee's answer."""

from abc import abstractmethod
from typing import ClassVar

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
    employee_with_email,
    format_when,
    is_employee_initiated,
    mode_label,
    type_label,
    visit_type_label,
    with_extra,
)


def _instructions(appointment: Appointment) -> str:
    text = appointment.medical_instructions
    if text and text.strip():
        return f"{SEPARATOR}Consignes : {text.strip()}"
    return ""


def _template(prefix: str, audience: Audience) -> str:
    if audience == Audience.RH_OR_MANAGER:
        return f"{prefix}-rh-template"
    if audience == Audience.EMPLOYEE:
        return f"{prefix}-employee-template"
    return f"{prefix}-medical-template"


class MedicalVisitPlannedStrategy(NotificationStrategy):
    """The medical service planned a visit directly."""

    scenarios = frozenset({NotificationScenario.MEDICAL_VISIT_PLANNED})

    def render(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        context: DispatchContext,
    ) -> RenderedNotification:
        audience = classify(recipient, appointment)
        name = appointment.employee.display_name
        email = appointment.employee.email
        when = format_when(appointment.scheduled_time)
        visit_type = visit_type_label(appointment.type)
        mode = mode_label(appointment.visit_mode, "Non spécifié")
        pending = f"{SEPARATOR}Statut : En attente."

        if audience == Audience.EMPLOYEE:
            message = (
                f"Le service médical vous propose une visite médicale ({visit_type}) le {when}"
                f"{SEPARATOR}Modalité : {mode}{_instructions(appointment)}{pending}"
            )
        elif audience == Audience.MEDICAL_STAFF:
            is_planner = appointment.created_by is not None and appointment.created_by.id == recipient.id
            who = "Vous avez planifié" if is_planner else "Le service médical a planifié"
            message = (
                f"{who} une visite médicale ({visit_type}) pour [{name} – {email}] le {when}"
                f"{SEPARATOR}Modalité : {mode}{_instructions(appointment)}{pending}"
            )
        else:
            message = (
                f"Le service médical a proposé une visite médicale ({visit_type}) pour "
                f"[{name} – {email}] le {when}{SEPARATOR}Modalité : {mode}{pending}"
            )

        rendered = RenderedNotification(
            title="Proposition de visite médicale",
            message=with_extra(message, context.extra_message),
            subject=f"Proposition de visite médicale – {employee_with_email(appointment)}",
            template_name=_template("medical-visit-planned", audience),
            extra_vars={
                "visitTypeText": visit_type,
                "appointmentDateTime": when,
                "visitModeText": mode,
                "medicalInstructions": appointment.medical_instructions,
                "employeeName": name,
                "employeeEmail": email,
                "medicalServicePhone": appointment.medical_service_phone,
            },
        )
        if audience == Audience.RH_OR_MANAGER:
            return rendered

        if audience == Audience.EMPLOYEE:
            rendered.primary_cta = self.cta(appointment, "confirm", "Répondre")
        else:
            rendered.primary_cta = self.cta(appointment, "view", "Voir les détails")
        rendered.secondary_cta = self.certificate_cta(appointment)
        return rendered


class _EmployeeAnswerStrategy(NotificationStrategy):
    """
    Shared phrasing of "the employee confirmed/cancelled the visit".

    Subclasses set the verb, the title and the templates. RH and managers never
    see the medical instructions; the redacted appointment already lacks them.
    """

    verb: ClassVar[str]
    status_label: ClassVar[str]
    title: ClassVar[str]
    template_prefix: ClassVar[str]
    certificate_link: ClassVar[bool] = False

    def _message(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        audience: Audience,
        when: str,
    ) -> str:
        visit_type = type_label(appointment.type)
        mode = mode_label(appointment.visit_mode, "Présentiel")
        initiated = is_employee_initiated(appointment)
        obligatory = "obligatoire " if appointment.is_obligatory else ""
        display = employee_with_email(appointment)
        status = f"{SEPARATOR}Statut : {self.status_label}."

        if audience == Audience.EMPLOYEE:
            if initiated:
                head = f"Vous avez {self.verb} votre demande de visite médicale ({visit_type}) du {when}"
            else:
                head = (
                    f"Vous avez {self.verb} la visite médicale {obligatory}({visit_type}) "
                    f"proposée par le service médical le {when}"
                )
            return f"{head}{SEPARATOR}Modalité : {mode}{_instructions(appointment)}{status}"

        if audience == Audience.MEDICAL_STAFF:
            if initiated:
                head = (
                    f"L'employé [{display}] a {self.verb} sa demande de visite médicale "
                    f"({visit_type}) du {when}"
                )
            else:
                head = (
                    f"L'employé [{display}] a {self.verb} la visite médicale {obligatory}({visit_type}) "
                    f"que vous aviez proposée le {when}"
                )
            return f"{head}{SEPARATOR}Modalité : {mode}{_instructions(appointment)}{status}"

        if initiated:
            head = f"L'employé [{display}] a {self.verb} sa demande de visite médicale ({visit_type}) le {when}"
        else:
            head = (
                f"L'employé [{display}] a {self.verb} la visite médicale {obligatory}({visit_type}) "
                f"proposée par le service médical le {when}"
            )
        return f"{head}{SEPARATOR}Modalité : {mode}{status}"

    def _when(self, appointment: Appointment) -> str:
        return format_when(appointment.effective_when)

    @abstractmethod
    def _subject(self, appointment: Appointment, audience: Audience) -> str: ...

    def _decorate(self, message: str, appointment: Appointment) -> str:
        return message

    def render(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        context: DispatchContext,
    ) -> RenderedNotification:
        audience = classify(recipient, appointment)
        message = self._message(recipient, appointment, audience, self._when(appointment))
        message = self._decorate(message, appointment)

        rendered = RenderedNotification(
            title=self.title,
            message=with_extra(message, context.extra_message),
            subject=self._subject(appointment, audience),
            template_name=_template(self.template_prefix, audience),
        )
        if audience == Audience.RH_OR_MANAGER:
            return rendered

        rendered.primary_cta = self.cta(appointment, "view", "Voir les détails")
        if self.certificate_link:
            rendered.secondary_cta = self.certificate_cta(appointment)
        return rendered


class MedicalVisitConfirmedByEmployeeStrategy(_EmployeeAnswerStrategy):
    """The employee confirmed a proposed or planned visit."""

    scenarios = frozenset({NotificationScenario.MEDICAL_VISIT_CONFIRMED_BY_EMPLOYEE})
    verb = "confirmé"
    status_label = "Confirmé"
    title = "Visite médicale confirmée"
    template_prefix = "medical-visit-confirmed"
    certificate_link = True

    def _when(self, appointment: Appointment) -> str:
        return format_when(appointment.scheduled_time)

    def _subject(self, appointment: Appointment, audience: Audience) -> str:
        display = employee_with_email(appointment)
        obligatory = (
            f"Visite médicale obligatoire ({type_label(appointment.type)}) – "
            if appointment.is_obligatory
            else ""
        )
        if audience == Audience.RH_OR_MANAGER:
            return f"Rendez-vous confirmé – {obligatory}{display}"
        if appointment.is_obligatory:
            return f"Confirmation – {obligatory}{display}"
        return f"Confirmation de visite médicale – {display}"


class MedicalVisitCancelledStrategy(_EmployeeAnswerStrategy):
    """A visit originated by the medical service was cancelled."""

    scenarios = frozenset({NotificationScenario.MEDICAL_VISIT_CANCELLED})
    verb = "annulé"
    status_label = "Annulé"
    title = "Visite médicale annulée"
    template_prefix = "medical-visit-cancelled"

    def _message(
        self,
        recipient: UserSummary,
        appointment: Appointment,
        audience: Audience,
        when: str,
    ) -> str:
        who = cancelled_by(appointment)
        if who is None:
            return super()._message(recipient, appointment, audience, when)

        visit_type = type_label(appointment.type)
        obligatory = "obligatoire " if appointment.is_obligatory else ""
        status = f"{SEPARATOR}Statut : {self.status_label}."
        if audience == Audience.EMPLOYEE:
            return (
                f"Votre visite médicale {obligatory}({visit_type}) du {when} a été annulée par {who}{status}"
            )
        return (
            f"La visite médicale {obligatory}({visit_type}) de l'employé [{employee_with_email(appointment)}] "
            f"du {when} a été annulée par {who}{status}"
        )

    def _subject(self, appointment: Appointment, audience: Audience) -> str:
        display = employee_with_email(appointment)
        if appointment.is_obligatory:
            return (
                f"Annulation – Visite médicale obligatoire ({type_label(appointment.type)}) – {display}"
            )
        return f"Annulation de visite médicale – {display}"

    def _decorate(self, message: str, appointment: Appointment) -> str:
        reason = appointment.cancellation_reason
        if reason and reason.strip():
            return f"{message}{SEPARATOR}Motif d'annulation : {reason.strip()}"
        return message
