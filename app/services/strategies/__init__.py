"""Notification strategies, one per business scenario."""

from app.services.email_service import EmailService
from app.services.notification_service import NotificationService
from app.services.strategies.base import DispatchContext, NotificationStrategy, RenderedNotification
from app.services.strategies.cancelled import AppointmentCancelledStrategy
from app.services.strategies.confirmed import AppointmentConfirmedStrategy
from app.services.strategies.fallback import GenericNoticeStrategy, legacy_tag
from app.services.strategies.medical_visit import (
    MedicalVisitCancelledStrategy,
    MedicalVisitConfirmedByEmployeeStrategy,
    MedicalVisitPlannedStrategy,
)
from app.services.strategies.requested import AppointmentRequestedStrategy
from app.services.strategies.slot_proposed import AppointmentSlotProposedStrategy

STRATEGY_CLASSES: tuple[type[NotificationStrategy], ...] = (
    AppointmentRequestedStrategy,
    AppointmentSlotProposedStrategy,
    AppointmentConfirmedStrategy,
    AppointmentCancelledStrategy,
    MedicalVisitPlannedStrategy,
    MedicalVisitConfirmedByEmployeeStrategy,
    MedicalVisitCancelledStrategy,
)


def build_strategies(
    notifications: NotificationService,
    emails: EmailService,
    frontend_base_url: str,
) -> list[NotificationStrategy]:
    """Instantiate every scenario strategy with shared collaborators."""
    return [cls(notifications, emails, frontend_base_url) for cls in STRATEGY_CLASSES]


__all__ = [
    "STRATEGY_CLASSES",
    "AppointmentCancelledStrategy",
    "AppointmentConfirmedStrategy",
    "AppointmentRequestedStrategy",
    "AppointmentSlotProposedStrategy",
    "DispatchContext",
    "GenericNoticeStrategy",
    "MedicalVisitCancelledStrategy",
    "MedicalVisitConfirmedByEmployeeStrategy",
    "MedicalVisitPlannedStrategy",
    "NotificationStrategy",
    "RenderedNotification",
    "build_strategies",
    "legacy_tag",
]
