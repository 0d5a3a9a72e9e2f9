"""
Notification router.

Maps each scenario to its strategy through an explicit table that must cover
every member of NotificationScenario, then notifies recipients one by one.
A failure for one recipient is logged and never reaches the others or the
caller.
"""

from collections.abc import Iterable
from uuid import UUID

import structlog

from app.schemas.appointments import Appointment
from app.schemas.notifications import NotificationActor, NotificationScenario
from app.schemas.users import UserSummary
from app.services.strategies import DispatchContext, NotificationStrategy, legacy_tag
from app.services.strategies.fallback import STATUS_UPDATE

logger = structlog.get_logger(__name__)


class NotificationRouter:
    """Routes a scenario to its strategy for every recipient."""

    def __init__(
        self,
        strategies: Iterable[NotificationStrategy],
        fallback: NotificationStrategy | None = None,
    ):
        """
        Initialize router.

        Args:
            strategies: One strategy per scenario (a strategy may cover several)
            fallback: Generic notice strategy for legacy or unknown tags

        Raises:
            ValueError: If a scenario has no strategy or more than one
        """
        self.table = self._build_table(strategies)
        self.fallback = fallback

    @staticmethod
    def _build_table(
        strategies: Iterable[NotificationStrategy],
    ) -> dict[NotificationScenario, NotificationStrategy]:
        table: dict[NotificationScenario, NotificationStrategy] = {}
        for strategy in strategies:
            for scenario in strategy.scenarios:
                if scenario in table:
                    raise ValueError(
                        f"Scenario {scenario.value} is handled by both "
                        f"{type(table[scenario]).__name__} and {type(strategy).__name__}"
                    )
                table[scenario] = strategy

        missing = [s.value for s in NotificationScenario if s not in table]
        if missing:
            raise ValueError(f"No notification strategy for scenarios: {', '.join(missing)}")
        return table

    def strategy_for(self, scenario: NotificationScenario | str | None) -> NotificationStrategy | None:
        """Return the strategy of a scenario, or None when only a fallback applies."""
        parsed = NotificationScenario.from_string(scenario)
        return self.table[parsed] if parsed is not None else None

    async def dispatch(
        self,
        scenario: NotificationScenario | str,
        recipients: Iterable[UserSummary | None],
        appointment: Appointment,
        extra_message: str | None = None,
        actor_override: NotificationActor | None = None,
        acting_user_id: UUID | None = None,
    ) -> int:
        """
        Notify every recipient of a scenario.

        Args:
            scenario: Scenario tag, or a legacy string
            recipients: Users to notify; None entries are skipped
            appointment: Appointment as committed
            extra_message: Optional text from the caller
            actor_override: Actor to phrase messages for; derived from the tag when None
            acting_user_id: User who performed the action, for self-notification suppression

        Returns:
            Number of recipients handled without error
        """
        parsed = NotificationScenario.from_string(scenario)
        tag: NotificationScenario | str | None = parsed
        strategy = self.table.get(parsed) if parsed is not None else None

        if strategy is None:
            tag = legacy_tag(scenario)
            if tag is None:
                logger.warning(
                    "unknown_notification_scenario",
                    scenario=str(scenario),
                    appointment_id=str(appointment.id) if appointment.id else None,
                )
                tag = STATUS_UPDATE
            strategy = self.fallback
            if strategy is None:
                return 0

        context = DispatchContext(
            scenario=tag,
            appointment=appointment,
            actor=actor_override or NotificationActor.from_scenario(scenario),
            extra_message=extra_message,
            acting_user_id=acting_user_id,
        )

        delivered = 0
        for recipient in recipients:
            if recipient is None:
                continue
            try:
                await strategy.notify(recipient, context)
            except Exception as e:
                logger.error(
                    "notification_strategy_failed",
                    strategy=type(strategy).__name__,
                    scenario=str(getattr(tag, "value", tag)),
                    recipient_id=str(recipient.id),
                    appointment_id=str(appointment.id) if appointment.id else None,
                    error=str(e),
                )
                continue
            delivered += 1

        logger.info(
            "notification_dispatched",
            scenario=str(getattr(tag, "value", tag)),
            appointment_id=str(appointment.id) if appointment.id else None,
            actor=context.actor.value if context.actor else None,
            delivered=delivered,
        )
        return delivered
