"""
Post-commit notification dispatch.

The appointment service commits a transition, then submits a dispatch
request here. In ``background`` mode the request runs as an asyncio task with
its own database session and the caller returns immediately; in ``inline``
mode it is awaited. Either way, nothing raised during dispatch reaches the
caller.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from uuid import UUID

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import Settings
from app.repositories.notifications import SqlNotificationRepository
from app.schemas.appointments import Appointment
from app.schemas.notifications import NotificationActor, NotificationScenario
from app.schemas.users import UserSummary
from app.services.email_service import EmailService, build_transport
from app.services.notification_router import NotificationRouter
from app.services.notification_service import NotificationService
from app.services.strategies import GenericNoticeStrategy, build_strategies

logger = structlog.get_logger(__name__)

BACKGROUND = "background"
INLINE = "inline"


@dataclass(frozen=True)
class DispatchRequest:
    """One scenario to deliver to a resolved audience."""

    scenario: NotificationScenario | str
    recipients: list[UserSummary] = field(default_factory=list)
    appointment: Appointment | None = None
    extra_message: str | None = None
    actor_override: NotificationActor | None = None
    acting_user_id: UUID | None = None


def build_router(session: AsyncSession, settings: Settings) -> NotificationRouter:
    """Wire the router, its strategies and both delivery channels on a session."""
    notifications = NotificationService(SqlNotificationRepository(session))
    emails = EmailService(
        build_transport(settings),
        timeout_seconds=settings.email_send_timeout_seconds,
        known_templates=settings.email_templates,
    )
    return NotificationRouter(
        build_strategies(notifications, emails, settings.frontend_base_url),
        fallback=GenericNoticeStrategy(notifications, emails, settings.frontend_base_url),
    )


class NotificationDispatcher:
    """Runs dispatch requests after the triggering transition has committed."""

    def __init__(
        self,
        runner: Callable[[DispatchRequest], Awaitable[object]],
        mode: str = BACKGROUND,
    ):
        """
        Initialize dispatcher.

        Args:
            runner: Coroutine function delivering one request
            mode: "background" or "inline"
        """
        if mode not in (BACKGROUND, INLINE):
            raise ValueError(f"Unknown notification dispatch mode: {mode}")
        self.runner = runner
        self.mode = mode
        self._tasks: set[asyncio.Task] = set()

    @classmethod
    def for_router(cls, router: NotificationRouter, mode: str = INLINE) -> "NotificationDispatcher":
        """Dispatcher bound to an already built router."""

        async def run(request: DispatchRequest) -> int:
            return await router.dispatch(
                request.scenario,
                request.recipients,
                request.appointment,
                extra_message=request.extra_message,
                actor_override=request.actor_override,
                acting_user_id=request.acting_user_id,
            )

        return cls(run, mode)

    @classmethod
    def with_sessions(
        cls,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings,
    ) -> "NotificationDispatcher":
        """Dispatcher opening a fresh session per request, as background tasks require."""

        async def run(request: DispatchRequest) -> int:
            async with session_factory() as session:
                router = build_router(session, settings)
                return await router.dispatch(
                    request.scenario,
                    request.recipients,
                    request.appointment,
                    extra_message=request.extra_message,
                    actor_override=request.actor_override,
                    acting_user_id=request.acting_user_id,
                )

        return cls(run, settings.notification_dispatch_mode)

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def _run_safely(self, request: DispatchRequest) -> None:
        try:
            await self.runner(request)
        except Exception as e:
            logger.error(
                "notification_dispatch_failed",
                scenario=str(getattr(request.scenario, "value", request.scenario)),
                appointment_id=str(request.appointment.id)
                if request.appointment and request.appointment.id
                else None,
                error=str(e),
            )

    async def submit(self, request: DispatchRequest) -> None:
        """Hand a request over for delivery; never raises delivery errors."""
        if not request.recipients or request.appointment is None:
            return

        if self.mode == INLINE:
            await self._run_safely(request)
            return

        task = asyncio.create_task(self._run_safely(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def drain(self) -> None:
        """Wait for background dispatches still running (used on shutdown)."""
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
