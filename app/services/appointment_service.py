"""Appointment service for business logic."""

from uuid import UUID

import structlog

from app.core.exceptions import ForbiddenException, NotFoundException
from app.repositories.base import AppointmentRepository, EmployeeRepository
from app.schemas.appointments import (
    Appointment,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentRequestCreate,
    AppointmentResponse,
    AppointmentStatus,
    CommentResponse,
    MedicalStaffConfirmation,
    MedicalVisitPlan,
    ObligatoryVisitCreate,
    SlotProposal,
)
from app.schemas.notifications import NotificationActor, NotificationScenario
from app.schemas.users import CurrentActor, EmployeeProfile, UserSummary
from app.services import visibility_policy as policy
from app.services.appointment_workflow import AppointmentWorkflow, TransitionResult
from app.services.notification_dispatcher import DispatchRequest, NotificationDispatcher
from app.services.recipient_resolver import RecipientResolver

logger = structlog.get_logger(__name__)

DEFAULT_OBLIGATORY_MESSAGE = "Une visite médicale obligatoire a été programmée."
HISTORY_STATUSES = [AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED]


def to_response(appointment: Appointment, viewer: UserSummary | None) -> AppointmentResponse:
    """
    Build the privacy-filtered projection of an appointment for a viewer.

    Args:
        appointment: Full appointment
        viewer: User the projection is built for

    Returns:
        Projection with hidden fields nulled and the viewer's action flags
    """
    view = policy.redact_for(viewer, appointment)
    flags = policy.action_flags(viewer, appointment)
    return AppointmentResponse(
        id=appointment.id,
        employee_id=appointment.employee.id,
        employee_name=appointment.employee.display_name,
        employee_email=appointment.employee.email,
        nurse_id=appointment.nurse.id if appointment.nurse else None,
        doctor_id=appointment.doctor.id if appointment.doctor else None,
        type=appointment.type,
        status=appointment.status,
        visit_mode=appointment.visit_mode,
        is_obligatory=appointment.is_obligatory,
        requested_date_employee=appointment.requested_date_employee,
        proposed_date=appointment.proposed_date,
        scheduled_time=appointment.scheduled_time,
        motif=view.motif or view.reason,
        notes=view.notes,
        medical_instructions=view.medical_instructions,
        medical_service_phone=view.medical_service_phone,
        cancellation_reason=view.cancellation_reason,
        comments=[
            CommentResponse(
                id=c.id,
                author_id=c.author.id if c.author else None,
                author_name=c.author.display_name if c.author else None,
                comment=c.comment,
                created_at=c.created_at,
            )
            for c in view.comments
        ],
        can_confirm=flags.can_confirm,
        can_cancel=flags.can_cancel,
        can_propose=flags.can_propose,
        can_comment=flags.can_comment,
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
    )


class AppointmentService:
    """Service for the appointment workflow: apply, persist, then notify."""

    def __init__(
        self,
        appointments: AppointmentRepository,
        employees: EmployeeRepository,
        resolver: RecipientResolver,
        workflow: AppointmentWorkflow,
        dispatcher: NotificationDispatcher,
    ):
        """
        Initialize service.

        Args:
            appointments: Appointment repository
            employees: Employee repository
            resolver: Recipient resolver
            workflow: State machine
            dispatcher: Post-commit notification dispatcher
        """
        self.appointments = appointments
        self.employees = employees
        self.resolver = resolver
        self.workflow = workflow
        self.dispatcher = dispatcher

    async def _get_or_404(self, appointment_id: UUID) -> Appointment:
        appointment = await self.appointments.get(appointment_id)
        if appointment is None:
            raise NotFoundException("Appointment not found")
        return appointment

    async def _get_employee(self, employee_id: UUID) -> EmployeeProfile:
        employee = await self.employees.get_employee(employee_id)
        if employee is None:
            raise NotFoundException("Employee not found")
        return employee

    async def _persist(self, result: TransitionResult, actor: CurrentActor, is_new: bool) -> Appointment:
        """Write the transition and its new comment as one unit of work."""
        try:
            if is_new:
                saved = await self.appointments.add(result.appointment)
            else:
                saved = await self.appointments.save(result.appointment)

            if result.new_comment:
                stored = await self.appointments.add_comment(saved.id, actor.user, result.new_comment)
                saved = saved.model_copy(update={"comments": [*saved.comments[:-1], stored]})

            await self.appointments.commit()
        except Exception:
            await self.appointments.rollback()
            raise

        logger.info(
            "appointment_transition_applied",
            appointment_id=str(saved.id),
            actor_id=str(actor.id),
            previous_status=result.previous_status.value if result.previous_status else None,
            status=saved.status.value,
            scenario=result.scenario.value if result.scenario else None,
        )
        return saved

    async def _notify(
        self,
        scenario: NotificationScenario,
        recipients: list[UserSummary],
        appointment: Appointment,
        actor: CurrentActor,
        actor_override: NotificationActor | None = None,
        extra_message: str | None = None,
    ) -> None:
        await self.dispatcher.submit(
            DispatchRequest(
                scenario=scenario,
                recipients=recipients,
                appointment=appointment,
                extra_message=extra_message,
                actor_override=actor_override,
                acting_user_id=actor.id,
            )
        )

    async def _after_commit(self, label: str, appointment: Appointment, coro) -> None:
        """Run post-commit notification work; failures there never fail the call."""
        try:
            await coro
        except Exception as e:
            logger.warning(
                "failed_to_send_appointment_notification",
                step=label,
                appointment_id=str(appointment.id),
                error=str(e),
            )

    @staticmethod
    def _actor_role(actor: CurrentActor, appointment: Appointment) -> NotificationActor:
        if appointment.employee.user_id == actor.id:
            return NotificationActor.EMPLOYEE
        if actor.is_medical_staff:
            return NotificationActor.MEDICAL_STAFF
        if actor.is_rh:
            return NotificationActor.RH
        return NotificationActor.SYSTEM

    # ---- transitions ----------------------------------------------------

    async def request_appointment(
        self,
        actor: CurrentActor,
        data: AppointmentRequestCreate,
    ) -> AppointmentResponse:
        """
        Create an employee self-service request.

        Args:
            actor: Requesting employee
            data: Request data

        Returns:
            Created appointment projection
        """
        result = self.workflow.request(actor, data)
        saved = await self._persist(result, actor, is_new=True)

        async def notify():
            recipients = await self.resolver.default_audience(saved)
            await self._notify(result.scenario, recipients, saved, actor, NotificationActor.EMPLOYEE)

        await self._after_commit("request", saved, notify())
        return to_response(saved, actor.user)

    async def create_obligatory(
        self,
        actor: CurrentActor,
        data: ObligatoryVisitCreate,
    ) -> AppointmentResponse:
        """
        Create an obligatory visit on behalf of RH.

        Only medical staff are notified; the employee is not told until a slot
        is proposed.

        Raises:
            NotFoundException: If the employee does not exist
        """
        employee = await self._get_employee(data.employee_id)
        result = self.workflow.create_obligatory(actor, employee, data)
        saved = await self._persist(result, actor, is_new=True)

        async def notify():
            recipients = await self.resolver.medical_staff()
            await self._notify(
                result.scenario,
                recipients,
                saved,
                actor,
                NotificationActor.RH,
                extra_message=data.extra_message or DEFAULT_OBLIGATORY_MESSAGE,
            )

        await self._after_commit("create_obligatory", saved, notify())
        return to_response(saved, actor.user)

    async def plan_visit(self, actor: CurrentActor, data: MedicalVisitPlan) -> AppointmentResponse:
        """
        Plan a visit directly as medical staff.

        Raises:
            NotFoundException: If the employee does not exist
        """
        employee = await self._get_employee(data.employee_id)
        result = self.workflow.plan(actor, employee, data)
        saved = await self._persist(result, actor, is_new=True)

        async def notify():
            recipients = await self.resolver.default_audience(saved)
            await self._notify(result.scenario, recipients, saved, actor, NotificationActor.MEDICAL_STAFF)

        await self._after_commit("plan", saved, notify())
        return to_response(saved, actor.user)

    async def propose_slot(
        self,
        actor: CurrentActor,
        appointment_id: UUID,
        data: SlotProposal,
    ) -> AppointmentResponse:
        """
        Propose a slot as medical staff.

        The proposer is left out of the audience, except on obligatory visits
        where the audience is the employee, RH and the proposer.
        """
        appointment = await self._get_or_404(appointment_id)
        result = self.workflow.propose_slot(actor, appointment, data)
        saved = await self._persist(result, actor, is_new=False)

        async def notify():
            recipients = await self.resolver.for_slot_proposal(saved, actor.user)
            await self._notify(result.scenario, recipients, saved, actor, NotificationActor.MEDICAL_STAFF)

        await self._after_commit("propose_slot", saved, notify())
        return to_response(saved, actor.user)

    async def confirm_by_employee(self, actor: CurrentActor, appointment_id: UUID) -> AppointmentResponse:
        """Confirm a proposed or planned visit as its employee."""
        appointment = await self._get_or_404(appointment_id)
        result = self.workflow.confirm_by_employee(actor, appointment)
        saved = await self._persist(result, actor, is_new=False)

        async def notify():
            recipients = await self.resolver.for_employee_action(saved)
            await self._notify(result.scenario, recipients, saved, actor, NotificationActor.EMPLOYEE)

        await self._after_commit("confirm_by_employee", saved, notify())
        return to_response(saved, actor.user)

    async def confirm_by_medical_staff(
        self,
        actor: CurrentActor,
        appointment_id: UUID,
        data: MedicalStaffConfirmation | None = None,
    ) -> AppointmentResponse:
        """
        Accept the employee's requested date as medical staff.

        RH recipients get the RH variant of the confirmation; everyone else
        gets the standard one.
        """
        appointment = await self._get_or_404(appointment_id)
        result = self.workflow.confirm_by_medical_staff(actor, appointment, data)
        saved = await self._persist(result, actor, is_new=False)

        async def notify():
            recipients = await self.resolver.default_audience(saved)
            rh = [
                user
                for user in recipients
                if policy.is_rh(user) and not policy.is_employee_recipient(user, saved)
            ]
            others = [user for user in recipients if user not in rh]
            await self._notify(
                NotificationScenario.APPOINTMENT_CONFIRMED_RH, rh, saved, actor, NotificationActor.RH
            )
            await self._notify(
                NotificationScenario.APPOINTMENT_CONFIRMED,
                others,
                saved,
                actor,
                NotificationActor.MEDICAL_STAFF,
            )

        await self._after_commit("confirm_by_medical_staff", saved, notify())
        return to_response(saved, actor.user)

    async def cancel(
        self,
        actor: CurrentActor,
        appointment_id: UUID,
        reason: str | None = None,
    ) -> AppointmentResponse:
        """Cancel a non-terminal appointment."""
        appointment = await self._get_or_404(appointment_id)
        result = self.workflow.cancel(actor, appointment, reason)
        saved = await self._persist(result, actor, is_new=False)
        actor_role = self._actor_role(actor, saved)

        async def notify():
            if actor_role == NotificationActor.EMPLOYEE:
                recipients = await self.resolver.for_employee_action(saved)
            else:
                recipients = await self.resolver.default_audience(saved)
            await self._notify(result.scenario, recipients, saved, actor, actor_role)

        await self._after_commit("cancel", saved, notify())
        return to_response(saved, actor.user)

    async def add_comment(
        self,
        actor: CurrentActor,
        appointment_id: UUID,
        comment: str,
    ) -> AppointmentResponse:
        """Comment on an appointment; nobody is notified."""
        appointment = await self._get_or_404(appointment_id)
        result = self.workflow.add_comment(actor, appointment, comment)
        saved = await self._persist(result, actor, is_new=False)
        return to_response(saved, actor.user)

    async def complete(self, actor: CurrentActor, appointment_id: UUID) -> AppointmentResponse:
        """Mark a confirmed visit as completed; nobody is notified."""
        appointment = await self._get_or_404(appointment_id)
        result = self.workflow.complete(actor, appointment)
        saved = await self._persist(result, actor, is_new=False)
        return to_response(saved, actor.user)

    # ---- reads ------------------------------------------------------------

    async def get_appointment(self, actor: CurrentActor, appointment_id: UUID) -> AppointmentResponse:
        """
        Get one appointment.

        Args:
            actor: Viewer
            appointment_id: Appointment ID

        Returns:
            Appointment projection

        Raises:
            NotFoundException: If appointment not found
            ForbiddenException: If the viewer has no stake in it
        """
        appointment = await self._get_or_404(appointment_id)
        allowed = (
            actor.is_privileged
            or policy.is_employee_recipient(actor.user, appointment)
            or policy.is_manager_for_appointment(actor.user, appointment)
        )
        if not allowed:
            raise ForbiddenException("Access denied to this appointment")
        return to_response(appointment, actor.user)

    async def list_my_appointments(
        self,
        actor: CurrentActor,
        page: int = 1,
        page_size: int = 20,
    ) -> AppointmentListResponse:
        """
        List the caller's own appointments.

        Obligatory visits stay hidden from a non-privileged employee until a
        slot is proposed.
        """
        excluded = [] if actor.is_privileged else [AppointmentStatus.OBLIGATORY]
        items, total = await self.appointments.list_for_employee_user(
            actor.id, exclude_statuses=excluded, page=page, page_size=page_size
        )
        return AppointmentListResponse(
            total=total,
            page=page,
            page_size=page_size,
            items=[to_response(a, actor.user) for a in items],
        )

    async def list_appointments(
        self,
        actor: CurrentActor,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List appointments with filtering and pagination.

        Raises:
            ForbiddenException: If the caller holds no privileged role
        """
        if not actor.is_privileged:
            raise ForbiddenException("Only medical staff, RH and admins can list all appointments")
        items, total = await self.appointments.list_filtered(filters)
        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=[to_response(a, actor.user) for a in items],
        )

    async def history(
        self,
        actor: CurrentActor,
        page: int = 1,
        page_size: int = 20,
    ) -> AppointmentListResponse:
        """Completed and cancelled appointments: all of them for privileged roles, own ones otherwise."""
        if actor.is_privileged:
            filters = AppointmentFilters(statuses=HISTORY_STATUSES, page=page, page_size=page_size)
            return await self.list_appointments(actor, filters)

        open_statuses = [s for s in AppointmentStatus if not s.is_terminal]
        items, total = await self.appointments.list_for_employee_user(
            actor.id, exclude_statuses=open_statuses, page=page, page_size=page_size
        )
        return AppointmentListResponse(
            total=total,
            page=page,
            page_size=page_size,
            items=[to_response(a, actor.user) for a in items],
        )
