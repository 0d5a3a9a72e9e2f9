"""Appointment workflow endpoints."""

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Query, status

from app.dependencies import AppointmentServiceDep, CurrentActorDep
from app.schemas.appointments import (
    AppointmentCancel,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentRequestCreate,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentType,
    CommentCreate,
    MedicalStaffConfirmation,
    MedicalVisitPlan,
    ObligatoryVisitCreate,
    SlotProposal,
    VisitMode,
)

router = APIRouter()


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request an appointment",
)
async def request_appointment(
    data: AppointmentRequestCreate,
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Request a visit as an employee.

    Args:
        data: Requested date, type and motif
        actor: Authenticated employee
        service: Appointment service

    Returns:
        Created appointment
    """
    return await service.request_appointment(actor, data)


@router.post(
    "/obligatory",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create an obligatory visit",
)
async def create_obligatory(
    data: ObligatoryVisitCreate,
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Create an obligatory visit for an employee (RH only)."""
    return await service.create_obligatory(actor, data)


@router.post(
    "/plan",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Plan a medical visit",
)
async def plan_visit(
    data: MedicalVisitPlan,
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Plan a visit directly (medical staff only)."""
    return await service.plan_visit(actor, data)


@router.get(
    "/me",
    response_model=AppointmentListResponse,
    summary="List my appointments",
)
async def list_my_appointments(
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> AppointmentListResponse:
    """List the caller's own appointments, newest first."""
    return await service.list_my_appointments(actor, page=page, page_size=page_size)


@router.get(
    "/history",
    response_model=AppointmentListResponse,
    summary="Appointment history",
)
async def appointment_history(
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> AppointmentListResponse:
    """List completed and cancelled appointments."""
    return await service.history(actor, page=page, page_size=page_size)


@router.get(
    "",
    response_model=AppointmentListResponse,
    summary="List appointments",
)
async def list_appointments(
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
    type_filter: AppointmentType | None = Query(None, alias="type"),
    statuses: list[AppointmentStatus] | None = Query(None, alias="status"),
    visit_mode: VisitMode | None = Query(None),
    employee_id: UUID | None = Query(None),
    from_date: datetime | None = Query(None),
    to_date: datetime | None = Query(None),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(20, ge=1, le=100, description="Items per page"),
) -> AppointmentListResponse:
    """
    List appointments with filtering and pagination (privileged roles only).

    Args:
        actor: Authenticated user
        service: Appointment service
        type_filter: Visit type
        statuses: Status filter, repeatable
        visit_mode: Visit mode
        employee_id: Employee filter
        from_date: Lower bound on the visit date
        to_date: Upper bound on the visit date
        page: Page number
        page_size: Items per page

    Returns:
        Paginated list of appointments
    """
    filters = AppointmentFilters(
        type=type_filter,
        statuses=statuses,
        visit_mode=visit_mode,
        employee_id=employee_id,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )
    return await service.list_appointments(actor, filters)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        NotFoundException: If appointment not found
        ForbiddenException: If the caller has no access
    """
    return await service.get_appointment(actor, appointment_id)


@router.post(
    "/{appointment_id}/propose",
    response_model=AppointmentResponse,
    summary="Propose a slot",
)
async def propose_slot(
    appointment_id: UUID,
    data: SlotProposal,
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Propose a slot to the employee (medical staff only)."""
    return await service.propose_slot(actor, appointment_id, data)


@router.post(
    "/{appointment_id}/confirm",
    response_model=AppointmentResponse,
    summary="Confirm as employee",
)
async def confirm_by_employee(
    appointment_id: UUID,
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Accept a proposed or planned slot."""
    return await service.confirm_by_employee(actor, appointment_id)


@router.post(
    "/{appointment_id}/medical-confirm",
    response_model=AppointmentResponse,
    summary="Confirm as medical staff",
)
async def confirm_by_medical_staff(
    appointment_id: UUID,
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
    data: MedicalStaffConfirmation | None = None,
) -> AppointmentResponse:
    """Accept the date the employee asked for."""
    return await service.confirm_by_medical_staff(actor, appointment_id, data)


@router.post(
    "/{appointment_id}/cancel",
    response_model=AppointmentResponse,
    summary="Cancel appointment",
)
async def cancel_appointment(
    appointment_id: UUID,
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
    data: AppointmentCancel | None = None,
) -> AppointmentResponse:
    """Cancel a non-terminal appointment."""
    return await service.cancel(actor, appointment_id, data.reason if data else None)


@router.post(
    "/{appointment_id}/comments",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Comment on appointment",
)
async def add_comment(
    appointment_id: UUID,
    data: CommentCreate,
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Add a comment to an open appointment."""
    return await service.add_comment(actor, appointment_id, data.comment)


@router.post(
    "/{appointment_id}/complete",
    response_model=AppointmentResponse,
    summary="Complete appointment",
)
async def complete_appointment(
    appointment_id: UUID,
    actor: CurrentActorDep,
    service: AppointmentServiceDep,
) -> AppointmentResponse:
    """Mark a confirmed visit as completed (medical staff only)."""
    return await service.complete(actor, appointment_id)
