"""Recipient resolution for appointment notifications."""

from collections.abc import Iterable

import structlog

from app.repositories.base import UserDirectory
from app.schemas.appointments import Appointment
from app.schemas.users import RoleName, UserSummary

logger = structlog.get_logger(__name__)


def _unique(users: Iterable[UserSummary | None]) -> list[UserSummary]:
    """Drop None entries and collapse duplicates by user ID, keeping first-seen order."""
    seen: dict = {}
    for user in users:
        if user is not None and user.id not in seen:
            seen[user.id] = user
    return list(seen.values())


class RecipientResolver:
    """Computes notification audiences for an appointment.

    Role membership ("all nurses", "all doctors", "all RH") is queried from
    the user directory on every call.
    """

    def __init__(self, users: UserDirectory):
        """Initialize resolver with the role-membership collaborator."""
        self.users = users

    async def _by_roles(self, *roles: RoleName) -> list[UserSummary]:
        return await self.users.find_by_roles(roles)

    async def default_audience(self, appointment: Appointment) -> list[UserSummary]:
        """
        Everyone with a stake in the appointment.

        Employee, assigned nurse and doctor, N+1 and N+2 managers, then every
        nurse, doctor and RH user.

        Args:
            appointment: Appointment being notified about

        Returns:
            Deduplicated recipients
        """
        direct = [
            appointment.employee.user,
            appointment.nurse,
            appointment.doctor,
            *appointment.employee.manager_users(),
        ]
        broadcast = await self._by_roles(RoleName.NURSE, RoleName.DOCTOR, RoleName.RH)
        recipients = _unique([*direct, *broadcast])
        logger.debug(
            "recipients_resolved",
            audience="default",
            appointment_id=str(appointment.id),
            count=len(recipients),
        )
        return recipients

    async def medical_staff(self) -> list[UserSummary]:
        """All nurses and doctors."""
        return _unique(await self._by_roles(RoleName.NURSE, RoleName.DOCTOR))

    async def rh_users(self) -> list[UserSummary]:
        """All RH users."""
        return _unique(await self._by_roles(RoleName.RH))

    async def rh_and_medical_staff(self) -> list[UserSummary]:
        """All RH, nurses and doctors; managers are deliberately absent."""
        return _unique(await self._by_roles(RoleName.RH, RoleName.NURSE, RoleName.DOCTOR))

    async def for_employee_action(self, appointment: Appointment) -> list[UserSummary]:
        """Audience when the employee confirms or cancels.

        Obligatory visits narrow to RH and medical staff.
        """
        if appointment.is_obligatory:
            return await self.rh_and_medical_staff()
        return await self.default_audience(appointment)

    async def for_slot_proposal(
        self,
        appointment: Appointment,
        proposer: UserSummary,
    ) -> list[UserSummary]:
        """Audience of a slot proposal.

        Obligatory visits go to the employee, every RH user and the proposer.
        Other visits go to the default audience minus the proposer.
        """
        if appointment.is_obligatory:
            return _unique([appointment.employee.user, *await self.rh_users(), proposer])
        return [user for user in await self.default_audience(appointment) if user.id != proposer.id]
