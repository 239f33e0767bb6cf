"""Staff account management."""
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.base import StaffRole, StaffStatus
from backoffice.models.staff import Staff
from backoffice.utils.exceptions import ConflictError, DuplicateStaffError, StaffNotFoundError
from backoffice.utils.passwords import hash_password, validate_password_strength

logger = logging.getLogger(__name__)

_UNSET: Any = object()


def normalize_email(email: str) -> str:
    return email.strip().lower()


class StaffService:
    """Service for creating and maintaining staff accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def count_staff(self) -> int:
        return await self.db.scalar(select(func.count()).select_from(Staff)) or 0

    async def get_staff(self, staff_id: UUID) -> Staff:
        result = await self.db.execute(select(Staff).where(Staff.staff_id == staff_id))
        staff = result.scalar_one_or_none()
        if not staff:
            raise StaffNotFoundError("Staff member not found")
        return staff

    async def get_by_email(self, email: str) -> Staff | None:
        result = await self.db.execute(select(Staff).where(Staff.email == normalize_email(email)))
        return result.scalar_one_or_none()

    async def list_staff(self) -> list[Staff]:
        result = await self.db.execute(select(Staff).order_by(Staff.created_at))
        return list(result.scalars().all())

    async def setup_admin(self, name: str, email: str, password: str) -> Staff:
        """Create the first Super Admin. Only allowed while no staff exist."""
        if await self.count_staff() > 0:
            raise ConflictError("Admin account already exists")
        return await self.create_staff(name, email, password, StaffRole.SUPER_ADMIN)

    async def create_staff(
        self, name: str, email: str, password: str, role: StaffRole | str = StaffRole.CASHIER
    ) -> Staff:
        """
        Create a staff account.

        Raises:
            PasswordValidationError: Password does not meet the policy
            DuplicateStaffError: Email already registered
        """
        validate_password_strength(password)
        email = normalize_email(email)
        if await self.get_by_email(email) is not None:
            raise DuplicateStaffError("A staff member with this email already exists")

        staff = Staff(
            name=name.strip(),
            email=email,
            password_hash=hash_password(password),
            role=StaffRole(role).value,
            status=StaffStatus.ACTIVE.value,
        )
        self.db.add(staff)
        await self.db.commit()
        logger.info(f"Staff created: {staff.staff_id} email={email} role={staff.role}")
        return staff

    async def update_staff(
        self,
        staff_id: UUID,
        *,
        name: str | None = _UNSET,
        email: str | None = _UNSET,
        role: StaffRole | str | None = _UNSET,
        status: StaffStatus | str | None = _UNSET,
        password: str | None = _UNSET,
    ) -> Staff:
        staff = await self.get_staff(staff_id)

        if password is not _UNSET and password:
            validate_password_strength(password)
        if email is not _UNSET and email and normalize_email(email) != staff.email:
            if await self.get_by_email(email) is not None:
                raise DuplicateStaffError("A staff member with this email already exists")
            staff.email = normalize_email(email)

        if name is not _UNSET and name:
            staff.name = name.strip()
        if role is not _UNSET and role:
            staff.role = StaffRole(role).value
        if status is not _UNSET and status:
            staff.status = StaffStatus(status).value
        if password is not _UNSET and password:
            staff.password_hash = hash_password(password)

        await self.db.commit()
        logger.info(f"Staff updated: {staff.staff_id} role={staff.role} status={staff.status}")
        return staff

    async def delete_staff(self, staff_ids: list[UUID]) -> int:
        ids = list(dict.fromkeys(staff_ids))
        existing = (await self.db.execute(select(Staff.staff_id).where(Staff.staff_id.in_(ids)))).scalars().all()
        if not existing:
            return 0
        await self.db.execute(
            delete(Staff).where(Staff.staff_id.in_(ids)).execution_options(synchronize_session="fetch")
        )
        await self.db.commit()
        logger.info(f"Deleted {len(existing)} staff accounts")
        return len(existing)
