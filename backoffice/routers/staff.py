"""Staff account routes (admins only)."""
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.database import get_db
from backoffice.dependencies import require_admin
from backoffice.models.staff import Staff
from backoffice.schemas.base import SuccessResponse
from backoffice.schemas.staff import (
    CreateStaffRequest,
    DeleteStaffRequest,
    StaffListResponse,
    StaffResponse,
    UpdateStaffRequest,
)
from backoffice.services.staff_service import StaffService
from backoffice.utils.exceptions import ConflictError

router = APIRouter(prefix="/staff", tags=["staff"])


@router.get("", response_model=StaffListResponse)
async def list_staff(
    admin: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    members = await StaffService(db).list_staff()
    return StaffListResponse(staff=[StaffResponse.model_validate(m) for m in members])


@router.post("", response_model=StaffResponse, status_code=201)
async def create_staff(
    request: CreateStaffRequest,
    admin: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Staff:
    return await StaffService(db).create_staff(request.name, request.email, request.password, request.role)


@router.patch("/{staff_id}", response_model=StaffResponse)
async def update_staff(
    staff_id: UUID,
    request: UpdateStaffRequest,
    admin: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Staff:
    return await StaffService(db).update_staff(staff_id, **request.model_dump(exclude_unset=True))


@router.post("/delete", response_model=SuccessResponse)
async def delete_staff(
    request: DeleteStaffRequest,
    admin: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Delete staff accounts. Admins cannot delete themselves."""
    if admin.staff_id in request.staff_ids:
        raise ConflictError("You cannot delete your own account")
    deleted = await StaffService(db).delete_staff(request.staff_ids)
    return SuccessResponse(message=f"Deleted {deleted} staff accounts")
