"""Staff and authentication schemas."""
from pydantic import BaseModel, ConfigDict, Field, constr
from datetime import datetime
from typing import Optional
from uuid import UUID
from backoffice.models.base import StaffRole, StaffStatus
from backoffice.schemas.base import BaseSchema
from backoffice.schemas.player import NameStr


EmailLike = constr(strip_whitespace=True, pattern=r"[^@\s]+@[^@\s]+\.[^@\s]+", min_length=5, max_length=255)
PasswordStr = constr(min_length=1, max_length=128)


class StaffResponse(BaseSchema):
    staff_id: UUID
    name: str
    email: str
    role: StaffRole
    status: StaffStatus
    last_login: Optional[datetime] = None
    created_at: datetime


class StaffListResponse(BaseModel):
    staff: list[StaffResponse]


class SetupAdminRequest(BaseModel):
    name: NameStr
    email: EmailLike
    password: PasswordStr


class CreateStaffRequest(BaseModel):
    name: NameStr
    email: EmailLike
    password: PasswordStr
    role: StaffRole = StaffRole.CASHIER


class UpdateStaffRequest(BaseModel):
    name: Optional[NameStr] = None
    email: Optional[EmailLike] = None
    role: Optional[StaffRole] = None
    status: Optional[StaffStatus] = None
    password: Optional[PasswordStr] = None


class DeleteStaffRequest(BaseModel):
    staff_ids: list[UUID] = Field(min_length=1)


class LoginRequest(BaseModel):
    email: EmailLike
    password: PasswordStr


class AuthTokenResponse(BaseModel):
    """Bearer token issued to a staff member."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    staff: StaffResponse


class ChangePasswordRequest(BaseModel):
    """Body of POST /api/change-password.

    Fields are optional here so a missing one is answered with the
    endpoint's own 400 payload instead of a 422 validation error.
    """
    model_config = ConfigDict(populate_by_name=True)

    email: Optional[str] = None
    current_password: Optional[str] = Field(default=None, alias="currentPassword")
    new_password: Optional[str] = Field(default=None, alias="newPassword")
