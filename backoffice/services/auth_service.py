"""Staff authentication: credential checks, JWT issuance and password changes."""
from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta

import jwt
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import get_settings
from backoffice.models.base import StaffStatus
from backoffice.models.staff import Staff
from backoffice.services.staff_service import StaffService
from backoffice.utils.exceptions import AuthenticationError, PasswordChangeError
from backoffice.utils.passwords import (
    PasswordValidationError,
    hash_password,
    validate_password_strength,
    verify_password,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


class AuthService:
    """Service responsible for staff credential management and JWT issuance."""

    def __init__(self, db: AsyncSession, *, staff_service: StaffService | None = None):
        self.db = db
        self.settings = get_settings()
        self.staff_service = staff_service or StaffService(db)

    async def authenticate(self, email: str, password: str) -> Staff:
        staff = await self.staff_service.get_by_email(email)
        if not staff or not verify_password(password, staff.password_hash):
            logger.warning(f"Failed login attempt for {email=}")
            raise AuthenticationError(INVALID_CREDENTIALS)
        if staff.status == StaffStatus.BLOCKED.value:
            raise AuthenticationError("Account is blocked. Contact an administrator.")

        staff.last_login = datetime.now(UTC)
        await self.db.commit()
        logger.info(f"Staff logged in: {staff.staff_id}")
        return staff

    def create_access_token(self, staff: Staff) -> tuple[str, int]:
        expires_seconds = self.settings.access_token_exp_minutes * 60
        now = datetime.now(UTC)
        payload = {
            "sub": str(staff.staff_id),
            "email": staff.email,
            "role": staff.role,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=expires_seconds)).timestamp()),
        }
        token = jwt.encode(payload, self.settings.secret_key, algorithm=self.settings.jwt_algorithm)
        return token, expires_seconds

    def decode_access_token(self, token: str) -> dict[str, str]:
        try:
            return jwt.decode(
                token,
                self.settings.secret_key,
                algorithms=[self.settings.jwt_algorithm],
            )
        except jwt.ExpiredSignatureError as exc:
            raise AuthenticationError("Token expired, please log in again") from exc
        except jwt.InvalidTokenError as exc:
            raise AuthenticationError("Invalid token, please log in again") from exc

    async def change_password(self, email: str | None, current_password: str | None, new_password: str | None) -> Staff:
        """
        Re-authenticate with the current password and store a new one.

        Raises:
            PasswordChangeError: Missing fields, unknown user, wrong current
                password or a weak new password
        """
        if not email or not current_password or not new_password:
            raise PasswordChangeError("Email, current password and new password are required")

        staff = await self.staff_service.get_by_email(email)
        if staff is None:
            raise PasswordChangeError("User not found")
        if not verify_password(current_password, staff.password_hash):
            logger.warning(f"Password change with wrong current password for staff {staff.staff_id}")
            raise PasswordChangeError("Current password is incorrect")

        try:
            validate_password_strength(new_password)
        except PasswordValidationError as exc:
            raise PasswordChangeError(f"New password is too weak. {exc}") from exc

        staff.password_hash = hash_password(new_password)
        await self.db.commit()
        logger.info(f"Password changed for staff {staff.staff_id}")
        return staff
