"""FastAPI dependencies."""
import logging
from uuid import UUID

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import get_settings
from backoffice.database import get_db
from backoffice.models.base import StaffStatus
from backoffice.models.staff import Staff
from backoffice.services.auth_service import AuthService
from backoffice.utils import rate_limiter
from backoffice.utils.exceptions import AuthenticationError, StaffNotFoundError

logger = logging.getLogger(__name__)


settings = get_settings()

GENERAL_RATE_LIMIT = 300
RATE_LIMIT_WINDOW_SECONDS = 60
RATE_LIMIT_ERROR_MESSAGE = "Rate limit exceeded. Try again later."
PASSWORD_CHANGE_RATE_LIMIT_MESSAGE = "Too many password change attempts. Try again later."


def _mask_identifier(identifier: str) -> str:
    """Mask a sensitive identifier for logging (e.g., staff_id, email)."""
    if not identifier:
        return "<missing>"
    if len(identifier) <= 8:
        return f"{identifier[:2]}...{identifier[-2:]}"
    return f"{identifier[:4]}...{identifier[-4:]}"


async def check_rate_limit(scope: str, identifier: str, limit: int, window_seconds: int) -> int | None:
    """Count one attempt; return None when allowed, else the seconds to wait."""
    allowed, retry_after = await rate_limiter.check(f"{scope}:{identifier}", limit, window_seconds)
    if allowed:
        return None
    logger.warning(f"Rate limit exceeded for {scope=} identifier={_mask_identifier(identifier)}")
    return retry_after or window_seconds


async def _enforce_rate_limit(scope: str, identifier: str | None, limit: int) -> None:
    """Apply the general per-staff rate limit (production only)."""

    if settings.environment != "production":
        return

    if not identifier:
        return

    retry_after = await check_rate_limit(scope, identifier, limit, RATE_LIMIT_WINDOW_SECONDS)
    if retry_after is None:
        return

    raise HTTPException(
        status_code=429,
        detail=RATE_LIMIT_ERROR_MESSAGE,
        headers={"Retry-After": str(retry_after)},
    )


async def get_current_staff(
        authorization: str | None = Header(default=None, alias="Authorization"),
        db: AsyncSession = Depends(get_db),
) -> Staff:
    """Resolve the authenticated staff member from a Bearer access token."""

    if not authorization:
        raise HTTPException(status_code=401, detail="missing_credentials")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise HTTPException(status_code=401, detail="invalid_authorization_header")

    auth_service = AuthService(db)
    try:
        payload = auth_service.decode_access_token(token)
        staff_id_str = payload.get("sub")
        if not staff_id_str:
            raise AuthenticationError("Invalid token")
        staff = await auth_service.staff_service.get_staff(UUID(str(staff_id_str)))
    except (ValueError, AuthenticationError, StaffNotFoundError) as exc:
        raise HTTPException(status_code=401, detail="invalid_token") from exc

    if staff.status == StaffStatus.BLOCKED.value:
        raise HTTPException(status_code=403, detail="account_blocked")

    await _enforce_rate_limit("general", str(staff.staff_id), GENERAL_RATE_LIMIT)
    logger.debug(f"Authenticated staff via JWT: {staff.staff_id} role={staff.role}")
    return staff


async def require_admin(staff: Staff = Depends(get_current_staff)) -> Staff:
    """Allow only Super Admin and Admin staff.

    Raises:
        HTTPException: 403 if the staff member is a Cashier or Agent
    """
    if not staff.is_admin:
        logger.warning(f"Access denied to admin endpoint for staff {staff.staff_id} role={staff.role}")
        raise HTTPException(status_code=403, detail="admin_access_required")
    return staff
