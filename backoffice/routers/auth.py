"""Authentication endpoints."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.config import get_settings
from backoffice.database import get_db
from backoffice.dependencies import PASSWORD_CHANGE_RATE_LIMIT_MESSAGE, check_rate_limit, get_current_staff
from backoffice.models.staff import Staff
from backoffice.schemas.staff import (
    AuthTokenResponse,
    ChangePasswordRequest,
    LoginRequest,
    SetupAdminRequest,
    StaffResponse,
)
from backoffice.services.auth_service import AuthService
from backoffice.services.staff_service import StaffService, normalize_email
from backoffice.utils.exceptions import PasswordChangeError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
password_router = APIRouter(prefix="/api", tags=["auth"])
settings = get_settings()


def _token_response(auth_service: AuthService, staff: Staff) -> AuthTokenResponse:
    access_token, expires_in = auth_service.create_access_token(staff)
    return AuthTokenResponse(
        access_token=access_token,
        token_type="bearer",
        expires_in=expires_in,
        staff=StaffResponse.model_validate(staff),
    )


@router.post("/setup-admin", response_model=AuthTokenResponse, status_code=201)
async def setup_admin(
    request: SetupAdminRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthTokenResponse:
    """Create the first Super Admin; refused once any staff account exists."""
    staff = await StaffService(db).setup_admin(request.name, request.email, request.password)
    return _token_response(AuthService(db), staff)


@router.post("/login", response_model=AuthTokenResponse)
async def login(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
) -> AuthTokenResponse:
    """Authenticate a staff member via email/password and issue a JWT."""
    auth_service = AuthService(db)
    staff = await auth_service.authenticate(request.email, request.password)
    return _token_response(auth_service, staff)


@router.get("/me", response_model=StaffResponse)
async def me(staff: Staff = Depends(get_current_staff)) -> Staff:
    return staff


@password_router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    """
    Change a staff password after re-checking the current one.

    Answers ``{"success": true, "message": ...}`` or
    ``{"success": false, "error": ...}`` with 400, 429 or 500.
    """
    identifier = normalize_email(body.email) if body.email else (request.client.host if request.client else "unknown")
    retry_after = await check_rate_limit(
        "change_password",
        identifier,
        settings.password_change_rate_limit,
        settings.password_change_rate_window_seconds,
    )
    if retry_after is not None:
        return JSONResponse(
            status_code=429,
            content={"success": False, "error": PASSWORD_CHANGE_RATE_LIMIT_MESSAGE},
            headers={"Retry-After": str(retry_after)},
        )

    try:
        await AuthService(db).change_password(body.email, body.current_password, body.new_password)
    except PasswordChangeError as exc:
        return JSONResponse(status_code=400, content={"success": False, "error": exc.message})
    except Exception:
        logger.exception("Unexpected error while changing password")
        await db.rollback()
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Failed to change password. Please try again later."},
        )

    return JSONResponse(status_code=200, content={"success": True, "message": "Password changed successfully"})
