"""Payment tag routes."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.database import get_db
from backoffice.dependencies import get_current_staff, require_admin
from backoffice.models.base import PaymentMethod, PaymentTagStatus
from backoffice.models.payment_tag import PaymentTag
from backoffice.models.staff import Staff
from backoffice.schemas.base import SuccessResponse
from backoffice.schemas.payment_tag import (
    CreatePaymentTagRequest,
    PaymentTagListResponse,
    PaymentTagResponse,
    UpdatePaymentTagRequest,
)
from backoffice.services.payment_tag_service import PaymentTagService

router = APIRouter(prefix="/payment-tags", tags=["payment-tags"])


@router.get("", response_model=PaymentTagListResponse)
async def list_payment_tags(
    method: Optional[PaymentMethod] = None,
    status: Optional[PaymentTagStatus] = None,
    staff: Staff = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db),
):
    tags = await PaymentTagService(db).list_tags(method=method, status=status)
    return PaymentTagListResponse(tags=[PaymentTagResponse.model_validate(t) for t in tags])


@router.post("", response_model=PaymentTagResponse, status_code=201)
async def create_payment_tag(
    request: CreatePaymentTagRequest,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> PaymentTag:
    return await PaymentTagService(db).create_tag(request.method, request.tag)


@router.patch("/{tag_id}", response_model=PaymentTagResponse)
async def update_payment_tag(
    tag_id: UUID,
    request: UpdatePaymentTagRequest,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> PaymentTag:
    return await PaymentTagService(db).update_status(tag_id, request.status)


@router.delete("/{tag_id}", response_model=SuccessResponse)
async def delete_payment_tag(
    tag_id: UUID,
    staff: Staff = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    await PaymentTagService(db).delete_tag(tag_id)
    return SuccessResponse(message="Payment tag deleted")
