"""Payment tag management."""
import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backoffice.models.base import TAG_PAYMENT_METHODS, PaymentMethod, PaymentTagStatus
from backoffice.models.payment_tag import PaymentTag
from backoffice.utils.exceptions import PaymentTagNotFoundError, TransferValidationError

logger = logging.getLogger(__name__)


def validate_tag(tag: str) -> str:
    tag = (tag or "").strip()
    if len(tag) < 2:
        raise TransferValidationError("Tag must be at least 2 characters")
    if tag[0] not in "$@":
        raise TransferValidationError("Tag must start with $ or @")
    return tag


class PaymentTagService:
    """CRUD for the house payment handles offered on deposits."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_tag(self, tag_id: UUID) -> PaymentTag:
        result = await self.db.execute(select(PaymentTag).where(PaymentTag.tag_id == tag_id))
        tag = result.scalar_one_or_none()
        if not tag:
            raise PaymentTagNotFoundError()
        return tag

    async def list_tags(
        self,
        *,
        method: PaymentMethod | str | None = None,
        status: PaymentTagStatus | str | None = None,
    ) -> list[PaymentTag]:
        stmt = select(PaymentTag).order_by(PaymentTag.created_at.desc())
        if method:
            stmt = stmt.where(PaymentTag.method == PaymentMethod(method).value)
        if status:
            stmt = stmt.where(PaymentTag.status == PaymentTagStatus(status).value)
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def create_tag(self, method: PaymentMethod | str, tag: str) -> PaymentTag:
        method = PaymentMethod(method)
        if method not in TAG_PAYMENT_METHODS:
            raise TransferValidationError("Payment tags belong to Chime, CashApp or PayPal")

        payment_tag = PaymentTag(method=method.value, tag=validate_tag(tag), status=PaymentTagStatus.ACTIVE.value)
        self.db.add(payment_tag)
        await self.db.commit()
        logger.info(f"Payment tag created: {payment_tag.tag_id} {method.value} {payment_tag.tag}")
        return payment_tag

    async def update_status(self, tag_id: UUID, status: PaymentTagStatus | str) -> PaymentTag:
        payment_tag = await self.get_tag(tag_id)
        payment_tag.status = PaymentTagStatus(status).value
        await self.db.commit()
        logger.info(f"Payment tag {tag_id} set to {payment_tag.status}")
        return payment_tag

    async def delete_tag(self, tag_id: UUID) -> None:
        payment_tag = await self.get_tag(tag_id)
        await self.db.delete(payment_tag)
        await self.db.commit()
        logger.info(f"Payment tag deleted: {tag_id}")
