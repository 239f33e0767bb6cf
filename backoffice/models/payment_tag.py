"""Payment tag model."""
import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String

from backoffice.database import Base
from backoffice.models.base import PaymentTagStatus, get_uuid_column


class PaymentTag(Base):
    """House handle ($cashtag, @handle) offered when recording deposits."""

    __tablename__ = "payment_tags"

    tag_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    method = Column(String(30), nullable=False, index=True)
    tag = Column(String(120), nullable=False)
    status = Column(String(20), default=PaymentTagStatus.ACTIVE.value, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    def __repr__(self):
        return f"<PaymentTag(tag_id={self.tag_id}, method={self.method}, tag={self.tag}, status={self.status})>"
