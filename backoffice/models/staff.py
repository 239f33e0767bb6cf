"""Staff account model."""
import uuid
from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, String

from backoffice.database import Base
from backoffice.models.base import StaffRole, StaffStatus, get_uuid_column


class Staff(Base):
    """Back-office operator account."""

    __tablename__ = "staff"

    staff_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default=StaffRole.CASHIER.value, nullable=False)
    status = Column(String(20), default=StaffStatus.ACTIVE.value, nullable=False)
    last_login = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    @property
    def is_admin(self) -> bool:
        return self.role in (StaffRole.SUPER_ADMIN.value, StaffRole.ADMIN.value)

    def __repr__(self):
        return f"<Staff(staff_id={self.staff_id}, email={self.email}, role={self.role}, status={self.status})>"
