"""Payment tag schemas."""
from pydantic import BaseModel, constr, field_validator
from datetime import datetime
from uuid import UUID
from backoffice.models.base import TAG_PAYMENT_METHODS, PaymentMethod, PaymentTagStatus
from backoffice.schemas.base import BaseSchema

HandleStr = constr(strip_whitespace=True, pattern=r"^[$@]\S+$", min_length=2, max_length=120)


class PaymentTagResponse(BaseSchema):
    tag_id: UUID
    method: str
    tag: str
    status: PaymentTagStatus
    created_at: datetime


class PaymentTagListResponse(BaseModel):
    tags: list[PaymentTagResponse]


class CreatePaymentTagRequest(BaseModel):
    method: PaymentMethod
    tag: HandleStr

    @field_validator("method")
    @classmethod
    def validate_method(cls, value: PaymentMethod) -> PaymentMethod:
        if value not in TAG_PAYMENT_METHODS:
            raise ValueError("Payment tags belong to Chime, CashApp or PayPal")
        return value


class UpdatePaymentTagRequest(BaseModel):
    status: PaymentTagStatus
