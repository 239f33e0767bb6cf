"""Transaction (ledger) Pydantic schemas."""
from pydantic import BaseModel, Field, constr, field_validator, model_validator
from datetime import datetime
from typing import Optional
from uuid import UUID
from backoffice.models.base import TAG_PAYMENT_METHODS, PaymentMethod, TransactionStatus, TransactionType
from backoffice.schemas.base import BaseSchema, Money, MoneyAmount
from backoffice.schemas.player import NameStr
from backoffice.utils.money import ZERO

TagStr = constr(strip_whitespace=True, min_length=1, max_length=120)
NotesStr = constr(max_length=2000)

TRANSFER_TYPES = (TransactionType.DEPOSIT, TransactionType.WITHDRAW)
CREDIT_TYPES = (TransactionType.FREEPLAY, TransactionType.BONUSPLAY)


class WithdrawPaymentResponse(BaseSchema):
    payment_id: UUID
    kind: str
    amount: Money
    method: str
    tag: Optional[str] = None
    staff_name: str
    created_at: datetime


class TransactionResponse(BaseSchema):
    """Ledger entry with player and game names resolved at read time."""
    transaction_id: UUID
    created_at: datetime
    type: TransactionType
    status: TransactionStatus
    amount: Money
    tip: Money
    deposit_bonus: Money
    bonus_amount: Money
    points: Money
    payment_method: Optional[str] = None
    payment_tag: Optional[str] = None
    player_tag: Optional[str] = None
    staff_name: str
    player_id: UUID
    player_name: Optional[str] = None
    game_id: Optional[UUID] = None
    game_name: Optional[str] = None
    game_balance_before: Optional[Money] = None
    game_balance_after: Optional[Money] = None
    referred_player_id: Optional[UUID] = None
    referred_player_name: Optional[str] = None
    notes: Optional[str] = None
    paid_amount: Money
    deposit_amount: Money
    pending_amount: Money
    amended_at: Optional[datetime] = None
    payments: list[WithdrawPaymentResponse]


class TransactionListResponse(BaseModel):
    transactions: list[TransactionResponse]
    total: int


class DepositWithdrawRequest(BaseModel):
    player_id: UUID
    game_name: NameStr
    amount: MoneyAmount = Field(gt=0)
    direction: TransactionType
    deposit_bonus: MoneyAmount = Field(default=ZERO, ge=0)
    tip: MoneyAmount = Field(default=ZERO, ge=0)
    payment_method: Optional[PaymentMethod] = None
    payment_tag: Optional[TagStr] = None
    player_tag: Optional[TagStr] = None
    notes: Optional[NotesStr] = None

    @field_validator("direction")
    @classmethod
    def validate_direction(cls, value: TransactionType) -> TransactionType:
        if value not in TRANSFER_TYPES:
            raise ValueError("direction must be Deposit or Withdraw")
        return value

    @model_validator(mode="after")
    def bonus_only_on_deposit(self):
        if self.direction == TransactionType.WITHDRAW and self.deposit_bonus:
            raise ValueError("deposit_bonus only applies to deposits")
        return self


class CreditRequest(BaseModel):
    player_id: UUID
    game_name: NameStr
    amount: MoneyAmount = Field(gt=0)
    credit_type: TransactionType
    notes: Optional[NotesStr] = None

    @field_validator("credit_type")
    @classmethod
    def validate_credit_type(cls, value: TransactionType) -> TransactionType:
        if value not in CREDIT_TYPES:
            raise ValueError("credit_type must be Freeplay or Bonusplay")
        return value


class ReferralRequest(BaseModel):
    referrer_id: UUID
    referred_id: UUID
    game_name: NameStr
    amount: MoneyAmount = Field(gt=0)
    notes: Optional[NotesStr] = None


class AmendTransactionRequest(BaseModel):
    amount: MoneyAmount = Field(gt=0)
    type: TransactionType
    payment_method: Optional[PaymentMethod] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, value: TransactionType) -> TransactionType:
        if value not in TRANSFER_TYPES:
            raise ValueError("type must be Deposit or Withdraw")
        return value


class WithdrawPaymentRequest(BaseModel):
    amount: MoneyAmount = Field(gt=0)
    payment_method: PaymentMethod
    payment_tag: Optional[TagStr] = None

    @field_validator("payment_method")
    @classmethod
    def validate_payout_method(cls, value: PaymentMethod) -> PaymentMethod:
        if value not in TAG_PAYMENT_METHODS:
            raise ValueError("Payouts must use Chime, CashApp or PayPal")
        return value


class RejectWithdrawRequest(BaseModel):
    reason: Optional[NotesStr] = None
