"""Shared column types and enumerations for back-office models."""
from enum import Enum
import uuid
from sqlalchemy import Column, String
from sqlalchemy.dialects.postgresql import UUID as PGUUID
from sqlalchemy.sql import sqltypes, operators
from sqlalchemy.sql import func
from sqlalchemy.sql.elements import ClauseElement


class PlayerStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    BLOCKED = "Blocked"


class GameStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DISABLED = "Disabled"


class TransactionType(str, Enum):
    """Kinds of monetary events recorded in the ledger."""
    DEPOSIT = "Deposit"
    WITHDRAW = "Withdraw"
    FREEPLAY = "Freeplay"
    BONUSPLAY = "Bonusplay"
    REFERRAL = "Referral"


class TransactionStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class PaymentMethod(str, Enum):
    """Payment rails staff can pick on a transaction.

    REMAINING_WITHDRAW settles a player's pending withdraws by depositing the
    owed amount into a game account instead of paying it out.
    """
    CHIME = "Chime"
    CASHAPP = "CashApp"
    PAYPAL = "PayPal"
    REMAINING_WITHDRAW = "RemainingWithdraw"


# Payment tags only exist for rails that have an external handle
TAG_PAYMENT_METHODS = (PaymentMethod.CHIME, PaymentMethod.CASHAPP, PaymentMethod.PAYPAL)


class PaymentTagStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DEACTIVATED = "Deactivated"


class StaffRole(str, Enum):
    SUPER_ADMIN = "Super Admin"
    ADMIN = "Admin"
    AGENT = "Agent"
    CASHIER = "Cashier"


class StaffStatus(str, Enum):
    ACTIVE = "Active"
    BLOCKED = "Blocked"


def get_uuid_column(*args, **kwargs):
    """Get UUID column type based on database dialect.

    PostgreSQL stores native UUIDs; every other backend stores the 32-char
    lowercase hex form in a String(36) column.

    Example:
        player_id = get_uuid_column(primary_key=True, default=uuid.uuid4)
        game_id = get_uuid_column(ForeignKey("games.game_id"), nullable=True)
    """
    class AdaptiveUUID(sqltypes.TypeDecorator):
        """UUID type that compares hyphenated and hex forms as equal on SQLite."""

        impl = sqltypes.String
        cache_ok = True

        class Comparator(sqltypes.TypeDecorator.Comparator):

            def _is_native_uuid(self) -> bool:
                return getattr(self.type, "_uses_native_uuid", False)

            def operate(self, op, other, **kwargs):
                if self._is_native_uuid():
                    return super().operate(op, other, **kwargs)

                # Column-to-column comparisons (joins) share the stored format
                if isinstance(other, ClauseElement) or hasattr(other, "__clause_element__"):
                    return super().operate(op, other, **kwargs)

                if op in (operators.eq, operators.ne, operators.in_op, operators.notin_op):
                    normalized_expr = func.lower(func.replace(self.expr, "-", ""))

                    if op in (operators.in_op, operators.notin_op) and isinstance(other, (list, tuple, set)):
                        return op(normalized_expr, [_to_hex(v) for v in other])

                    return op(normalized_expr, _to_hex(other))

                return super().operate(op, other, **kwargs)

        comparator_factory = Comparator

        def __init__(self, *args, **kwargs):
            super().__init__(*args, **kwargs)
            self._uses_native_uuid = False

        def load_dialect_impl(self, dialect):
            self._uses_native_uuid = dialect.name == "postgresql"
            if self._uses_native_uuid:
                return dialect.type_descriptor(PGUUID(as_uuid=True))
            return dialect.type_descriptor(String(36))

        @staticmethod
        def _coerce_uuid(value):
            if value is None or isinstance(value, uuid.UUID):
                return value
            return uuid.UUID(str(value))

        def process_bind_param(self, value, dialect):
            value = self._coerce_uuid(value)
            if value is None:
                return None
            if self._uses_native_uuid:
                return value
            return value.hex

        def process_result_value(self, value, dialect):
            if value is None:
                return None
            return self._coerce_uuid(value)

    return Column(
        AdaptiveUUID(),
        *args,
        **kwargs
    )


def _to_hex(value) -> str:
    if isinstance(value, uuid.UUID):
        return value.hex
    return str(value).replace("-", "").lower()
