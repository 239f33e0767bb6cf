"""Money helpers: every dollar amount is a Decimal rounded to cents."""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from sqlalchemy import Numeric, func

CENT = Decimal("0.01")
ZERO = Decimal("0.00")

# Column type for all dollar amounts and balances
MoneyColumn = Numeric(12, 2)


def to_money(value: Decimal | int | float | str) -> Decimal:
    """Convert ``value`` to a Decimal rounded to cents.

    Floats go through ``str`` so 0.1 becomes Decimal("0.10") rather than its
    binary expansion. Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Not a money amount: {value!r}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"Not a money amount: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"Not a money amount: {value!r}")
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def add_money(column, delta: Decimal):
    """SQL expression for ``column + delta`` rounded to cents.

    SQLite evaluates NUMERIC arithmetic in binary floating point, so the
    result is rounded back to two places before it is stored.
    """
    return func.round(column + delta, 2, type_=MoneyColumn)
