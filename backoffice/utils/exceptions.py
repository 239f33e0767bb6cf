"""Domain exceptions raised by the service layer.

Every error carries the HTTP status the API answers with; the application
handler renders them as ``{"success": false, "error": message}``.
"""
from decimal import Decimal


class BackofficeError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class TransferValidationError(BackofficeError):
    """Request is well-formed but violates a business rule (amount, tag, method)."""


class InsufficientGameBalanceError(BackofficeError):
    """Game balance cannot cover the requested transfer."""

    def __init__(self, game_name: str, available: Decimal, required: Decimal):
        super().__init__(
            f'Insufficient game balance. Game "{game_name}" has ${available:.2f} '
            f"but total amount needed is ${required:.2f}."
        )
        self.game_name = game_name
        self.available = available
        self.required = required


class NegativeBalanceRejectedError(BackofficeError):
    """Operation would leave a game with a negative balance."""

    def __init__(self, game_name: str, resulting_balance: Decimal):
        super().__init__(
            f'Transaction would result in negative game balance for "{game_name}" '
            f"(${resulting_balance:.2f})."
        )
        self.game_name = game_name
        self.resulting_balance = resulting_balance


class ReferralNotEligibleError(BackofficeError):
    """Referred player does not qualify for a referral bonus."""


class ReferralAlreadyPaidError(BackofficeError):
    """Referral bonus for this referred player was already paid."""

    status_code = 409


class InvalidTransactionStateError(BackofficeError):
    """Ledger entry cannot be changed in its current state."""

    status_code = 409


class NotFoundError(BackofficeError):
    status_code = 404


class PlayerNotFoundError(NotFoundError):
    def __init__(self, message: str = "Player not found"):
        super().__init__(message)


class GameNotFoundError(NotFoundError):
    def __init__(self, game_name: str | None = None, message: str | None = None):
        if message is None:
            message = f'Game "{game_name}" not found' if game_name else "Game not found"
        super().__init__(message)
        self.game_name = game_name


class TransactionNotFoundError(NotFoundError):
    def __init__(self, message: str = "Transaction not found"):
        super().__init__(message)


class PaymentTagNotFoundError(NotFoundError):
    def __init__(self, message: str = "Payment tag not found"):
        super().__init__(message)


class StaffNotFoundError(NotFoundError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class ConflictError(BackofficeError):
    status_code = 409


class DuplicateGameError(ConflictError):
    pass


class DuplicateGamingAccountError(ConflictError):
    pass


class DuplicateStaffError(ConflictError):
    pass


class AuthenticationError(BackofficeError):
    status_code = 401


class PasswordChangeError(BackofficeError):
    """Password change request rejected; always answered with 400."""
