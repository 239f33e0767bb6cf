"""Database models."""
from backoffice.models.player import Player
from backoffice.models.gaming_account import GamingAccount
from backoffice.models.game import Game, GameRecharge
from backoffice.models.transaction import Transaction, WithdrawPayment
from backoffice.models.payment_tag import PaymentTag
from backoffice.models.staff import Staff

__all__ = [
    "Player",
    "GamingAccount",
    "Game",
    "GameRecharge",
    "Transaction",
    "WithdrawPayment",
    "PaymentTag",
    "Staff",
]
