"""API routers."""
from backoffice.routers import auth, games, health, payment_tags, players, reports, staff, transactions

__all__ = [
    "auth",
    "games",
    "health",
    "payment_tags",
    "players",
    "reports",
    "staff",
    "transactions",
]
