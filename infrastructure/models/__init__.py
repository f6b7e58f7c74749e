"""Infrastructure models package exports."""
from .base import Base, metadata
from .card import CardModel
from .transaction import TransactionModel

__all__ = [
    "Base",
    "metadata",
    "CardModel",
    "TransactionModel",
]
