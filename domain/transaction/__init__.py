"""Transaction domain package."""
from .entity import Transaction, TransactionStatus
from .repository import TransactionRepository

__all__ = ["Transaction", "TransactionStatus", "TransactionRepository"]
