"""Card domain package."""
from .entity import Card
from .repository import CardRepository

__all__ = ["Card", "CardRepository"]
