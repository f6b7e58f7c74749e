"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from decimal import Decimal
from pydantic import BaseModel, Field, field_validator
from pydantic.types import condecimal


class ProcessPayment(BaseModel):
    card_id: int
    total_amount: condecimal(max_digits=18, decimal_places=2)  # type: ignore[valid-type]
    currency: str
    unreturnable_fee: condecimal(max_digits=18, decimal_places=2) = Decimal("0")  # type: ignore[valid-type]

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        u = (v or "").strip().upper()
        if len(u) != 3 or not u.isalpha():
            raise ValueError("currency must be ISO-4217 alpha-3")
        return u


class ConfirmPayment(BaseModel):
    transaction_id: int
    confirmation_code: str = Field(..., min_length=1, max_length=16)


class PaymentConfirmation(BaseModel):
    """process 的返回：交易ID与需要带外下发的确认码"""
    transaction_id: int
    confirmation_code: str


class PaymentResult(BaseModel):
    transaction_id: int
    card_id: int
    status: str
    balance: Decimal
