"""
数据传输对象（DTO）- 应用层与表现层之间的数据传输
"""
from pydantic import BaseModel, Field, field_validator, model_serializer, ConfigDict
from pydantic.types import condecimal
from typing import Optional
from datetime import date, datetime
from decimal import Decimal

from core.response import format_utc


class DTOBase(BaseModel):
    """Base DTO: unify datetime serialization to UTC-Z for all subclasses."""

    @model_serializer(mode="wrap")
    def _serialize_model(self, handler):  # type: ignore[override]
        data = handler(self)

        def convert(value):
            if isinstance(value, datetime):
                return format_utc(value)
            if isinstance(value, list):
                return [convert(v) for v in value]
            if isinstance(value, dict):
                return {k: convert(v) for k, v in value.items()}
            return value

        return convert(data)


def _normalize_currency(v: str) -> str:
    u = (v or "").strip().upper()
    if len(u) != 3 or not u.isalpha():
        raise ValueError("currency must be ISO-4217 alpha-3")
    return u


class CardCreateDTO(DTOBase):
    """卡片创建DTO（余额不可由调用方指定）"""
    card_number: str = Field(..., pattern=r"^\d{12,19}$", description="卡号，12-19位数字")
    card_name: str = Field(..., min_length=1, max_length=100, description="卡片名称")
    expiration_date: date = Field(..., description="有效期")
    cvv: int = Field(..., ge=0, le=9999, description="CVV")
    currency_type: str = Field(..., description="货币代码 ISO-4217")

    model_config = ConfigDict(extra="ignore")

    @field_validator("currency_type")
    @classmethod
    def _validate_currency(cls, v: str) -> str:
        return _normalize_currency(v)


class CardUpdateDTO(DTOBase):
    """卡片部分更新DTO"""
    card_name: Optional[str] = Field(None, min_length=1, max_length=100)
    expiration_date: Optional[date] = None
    cvv: Optional[int] = Field(None, ge=0, le=9999)


class BalanceChangeDTO(DTOBase):
    """余额变更DTO；金额合法性由账本校验"""
    amount: condecimal(max_digits=18, decimal_places=2)  # type: ignore[valid-type]


class CardResponseDTO(DTOBase):
    """卡片响应DTO（不返回 CVV）"""
    id: int
    card_number: str
    card_name: str
    expiration_date: date
    balance: Decimal
    currency_type: str
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionResponseDTO(DTOBase):
    """交易响应DTO（不返回确认码）"""
    id: int
    card_id: int
    total_amount: Decimal
    unreturnable_fee: Decimal
    currency_type: str
    status: str
    transaction_date: datetime
    confirmation_code_expires_at: datetime
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
