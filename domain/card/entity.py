"""
卡片领域实体 - 余额账本的聚合根
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from domain.common.exceptions import DomainValidationException

MONEY_QUANT = Decimal("0.01")


def to_money(value) -> Decimal:
    """统一金额精度（两位小数）"""
    return Decimal(str(value)).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """确保时间为 UTC 时区"""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class Card:
    """
    卡片聚合根 - 持有币种余额

    业务规则：
    1. 卡号必须由数字组成且唯一
    2. 币种为3位字母代码
    3. 余额提交后永远不为负
    4. 余额只能通过 increase/decrease 变化
    """

    id: Optional[int]
    card_number: str
    card_name: str
    expiration_date: date
    cvv: int
    currency_type: str
    balance: Decimal = Decimal("0.00")
    version: int = 1
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        self.balance = to_money(self.balance)
        self._validate_card_number()
        self._validate_card_name()
        self._validate_cvv()
        self._validate_currency()
        if self.balance < 0:
            raise DomainValidationException(
                f"Balance cannot be negative: {self.balance}",
                field="balance",
            )
        self.created_at = ensure_utc(self.created_at)
        self.updated_at = ensure_utc(self.updated_at)

    def _validate_card_number(self) -> None:
        if not self.card_number or not self.card_number.isdigit():
            raise DomainValidationException(
                "Card number must contain digits only",
                field="card_number",
            )

    def _validate_card_name(self) -> None:
        if not self.card_name or not self.card_name.strip():
            raise DomainValidationException("Card name is required", field="card_name")

    def _validate_cvv(self) -> None:
        if self.cvv is None or not 0 <= int(self.cvv) <= 9999:
            raise DomainValidationException("Invalid CVV", field="cvv")

    def _validate_currency(self) -> None:
        """业务规则：货币代码必须是3位字母"""
        if not self.currency_type or len(self.currency_type) != 3 or not self.currency_type.isalpha():
            raise DomainValidationException(
                f"Invalid currency code: {self.currency_type}",
                field="currency_type",
            )

    def has_sufficient_funds(self, amount: Decimal) -> bool:
        return self.balance >= amount

    def credit(self, amount: Decimal) -> None:
        """入账（调用方负责金额校验）"""
        self.balance = to_money(self.balance + amount)
        self.updated_at = datetime.now(timezone.utc)

    def debit(self, amount: Decimal) -> None:
        """扣款（调用方负责金额与余额校验）"""
        self.balance = to_money(self.balance - amount)
        self.updated_at = datetime.now(timezone.utc)

    def update_details(
        self,
        card_name: Optional[str] = None,
        expiration_date: Optional[date] = None,
        cvv: Optional[int] = None,
    ) -> None:
        """部分更新卡片资料，余额与卡号不可通过此途径修改"""
        if card_name is not None:
            self.card_name = card_name
            self._validate_card_name()
        if expiration_date is not None:
            self.expiration_date = expiration_date
        if cvv is not None:
            self.cvv = cvv
            self._validate_cvv()
        self.updated_at = datetime.now(timezone.utc)
