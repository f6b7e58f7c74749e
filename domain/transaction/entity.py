"""
交易领域实体 - 交易状态机
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Dict, FrozenSet, Optional

from domain.card.entity import ensure_utc, to_money
from domain.common.exceptions import (
    ConfirmationCodeExpiredException,
    ConfirmationCodeMismatchException,
    DomainValidationException,
    InvalidTransactionStateException,
)


class TransactionStatus(str, Enum):
    """交易状态枚举"""
    PENDING = "Pending"        # 待确认（初始）
    CONFIRMED = "Confirmed"    # 已确认，已扣款
    CANCELED = "Canceled"      # 已取消（终态）
    RETURNED = "Returned"      # 已退回（终态）


# 状态机：每个状态允许到达的下一状态
ALLOWED_TRANSITIONS: Dict[TransactionStatus, FrozenSet[TransactionStatus]] = {
    TransactionStatus.PENDING: frozenset({TransactionStatus.CONFIRMED, TransactionStatus.CANCELED}),
    TransactionStatus.CONFIRMED: frozenset({TransactionStatus.RETURNED}),
    TransactionStatus.CANCELED: frozenset(),
    TransactionStatus.RETURNED: frozenset(),
}


def can_transition(current: TransactionStatus, target: TransactionStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


@dataclass
class Transaction:
    """
    交易聚合根 - 记录一次针对卡片的支付尝试

    业务规则：
    1. 金额不能为负，不可退回手续费介于 0 与金额之间
    2. 状态只能沿状态机单向推进，不会回到 Pending
    3. 确认码创建后不可变
    4. 确认码在 now > expires_at 时过期（等于边界仍有效）
    """

    id: Optional[int]
    card_id: int
    total_amount: Decimal
    currency_type: str
    confirmation_code: str
    confirmation_code_expires_at: datetime
    transaction_date: datetime
    unreturnable_fee: Decimal = Decimal("0.00")
    status: TransactionStatus = TransactionStatus.PENDING
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    returned_at: Optional[datetime] = None

    def __post_init__(self):
        self.total_amount = to_money(self.total_amount)
        self.unreturnable_fee = to_money(self.unreturnable_fee)
        self._validate_amounts()
        if not self.confirmation_code:
            raise DomainValidationException(
                "Confirmation code is required", field="confirmation_code"
            )
        self.status = TransactionStatus(self.status)
        self.transaction_date = ensure_utc(self.transaction_date)
        self.confirmation_code_expires_at = ensure_utc(self.confirmation_code_expires_at)
        self.updated_at = ensure_utc(self.updated_at)
        self.confirmed_at = ensure_utc(self.confirmed_at)
        self.canceled_at = ensure_utc(self.canceled_at)
        self.returned_at = ensure_utc(self.returned_at)

    def _validate_amounts(self) -> None:
        if self.total_amount < 0:
            raise DomainValidationException(
                f"Total amount cannot be negative: {self.total_amount}",
                field="total_amount",
            )
        if self.unreturnable_fee < 0 or self.unreturnable_fee > self.total_amount:
            raise DomainValidationException(
                f"Unreturnable fee must be between 0 and {self.total_amount}",
                field="unreturnable_fee",
            )

    @property
    def returnable_amount(self) -> Decimal:
        """退回时返还给卡片的金额"""
        return self.total_amount - self.unreturnable_fee

    def is_final_status(self) -> bool:
        return not ALLOWED_TRANSITIONS[self.status]

    def is_code_expired(self, now: datetime) -> bool:
        return ensure_utc(now) > self.confirmation_code_expires_at

    def _transition(self, target: TransactionStatus, now: datetime) -> None:
        if not can_transition(self.status, target):
            raise InvalidTransactionStateException(self.id, self.status.value, target.value)
        self.status = target
        self.updated_at = now

    def confirm(self, code: str, now: datetime) -> None:
        """
        确认交易

        校验顺序：状态 → 确认码 → 有效期。确认码不匹配时无论是否过期都报不匹配，
        确认码正确但已过期时报过期。
        """
        if not can_transition(self.status, TransactionStatus.CONFIRMED):
            raise InvalidTransactionStateException(
                self.id, self.status.value, TransactionStatus.CONFIRMED.value
            )
        if code != self.confirmation_code:
            raise ConfirmationCodeMismatchException(self.id)
        if self.is_code_expired(now):
            raise ConfirmationCodeExpiredException(self.id)
        self._transition(TransactionStatus.CONFIRMED, now)
        self.confirmed_at = now

    def cancel(self, now: datetime) -> None:
        """取消交易：仅 Pending 可取消"""
        self._transition(TransactionStatus.CANCELED, now)
        self.canceled_at = now

    def mark_returned(self, now: datetime) -> None:
        """退回交易：仅 Confirmed 可退回"""
        self._transition(TransactionStatus.RETURNED, now)
        self.returned_at = now
