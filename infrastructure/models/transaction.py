"""
交易数据库模型 - SQLAlchemy ORM模型
"""
from sqlalchemy import (
    Column, Integer, String, Numeric, DateTime, Index, ForeignKey
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from .base import Base


class TransactionModel(Base):
    """
    交易数据库模型

    状态流转规则在 domain.transaction.entity 中，这里只做映射
    """
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)

    card_id = Column(
        Integer,
        ForeignKey("cards.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="所属卡片ID"
    )

    total_amount = Column(Numeric(precision=18, scale=2), nullable=False, comment="交易金额")
    unreturnable_fee = Column(
        Numeric(precision=18, scale=2),
        nullable=False,
        default=0,
        comment="退回时不返还的手续费"
    )
    currency_type = Column(String(3), nullable=False, comment="货币代码")

    status = Column(
        String(20),
        nullable=False,
        default="Pending",
        index=True,
        comment="交易状态: Pending/Confirmed/Canceled/Returned"
    )

    confirmation_code = Column(String(16), nullable=False, comment="确认码")
    confirmation_code_expires_at = Column(DateTime(timezone=True), nullable=False, comment="确认码过期时间")

    transaction_date = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="交易时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )
    confirmed_at = Column(DateTime(timezone=True), nullable=True, comment="确认时间")
    canceled_at = Column(DateTime(timezone=True), nullable=True, comment="取消时间")
    returned_at = Column(DateTime(timezone=True), nullable=True, comment="退回时间")

    card = relationship("CardModel", back_populates="transactions")

    __table_args__ = (
        Index("ix_transactions_card_status", "card_id", "status"),
        Index("ix_transactions_transaction_date", "transaction_date"),
    )

    def __repr__(self):
        return (
            f"<TransactionModel(id={self.id}, card_id={self.card_id}, "
            f"amount={self.total_amount}, status='{self.status}')>"
        )
