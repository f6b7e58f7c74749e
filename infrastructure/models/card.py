"""
卡片数据库模型 - SQLAlchemy ORM模型
注意：这是基础设施层的实现细节，不是领域模型
"""
from sqlalchemy import Column, Integer, String, Numeric, Date, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime, timezone

from .base import Base


class CardModel(Base):
    """
    卡片数据库模型

    所有业务规则都在 domain.card.entity.Card 中
    """
    __tablename__ = "cards"

    id = Column(Integer, primary_key=True, index=True)

    card_number = Column(String(19), unique=True, index=True, nullable=False, comment="卡号")
    card_name = Column(String(100), nullable=False, comment="持卡人/卡片名称")
    expiration_date = Column(Date, nullable=False, comment="有效期")
    cvv = Column(Integer, nullable=False, comment="CVV")

    # 金额信息（使用 Numeric 存储精确金额）
    balance = Column(Numeric(precision=18, scale=2), nullable=False, default=0, comment="余额")
    currency_type = Column(String(3), nullable=False, comment="货币代码 ISO-4217")

    # 乐观锁版本号，每次余额写入递增
    version = Column(Integer, nullable=False, default=1, comment="余额版本号")

    created_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="创建时间"
    )
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
        comment="更新时间"
    )

    transactions = relationship(
        "TransactionModel",
        back_populates="card",
        lazy="noload",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self):
        return (
            f"<CardModel(id={self.id}, currency='{self.currency_type}', "
            f"balance={self.balance}, version={self.version})>"
        )
