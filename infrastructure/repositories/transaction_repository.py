"""
交易仓储实现 - 使用SQLAlchemy实现数据访问
"""
from decimal import Decimal
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update

from domain.transaction.entity import Transaction, TransactionStatus
from domain.transaction.repository import TransactionRepository
from infrastructure.models.transaction import TransactionModel
from core.logging_config import get_logger


logger = get_logger(__name__)


class SQLAlchemyTransactionRepository(TransactionRepository):
    """交易仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: TransactionModel) -> Transaction:
        """将数据库模型转换为领域实体"""
        return Transaction(
            id=model.id,
            card_id=model.card_id,
            total_amount=Decimal(str(model.total_amount)),
            unreturnable_fee=Decimal(str(model.unreturnable_fee)),
            currency_type=model.currency_type,
            status=TransactionStatus(model.status),
            confirmation_code=model.confirmation_code,
            confirmation_code_expires_at=model.confirmation_code_expires_at,
            transaction_date=model.transaction_date,
            updated_at=model.updated_at,
            confirmed_at=model.confirmed_at,
            canceled_at=model.canceled_at,
            returned_at=model.returned_at,
        )

    def _to_model(self, entity: Transaction) -> TransactionModel:
        """将领域实体转换为数据库模型"""
        return TransactionModel(
            id=entity.id,
            card_id=entity.card_id,
            total_amount=entity.total_amount,
            unreturnable_fee=entity.unreturnable_fee,
            currency_type=entity.currency_type,
            status=entity.status.value,
            confirmation_code=entity.confirmation_code,
            confirmation_code_expires_at=entity.confirmation_code_expires_at,
            transaction_date=entity.transaction_date,
            updated_at=entity.updated_at,
            confirmed_at=entity.confirmed_at,
            canceled_at=entity.canceled_at,
            returned_at=entity.returned_at,
        )

    def _filtered(self, query, card_id: Optional[int], status: Optional[TransactionStatus]):
        if card_id is not None:
            query = query.where(TransactionModel.card_id == card_id)
        if status is not None:
            query = query.where(TransactionModel.status == status.value)
        return query

    async def create(self, transaction: Transaction) -> Transaction:
        """创建交易记录"""
        db_transaction = self._to_model(transaction)
        self.session.add(db_transaction)
        await self.session.flush()
        await self.session.refresh(db_transaction)
        logger.info(
            "transaction_created",
            transaction_id=db_transaction.id,
            card_id=db_transaction.card_id,
            amount=str(db_transaction.total_amount),
        )
        return self._to_entity(db_transaction)

    async def get_by_id(self, transaction_id: int, *, for_update: bool = False) -> Optional[Transaction]:
        """根据ID获取交易"""
        query = (
            select(TransactionModel)
            .where(TransactionModel.id == transaction_id)
            .execution_options(populate_existing=True)
        )
        if for_update:
            # PostgreSQL/MySQL 行锁；SQLite 忽略 FOR UPDATE，仍由 update_status 的 CAS 兜底
            query = query.with_for_update()
        result = await self.session.execute(query)
        db_transaction = result.scalar_one_or_none()
        return self._to_entity(db_transaction) if db_transaction else None

    async def list(
        self,
        card_id: Optional[int] = None,
        status: Optional[TransactionStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Transaction]:
        """按条件获取交易列表"""
        query = self._filtered(select(TransactionModel), card_id, status)
        query = query.order_by(
            TransactionModel.transaction_date.desc(),
            TransactionModel.id.desc(),
        ).offset(skip).limit(limit)
        result = await self.session.execute(query.execution_options(populate_existing=True))
        return [self._to_entity(t) for t in result.scalars().all()]

    async def count(
        self,
        card_id: Optional[int] = None,
        status: Optional[TransactionStatus] = None,
    ) -> int:
        """按条件统计交易数量"""
        query = self._filtered(
            select(func.count()).select_from(TransactionModel), card_id, status
        )
        result = await self.session.execute(query)
        return result.scalar()

    async def update_status(
        self,
        transaction: Transaction,
        expected_status: TransactionStatus,
    ) -> bool:
        """compare-and-set：WHERE status = expected_status"""
        result = await self.session.execute(
            update(TransactionModel)
            .where(
                TransactionModel.id == transaction.id,
                TransactionModel.status == expected_status.value,
            )
            .values(
                status=transaction.status.value,
                updated_at=transaction.updated_at,
                confirmed_at=transaction.confirmed_at,
                canceled_at=transaction.canceled_at,
                returned_at=transaction.returned_at,
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1
