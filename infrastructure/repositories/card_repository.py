"""
卡片仓储实现 - 使用SQLAlchemy实现数据访问
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func, update
from sqlalchemy.exc import IntegrityError

from domain.card.entity import Card
from domain.card.repository import CardRepository
from domain.common.exceptions import CardNotFoundException, CardNumberAlreadyExistsException
from infrastructure.models.card import CardModel
from core.logging_config import get_logger


logger = get_logger(__name__)


class SQLAlchemyCardRepository(CardRepository):
    """卡片仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: CardModel) -> Card:
        """将数据库模型转换为领域实体"""
        return Card(
            id=model.id,
            card_number=model.card_number,
            card_name=model.card_name,
            expiration_date=model.expiration_date,
            cvv=model.cvv,
            currency_type=model.currency_type,
            balance=Decimal(str(model.balance)),
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Card) -> CardModel:
        """将领域实体转换为数据库模型"""
        return CardModel(
            id=entity.id,
            card_number=entity.card_number,
            card_name=entity.card_name,
            expiration_date=entity.expiration_date,
            cvv=entity.cvv,
            currency_type=entity.currency_type,
            balance=entity.balance,
            version=entity.version,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    async def _get_model(self, card_id: int) -> Optional[CardModel]:
        # populate_existing：绕过 identity map，读取数据库中的最新值
        result = await self.session.execute(
            select(CardModel)
            .where(CardModel.id == card_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, card: Card) -> Card:
        """创建卡片"""
        try:
            db_card = self._to_model(card)
            self.session.add(db_card)
            await self.session.flush()  # 获取生成的ID
            await self.session.refresh(db_card)
            return self._to_entity(db_card)
        except IntegrityError as e:
            await self.session.rollback()
            if "card_number" in str(e).lower():
                logger.warning("create_card_conflict", field="card_number")
                raise CardNumberAlreadyExistsException(card.card_number)
            raise

    async def get_by_id(self, card_id: int) -> Optional[Card]:
        """根据ID获取卡片"""
        db_card = await self._get_model(card_id)
        return self._to_entity(db_card) if db_card else None

    async def get_by_card_number(self, card_number: str) -> Optional[Card]:
        """根据卡号获取卡片"""
        result = await self.session.execute(
            select(CardModel)
            .where(CardModel.card_number == card_number)
            .execution_options(populate_existing=True)
        )
        db_card = result.scalar_one_or_none()
        return self._to_entity(db_card) if db_card else None

    async def get_all(self, skip: int = 0, limit: int = 100) -> List[Card]:
        """获取卡片列表"""
        result = await self.session.execute(
            select(CardModel)
            .order_by(CardModel.id.asc())
            .offset(skip)
            .limit(limit)
            .execution_options(populate_existing=True)
        )
        return [self._to_entity(c) for c in result.scalars().all()]

    async def count_all(self) -> int:
        """统计卡片数量"""
        result = await self.session.execute(select(func.count()).select_from(CardModel))
        return result.scalar()

    async def update(self, card: Card) -> Card:
        """更新卡片资料（余额走 update_balance）"""
        db_card = await self._get_model(card.id)
        if not db_card:
            raise CardNotFoundException(card.id)

        db_card.card_name = card.card_name
        db_card.expiration_date = card.expiration_date
        db_card.cvv = card.cvv
        db_card.updated_at = card.updated_at

        await self.session.flush()
        await self.session.refresh(db_card)
        logger.info("card_updated", card_id=db_card.id)
        return self._to_entity(db_card)

    async def update_balance(self, card_id: int, balance: Decimal, expected_version: int) -> bool:
        """乐观锁写入余额：WHERE version = expected_version"""
        result = await self.session.execute(
            update(CardModel)
            .where(
                CardModel.id == card_id,
                CardModel.version == expected_version,
            )
            .values(
                balance=balance,
                version=expected_version + 1,
                updated_at=datetime.now(timezone.utc),
            )
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def delete(self, card_id: int) -> bool:
        """删除卡片"""
        db_card = await self._get_model(card_id)
        if not db_card:
            return False

        await self.session.delete(db_card)
        await self.session.flush()
        return True
