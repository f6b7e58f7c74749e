"""SQLAlchemy Unit of Work 实现"""
from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.card_repository import SQLAlchemyCardRepository
from infrastructure.repositories.transaction_repository import (
    SQLAlchemyTransactionRepository,
)


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """
    一个 AsyncSession、一个数据库事务

    卡片与交易仓储共享同一会话，因此状态转换与余额写入一起提交或回滚。
    外部传入的 session 由调用方负责关闭。
    """

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        session: Optional[AsyncSession] = None,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self._owns_session = session is None
        self.session: Optional[AsyncSession] = session

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        if self.session is None:
            self.session = self._session_factory()
        self.card_repository = SQLAlchemyCardRepository(self.session)
        self.transaction_repository = SQLAlchemyTransactionRepository(self.session)
        # 只读用例依赖会话的 autobegin，不显式开启事务
        if not self._readonly and not self.session.in_transaction():
            await self.session.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            if self._owns_session and self.session is not None:
                await self.session.close()
                self.session = None
            self.card_repository = None
            self.transaction_repository = None

    async def commit(self) -> None:
        if self._readonly:
            self._committed = True
            return
        if self.session is not None and self.session.in_transaction():
            await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        if self.session is not None and self.session.in_transaction():
            await self.session.rollback()
        self._committed = False
