"""
交易仓储接口 - 定义交易数据访问的抽象接口
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import Transaction, TransactionStatus


class TransactionRepository(ABC):
    """交易仓储抽象接口"""

    @abstractmethod
    async def create(self, transaction: Transaction) -> Transaction:
        """创建交易记录"""
        pass

    @abstractmethod
    async def get_by_id(self, transaction_id: int, *, for_update: bool = False) -> Optional[Transaction]:
        """根据ID获取交易；for_update 时对行加锁（存储支持时）"""
        pass

    @abstractmethod
    async def list(
        self,
        card_id: Optional[int] = None,
        status: Optional[TransactionStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Transaction]:
        """按条件获取交易列表（按交易时间倒序）"""
        pass

    @abstractmethod
    async def count(
        self,
        card_id: Optional[int] = None,
        status: Optional[TransactionStatus] = None,
    ) -> int:
        """按条件统计交易数量"""
        pass

    @abstractmethod
    async def update_status(
        self,
        transaction: Transaction,
        expected_status: TransactionStatus,
    ) -> bool:
        """
        以 compare-and-set 方式写入状态及派生时间戳

        仅当存储中的状态仍为 expected_status 时写入，返回是否写入成功。
        """
        pass
