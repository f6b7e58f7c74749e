"""
卡片仓储接口 - 定义数据访问的抽象接口
"""
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from .entity import Card


class CardRepository(ABC):
    """卡片仓储抽象接口 - 只定义能做什么，不管怎么做"""

    @abstractmethod
    async def create(self, card: Card) -> Card:
        """创建卡片"""
        pass

    @abstractmethod
    async def get_by_id(self, card_id: int) -> Optional[Card]:
        """根据ID获取卡片（总是读取最新已提交数据）"""
        pass

    @abstractmethod
    async def get_by_card_number(self, card_number: str) -> Optional[Card]:
        """根据卡号获取卡片"""
        pass

    @abstractmethod
    async def get_all(self, skip: int = 0, limit: int = 100) -> List[Card]:
        """获取卡片列表"""
        pass

    @abstractmethod
    async def count_all(self) -> int:
        """统计卡片数量"""
        pass

    @abstractmethod
    async def update(self, card: Card) -> Card:
        """更新卡片资料（不含余额）"""
        pass

    @abstractmethod
    async def update_balance(self, card_id: int, balance: Decimal, expected_version: int) -> bool:
        """
        以乐观锁方式写入余额

        仅当存储中的 version 等于 expected_version 时写入并递增 version，
        返回是否写入成功。
        """
        pass

    @abstractmethod
    async def delete(self, card_id: int) -> bool:
        """删除卡片"""
        pass
