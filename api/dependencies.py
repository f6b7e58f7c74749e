"""
API依赖项 - 应用服务装配
"""
from fastapi import Query

from application.services.card_service import CardApplicationService
from application.services.payment_service import PaymentApplicationService
from core.config import settings
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


async def get_card_service() -> CardApplicationService:
    return CardApplicationService(uow_factory=SQLAlchemyUnitOfWork)


async def get_payment_service() -> PaymentApplicationService:
    return PaymentApplicationService(uow_factory=SQLAlchemyUnitOfWork)


class PaginationParams:
    """分页查询参数（page 从 1 开始）"""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="页码"),
        size: int = Query(
            settings.DEFAULT_PAGE_SIZE,
            ge=1,
            le=settings.MAX_PAGE_SIZE,
            description="每页数量",
        ),
    ):
        self.page = page
        self.size = size

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.size

    @property
    def limit(self) -> int:
        return self.size
