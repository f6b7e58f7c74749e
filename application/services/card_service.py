"""
卡片应用服务（application/services）- 编排卡片领域服务
"""
from typing import Callable, List, Tuple

from domain.card.entity import Card
from domain.card.service import CardDomainService
from domain.common.unit_of_work import AbstractUnitOfWork
from application.dto import (
    BalanceChangeDTO,
    CardCreateDTO,
    CardResponseDTO,
    CardUpdateDTO,
)
from core.config import settings


class CardApplicationService:
    """卡片应用服务 - 处理应用层逻辑"""

    def __init__(self, uow_factory: Callable[..., AbstractUnitOfWork]):
        self._uow_factory = uow_factory

    def _domain_service(self, uow: AbstractUnitOfWork) -> CardDomainService:
        return CardDomainService(
            uow.card_repository,
            max_retries=settings.ledger.max_retries,
            retry_delay=settings.ledger.retry_delay,
        )

    async def create_card(self, card_data: CardCreateDTO) -> CardResponseDTO:
        async with self._uow_factory() as uow:
            card = await self._domain_service(uow).create_card(
                card_number=card_data.card_number,
                card_name=card_data.card_name,
                expiration_date=card_data.expiration_date,
                cvv=card_data.cvv,
                currency_type=card_data.currency_type,
            )
            return self._to_response_dto(card)

    async def get_card(self, card_id: int) -> CardResponseDTO:
        async with self._uow_factory(readonly=True) as uow:
            card = await self._domain_service(uow).get_card(card_id)
            return self._to_response_dto(card)

    async def get_card_by_number(self, card_number: str) -> CardResponseDTO:
        async with self._uow_factory(readonly=True) as uow:
            card = await self._domain_service(uow).get_card_by_number(card_number)
            return self._to_response_dto(card)

    async def list_cards(self, skip: int = 0, limit: int = 100) -> Tuple[List[CardResponseDTO], int]:
        async with self._uow_factory(readonly=True) as uow:
            cards, total = await self._domain_service(uow).list_cards(skip, limit)
            return [self._to_response_dto(card) for card in cards], total

    async def update_card(self, card_id: int, update_data: CardUpdateDTO) -> CardResponseDTO:
        async with self._uow_factory() as uow:
            card = await self._domain_service(uow).update_card(
                card_id,
                card_name=update_data.card_name,
                expiration_date=update_data.expiration_date,
                cvv=update_data.cvv,
            )
            return self._to_response_dto(card)

    async def delete_card(self, card_id: int) -> None:
        """删除卡片（其交易记录级联删除）"""
        async with self._uow_factory() as uow:
            await self._domain_service(uow).delete_card(card_id)

    async def increase_balance(self, card_id: int, change: BalanceChangeDTO) -> CardResponseDTO:
        async with self._uow_factory() as uow:
            card = await self._domain_service(uow).increase_balance(card_id, change.amount)
            return self._to_response_dto(card)

    async def decrease_balance(self, card_id: int, change: BalanceChangeDTO) -> CardResponseDTO:
        async with self._uow_factory() as uow:
            card = await self._domain_service(uow).decrease_balance(card_id, change.amount)
            return self._to_response_dto(card)

    def _to_response_dto(self, card: Card) -> CardResponseDTO:
        return CardResponseDTO(
            id=card.id,
            card_number=card.card_number,
            card_name=card.card_name,
            expiration_date=card.expiration_date,
            balance=card.balance,
            currency_type=card.currency_type,
            created_at=card.created_at,
            updated_at=card.updated_at,
        )
