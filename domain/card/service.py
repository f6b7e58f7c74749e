"""
卡片领域服务 - 余额账本（Card Ledger）
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from .entity import Card, to_money
from .repository import CardRepository
from domain.common.exceptions import (
    CardNotFoundException,
    CardNumberAlreadyExistsException,
    ConcurrencyConflictException,
    InsufficientFundsException,
    InvalidAmountException,
)


logger = structlog.get_logger(__name__)


class CardDomainService:
    """
    卡片领域服务 - 卡片余额的唯一写入方

    职责：
    1. 创建卡片（余额强制为0）
    2. 余额增减：金额校验、余额充足校验
    3. 余额写入采用 读-改-写 + 乐观锁，版本冲突时重读重试
    """

    def __init__(
        self,
        card_repository: CardRepository,
        *,
        max_retries: int = 3,
        retry_delay: float = 0.05,
    ):
        self.card_repository = card_repository
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def get_card(self, card_id: int) -> Card:
        card = await self.card_repository.get_by_id(card_id)
        if not card:
            logger.warning("card_not_found", card_id=card_id)
            raise CardNotFoundException(card_id)
        return card

    async def get_card_by_number(self, card_number: str) -> Card:
        card = await self.card_repository.get_by_card_number(card_number)
        if not card:
            logger.warning("card_not_found", card_number_suffix=card_number[-4:])
            raise CardNotFoundException(card_number=card_number)
        return card

    async def list_cards(self, skip: int = 0, limit: int = 100) -> Tuple[List[Card], int]:
        cards = await self.card_repository.get_all(skip, limit)
        total = await self.card_repository.count_all()
        return cards, int(total)

    async def create_card(
        self,
        card_number: str,
        card_name: str,
        expiration_date: date,
        cvv: int,
        currency_type: str,
    ) -> Card:
        """
        创建卡片

        业务规则：
        1. 新卡余额总是0，调用方无法指定
        2. 卡号不能重复
        """
        if await self.card_repository.get_by_card_number(card_number):
            raise CardNumberAlreadyExistsException(card_number)

        now = datetime.now(timezone.utc)
        card = Card(
            id=None,
            card_number=card_number,
            card_name=card_name,
            expiration_date=expiration_date,
            cvv=cvv,
            currency_type=currency_type.upper(),
            balance=Decimal("0"),
            version=1,
            created_at=now,
            updated_at=now,
        )
        created = await self.card_repository.create(card)
        logger.info("card_created", card_id=created.id, currency=created.currency_type)
        return created

    async def update_card(
        self,
        card_id: int,
        card_name: Optional[str] = None,
        expiration_date: Optional[date] = None,
        cvv: Optional[int] = None,
    ) -> Card:
        card = await self.get_card(card_id)
        card.update_details(card_name=card_name, expiration_date=expiration_date, cvv=cvv)
        return await self.card_repository.update(card)

    async def delete_card(self, card_id: int) -> None:
        if not await self.card_repository.delete(card_id):
            logger.warning("card_delete_missing", card_id=card_id)
            raise CardNotFoundException(card_id)
        logger.info("card_deleted", card_id=card_id)

    async def increase_balance(self, card_id: int, amount: Decimal) -> Card:
        """入账：amount 必须大于0"""
        amount = to_money(amount)
        if amount <= 0:
            logger.warning("card_balance_invalid_amount", card_id=card_id, amount=str(amount))
            raise InvalidAmountException(amount)

        async def _apply(card: Card) -> None:
            card.credit(amount)

        card = await self._read_modify_write(card_id, _apply)
        logger.info(
            "card_balance_increased",
            card_id=card_id,
            amount=str(amount),
            balance=str(card.balance),
        )
        return card

    async def decrease_balance(self, card_id: int, amount: Decimal) -> Card:
        """扣款：amount 必须大于0 且不超过当前余额"""
        amount = to_money(amount)
        if amount <= 0:
            logger.warning("card_balance_invalid_amount", card_id=card_id, amount=str(amount))
            raise InvalidAmountException(amount)

        async def _apply(card: Card) -> None:
            if not card.has_sufficient_funds(amount):
                logger.warning(
                    "card_insufficient_funds",
                    card_id=card_id,
                    balance=str(card.balance),
                    required=str(amount),
                )
                raise InsufficientFundsException(card_id, card.balance, amount)
            card.debit(amount)

        card = await self._read_modify_write(card_id, _apply)
        logger.info(
            "card_balance_decreased",
            card_id=card_id,
            amount=str(amount),
            balance=str(card.balance),
        )
        return card

    async def _read_modify_write(self, card_id: int, apply) -> Card:
        """
        在乐观锁保护下执行一次余额变更

        每次尝试都重新读取卡片；写入时 version 不匹配说明有并发写入，
        抛出 ConcurrencyConflictException 并按退避策略重试，重试耗尽后向上抛出。
        """
        retrying = AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(
                multiplier=self.retry_delay,
                min=0,
                max=self.retry_delay * 8,
            ),
            retry=retry_if_exception_type(ConcurrencyConflictException),
        )
        async for attempt in retrying:
            with attempt:
                card = await self.get_card(card_id)
                expected_version = card.version
                await apply(card)
                written = await self.card_repository.update_balance(
                    card_id, card.balance, expected_version
                )
                if not written:
                    logger.warning(
                        "card_balance_version_conflict",
                        card_id=card_id,
                        expected_version=expected_version,
                        attempt=attempt.retry_state.attempt_number,
                    )
                    raise ConcurrencyConflictException("card", card_id)
                card.version = expected_version + 1
                return card
