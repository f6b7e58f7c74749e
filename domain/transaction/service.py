"""
交易领域服务 - 交易状态机的编排
"""
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

import structlog

from .confirmation import ConfirmationCodeGenerator, RandomConfirmationCodeGenerator
from .entity import Transaction, TransactionStatus
from .events import (
    TransactionCanceled,
    TransactionConfirmed,
    TransactionCreated,
    TransactionReturned,
)
from .repository import TransactionRepository
from domain.common.exceptions import (
    BusinessException,
    InvalidTransactionStateException,
    TransactionNotFoundException,
)


logger = structlog.get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TransactionDomainService:
    """
    交易领域服务 - 交易状态的唯一写入方

    职责：
    1. 创建交易：生成确认码与过期时间
    2. 确认 / 取消 / 退回的状态转换
    3. 以 compare-and-set 持久化状态，保证同一交易至多一次成功转换
    4. 产生领域事件

    不触碰卡片余额，跨实体副作用由应用层编排。
    """

    def __init__(
        self,
        transaction_repository: TransactionRepository,
        *,
        code_validity_minutes: int,
        code_generator: Optional[ConfirmationCodeGenerator] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.transaction_repository = transaction_repository
        self.code_validity_minutes = code_validity_minutes
        self.code_generator = code_generator or RandomConfirmationCodeGenerator()
        self.clock = clock
        self.events: List = []  # 领域事件收集

    async def get_transaction(self, transaction_id: int, *, for_update: bool = False) -> Transaction:
        transaction = await self.transaction_repository.get_by_id(
            transaction_id, for_update=for_update
        )
        if not transaction:
            logger.warning("transaction_not_found", transaction_id=transaction_id)
            raise TransactionNotFoundException(transaction_id)
        return transaction

    async def list_transactions(
        self,
        card_id: Optional[int] = None,
        status: Optional[TransactionStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[Transaction], int]:
        items = await self.transaction_repository.list(card_id, status, skip, limit)
        total = await self.transaction_repository.count(card_id, status)
        return items, int(total)

    async def create_transaction(
        self,
        card_id: int,
        total_amount: Decimal,
        currency: str,
        unreturnable_fee: Decimal = Decimal("0"),
    ) -> Transaction:
        """
        创建待确认交易

        确认码随记录一同返回，真实系统中应由调用方通过独立通道下发。
        """
        now = self.clock()
        transaction = Transaction(
            id=None,
            card_id=card_id,
            total_amount=total_amount,
            unreturnable_fee=unreturnable_fee,
            currency_type=currency,
            confirmation_code=self.code_generator.generate(),
            confirmation_code_expires_at=now + timedelta(minutes=self.code_validity_minutes),
            transaction_date=now,
            status=TransactionStatus.PENDING,
            updated_at=now,
        )
        created = await self.transaction_repository.create(transaction)

        self.events.append(TransactionCreated(
            transaction_id=created.id,
            card_id=created.card_id,
            amount=str(created.total_amount),
            currency=created.currency_type,
        ))
        return created

    async def confirm_transaction(self, transaction_id: int, confirmation_code: str) -> Transaction:
        """
        确认交易

        业务规则：
        1. 交易必须存在且为 Pending
        2. 确认码必须完全一致（区分大小写）
        3. 确认码未过期
        """
        transaction = await self.get_transaction(transaction_id, for_update=True)
        try:
            transaction.confirm(confirmation_code, self.clock())
        except BusinessException as exc:
            logger.warning(
                "transaction_confirm_rejected",
                transaction_id=transaction_id,
                reason=exc.error_type,
                status=transaction.status.value,
            )
            raise
        await self._persist_transition(transaction, TransactionStatus.PENDING)

        self.events.append(TransactionConfirmed(
            transaction_id=transaction.id,
            card_id=transaction.card_id,
            amount=str(transaction.total_amount),
        ))
        return transaction

    async def cancel_transaction(self, transaction_id: int) -> Transaction:
        """取消交易：仅 Pending 可取消，过期的待确认交易同样可以取消"""
        transaction = await self.get_transaction(transaction_id, for_update=True)
        try:
            transaction.cancel(self.clock())
        except InvalidTransactionStateException:
            logger.warning(
                "transaction_cancel_rejected",
                transaction_id=transaction_id,
                status=transaction.status.value,
            )
            raise
        await self._persist_transition(transaction, TransactionStatus.PENDING)

        self.events.append(TransactionCanceled(
            transaction_id=transaction.id,
            card_id=transaction.card_id,
        ))
        return transaction

    async def return_transaction(self, transaction_id: int) -> Transaction:
        """退回交易：仅 Confirmed 可退回"""
        transaction = await self.get_transaction(transaction_id, for_update=True)
        try:
            transaction.mark_returned(self.clock())
        except InvalidTransactionStateException:
            logger.warning(
                "transaction_return_rejected",
                transaction_id=transaction_id,
                status=transaction.status.value,
            )
            raise
        await self._persist_transition(transaction, TransactionStatus.CONFIRMED)

        self.events.append(TransactionReturned(
            transaction_id=transaction.id,
            card_id=transaction.card_id,
            refunded_amount=str(transaction.returnable_amount),
            unreturnable_fee=str(transaction.unreturnable_fee),
        ))
        return transaction

    async def _persist_transition(self, transaction: Transaction, expected: TransactionStatus) -> None:
        """写入状态；若存储中的状态已被并发请求改变，则视为状态非法"""
        written = await self.transaction_repository.update_status(transaction, expected)
        if not written:
            current = await self.get_transaction(transaction.id)
            logger.warning(
                "transaction_transition_lost_race",
                transaction_id=transaction.id,
                expected=expected.value,
                current=current.status.value,
                target=transaction.status.value,
            )
            raise InvalidTransactionStateException(
                transaction.id, current.status.value, transaction.status.value
            )
        logger.info(
            "transaction_status_changed",
            transaction_id=transaction.id,
            previous=expected.value,
            status=transaction.status.value,
        )

    def clear_events(self) -> List:
        """清空并返回领域事件"""
        events = self.events.copy()
        self.events.clear()
        return events
