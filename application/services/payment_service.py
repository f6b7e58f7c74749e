"""
支付应用服务 - 编排卡片账本与交易状态机

每个用例在同一个 Unit of Work 中执行：状态转换与余额变更一起提交，
任一步失败则整体回滚，不会出现“已确认但未扣款”或“已退回但未入账”。
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from application.dto import TransactionResponseDTO
from application.dtos.payments import (
    ConfirmPayment,
    PaymentConfirmation,
    PaymentResult,
    ProcessPayment,
)
from core.config import settings
from core.logging_config import get_logger
from domain.card.service import CardDomainService
from domain.common.exceptions import (
    BusinessException,
    CurrencyMismatchException,
    DomainValidationException,
    InsufficientFundsException,
    InvalidAmountException,
)
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.transaction.confirmation import ConfirmationCodeGenerator
from domain.transaction.entity import Transaction, TransactionStatus
from domain.transaction.service import TransactionDomainService, utc_now


logger = get_logger(__name__)


class PaymentApplicationService:
    """支付应用服务 - process / confirm / cancel / return"""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        *,
        code_generator: Optional[ConfirmationCodeGenerator] = None,
        clock: Callable[[], datetime] = utc_now,
        code_validity_minutes: Optional[int] = None,
    ):
        self._uow_factory = uow_factory
        self._code_generator = code_generator
        self._clock = clock
        self._code_validity_minutes = (
            code_validity_minutes
            if code_validity_minutes is not None
            else settings.confirmation.code_validity_minutes
        )

    def _card_service(self, uow: AbstractUnitOfWork) -> CardDomainService:
        return CardDomainService(
            uow.card_repository,
            max_retries=settings.ledger.max_retries,
            retry_delay=settings.ledger.retry_delay,
        )

    def _transaction_service(self, uow: AbstractUnitOfWork) -> TransactionDomainService:
        return TransactionDomainService(
            uow.transaction_repository,
            code_validity_minutes=self._code_validity_minutes,
            code_generator=self._code_generator,
            clock=self._clock,
        )

    @staticmethod
    def _publish(domain_service: TransactionDomainService) -> None:
        for event in domain_service.clear_events():
            logger.info(
                "transaction_event",
                event_type=type(event).__name__,
                event_id=event.event_id,
                transaction_id=event.transaction_id,
                card_id=event.card_id,
            )

    async def process_payment(self, request: ProcessPayment) -> PaymentConfirmation:
        """
        发起支付

        业务规则：
        1. 卡片必须存在
        2. 金额大于0，不可退回手续费介于 0 与金额之间
        3. 币种与卡片一致
        4. 余额充足（仅为提示性校验，此时不冻结、不扣款）
        """
        total_amount = Decimal(request.total_amount)
        fee = Decimal(request.unreturnable_fee)
        async with self._uow_factory() as uow:
            cards = self._card_service(uow)
            card = await cards.get_card(request.card_id)

            if total_amount <= 0:
                raise InvalidAmountException(total_amount, field="total_amount")
            if fee < 0 or fee > total_amount:
                raise DomainValidationException(
                    f"Unreturnable fee must be between 0 and {total_amount}",
                    field="unreturnable_fee",
                )
            if card.currency_type != request.currency:
                logger.warning(
                    "payment_currency_mismatch",
                    card_id=card.id,
                    card_currency=card.currency_type,
                    currency=request.currency,
                )
                raise CurrencyMismatchException(card.currency_type, request.currency)
            if not card.has_sufficient_funds(total_amount):
                logger.warning(
                    "payment_insufficient_funds",
                    card_id=card.id,
                    balance=str(card.balance),
                    required=str(total_amount),
                )
                raise InsufficientFundsException(card.id, card.balance, total_amount)

            transactions = self._transaction_service(uow)
            transaction = await transactions.create_transaction(
                card_id=card.id,
                total_amount=total_amount,
                currency=request.currency,
                unreturnable_fee=fee,
            )
            self._publish(transactions)

        logger.info(
            "payment_initiated",
            card_id=transaction.card_id,
            transaction_id=transaction.id,
            expires_at=transaction.confirmation_code_expires_at.isoformat(),
        )
        return PaymentConfirmation(
            transaction_id=transaction.id,
            confirmation_code=transaction.confirmation_code,
        )

    async def confirm_payment(self, request: ConfirmPayment) -> PaymentResult:
        """
        确认支付：状态 Pending → Confirmed，然后扣减卡片余额

        状态校验失败时不会尝试扣款；扣款失败时整个工作单元回滚，交易保持 Pending。
        """
        async with self._uow_factory() as uow:
            transactions = self._transaction_service(uow)
            transaction = await transactions.confirm_transaction(
                request.transaction_id, request.confirmation_code
            )
            try:
                card = await self._card_service(uow).decrease_balance(
                    transaction.card_id, transaction.total_amount
                )
            except BusinessException as exc:
                logger.error(
                    "payment_confirm_debit_failed",
                    transaction_id=transaction.id,
                    card_id=transaction.card_id,
                    amount=str(transaction.total_amount),
                    reason=exc.error_type,
                )
                raise
            self._publish(transactions)

        logger.info(
            "payment_confirmed",
            transaction_id=transaction.id,
            card_id=card.id,
            balance=str(card.balance),
        )
        return PaymentResult(
            transaction_id=transaction.id,
            card_id=card.id,
            status=transaction.status.value,
            balance=card.balance,
        )

    async def cancel_payment(self, transaction_id: int) -> PaymentResult:
        """取消支付：尚未扣款，因此没有余额变化"""
        async with self._uow_factory() as uow:
            transactions = self._transaction_service(uow)
            transaction = await transactions.cancel_transaction(transaction_id)
            card = await self._card_service(uow).get_card(transaction.card_id)
            self._publish(transactions)

        logger.info("payment_canceled", transaction_id=transaction_id)
        return PaymentResult(
            transaction_id=transaction.id,
            card_id=card.id,
            status=transaction.status.value,
            balance=card.balance,
        )

    async def return_payment(self, transaction_id: int) -> PaymentResult:
        """
        退回支付：状态 Confirmed → Returned，然后把可退回部分返还给卡片

        可退回部分 = total_amount - unreturnable_fee；为0时不入账。
        """
        async with self._uow_factory() as uow:
            transactions = self._transaction_service(uow)
            transaction = await transactions.return_transaction(transaction_id)
            cards = self._card_service(uow)
            refund = transaction.returnable_amount
            if refund > 0:
                try:
                    card = await cards.increase_balance(transaction.card_id, refund)
                except BusinessException as exc:
                    logger.error(
                        "payment_return_credit_failed",
                        transaction_id=transaction.id,
                        card_id=transaction.card_id,
                        amount=str(refund),
                        reason=exc.error_type,
                    )
                    raise
            else:
                card = await cards.get_card(transaction.card_id)
                logger.info(
                    "payment_return_nothing_refundable",
                    transaction_id=transaction.id,
                    unreturnable_fee=str(transaction.unreturnable_fee),
                )
            self._publish(transactions)

        logger.info(
            "payment_returned",
            transaction_id=transaction.id,
            card_id=card.id,
            refunded=str(refund),
            balance=str(card.balance),
        )
        return PaymentResult(
            transaction_id=transaction.id,
            card_id=card.id,
            status=transaction.status.value,
            balance=card.balance,
        )

    async def get_transaction(self, transaction_id: int) -> TransactionResponseDTO:
        async with self._uow_factory(readonly=True) as uow:
            transaction = await self._transaction_service(uow).get_transaction(transaction_id)
            return self._to_response_dto(transaction)

    async def list_transactions(
        self,
        card_id: Optional[int] = None,
        status: Optional[TransactionStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> Tuple[List[TransactionResponseDTO], int]:
        async with self._uow_factory(readonly=True) as uow:
            items, total = await self._transaction_service(uow).list_transactions(
                card_id, status, skip, limit
            )
            return [self._to_response_dto(t) for t in items], total

    def _to_response_dto(self, transaction: Transaction) -> TransactionResponseDTO:
        return TransactionResponseDTO(
            id=transaction.id,
            card_id=transaction.card_id,
            total_amount=transaction.total_amount,
            unreturnable_fee=transaction.unreturnable_fee,
            currency_type=transaction.currency_type,
            status=transaction.status.value,
            transaction_date=transaction.transaction_date,
            confirmation_code_expires_at=transaction.confirmation_code_expires_at,
            updated_at=transaction.updated_at,
            confirmed_at=transaction.confirmed_at,
            canceled_at=transaction.canceled_at,
            returned_at=transaction.returned_at,
        )
