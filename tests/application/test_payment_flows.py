from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from application.dto import BalanceChangeDTO, CardCreateDTO, CardUpdateDTO
from application.dtos.payments import ConfirmPayment, ProcessPayment
from application.services.card_service import CardApplicationService
from application.services.payment_service import PaymentApplicationService
from domain.common.exceptions import (
    CardNotFoundException,
    ConfirmationCodeExpiredException,
    ConfirmationCodeMismatchException,
    CurrencyMismatchException,
    DomainValidationException,
    InsufficientFundsException,
    InvalidAmountException,
    InvalidTransactionStateException,
    TransactionNotFoundException,
)
from domain.transaction.entity import TransactionStatus


@pytest.fixture
def card_service(uow_factory):
    return CardApplicationService(uow_factory=uow_factory)


@pytest.fixture
def payment_service(uow_factory, code_generator, clock):
    return PaymentApplicationService(
        uow_factory=uow_factory,
        code_generator=code_generator,
        clock=clock,
        code_validity_minutes=10,
    )


@pytest_asyncio.fixture
async def funded_card(card_service):
    card = await card_service.create_card(CardCreateDTO(
        card_number="4111111111111111",
        card_name="Alice",
        expiration_date=date(2030, 12, 31),
        cvv=123,
        currency_type="USD",
    ))
    return await card_service.increase_balance(card.id, BalanceChangeDTO(amount=Decimal("1000")))


def _process(card_id, amount="100", currency="USD", fee="0"):
    return ProcessPayment(
        card_id=card_id,
        total_amount=Decimal(amount),
        currency=currency,
        unreturnable_fee=Decimal(fee),
    )


@pytest.mark.asyncio
async def test_process_does_not_debit(payment_service, card_service, funded_card):
    result = await payment_service.process_payment(_process(funded_card.id))

    assert result.confirmation_code == "ABC123"
    tx = await payment_service.get_transaction(result.transaction_id)
    assert tx.status == "Pending"
    assert tx.total_amount == Decimal("100.00")
    assert (await card_service.get_card(funded_card.id)).balance == Decimal("1000.00")


@pytest.mark.asyncio
async def test_confirm_debits_card(payment_service, card_service, funded_card):
    pending = await payment_service.process_payment(_process(funded_card.id))

    result = await payment_service.confirm_payment(ConfirmPayment(
        transaction_id=pending.transaction_id,
        confirmation_code=pending.confirmation_code,
    ))

    assert result.status == "Confirmed"
    assert result.balance == Decimal("900.00")
    assert (await card_service.get_card(funded_card.id)).balance == Decimal("900.00")
    tx = await payment_service.get_transaction(pending.transaction_id)
    assert tx.confirmed_at is not None


@pytest.mark.asyncio
async def test_double_confirm_debits_once(payment_service, card_service, funded_card):
    pending = await payment_service.process_payment(_process(funded_card.id))
    request = ConfirmPayment(transaction_id=pending.transaction_id, confirmation_code="ABC123")
    await payment_service.confirm_payment(request)

    with pytest.raises(InvalidTransactionStateException):
        await payment_service.confirm_payment(request)
    assert (await card_service.get_card(funded_card.id)).balance == Decimal("900.00")


@pytest.mark.asyncio
async def test_wrong_code_does_not_debit(payment_service, card_service, funded_card):
    pending = await payment_service.process_payment(_process(funded_card.id))

    with pytest.raises(ConfirmationCodeMismatchException):
        await payment_service.confirm_payment(ConfirmPayment(
            transaction_id=pending.transaction_id, confirmation_code="WRONG1",
        ))

    assert (await payment_service.get_transaction(pending.transaction_id)).status == "Pending"
    assert (await card_service.get_card(funded_card.id)).balance == Decimal("1000.00")


@pytest.mark.asyncio
async def test_expired_code(payment_service, funded_card, clock):
    pending = await payment_service.process_payment(_process(funded_card.id))
    clock.advance(minutes=11)

    with pytest.raises(ConfirmationCodeExpiredException):
        await payment_service.confirm_payment(ConfirmPayment(
            transaction_id=pending.transaction_id, confirmation_code="ABC123",
        ))


@pytest.mark.asyncio
async def test_failed_debit_rolls_back_confirmation(payment_service, card_service, funded_card):
    pending = await payment_service.process_payment(_process(funded_card.id, amount="600"))
    # 处理之后余额被其他操作消耗
    await card_service.decrease_balance(funded_card.id, BalanceChangeDTO(amount=Decimal("500")))

    with pytest.raises(InsufficientFundsException):
        await payment_service.confirm_payment(ConfirmPayment(
            transaction_id=pending.transaction_id, confirmation_code="ABC123",
        ))

    tx = await payment_service.get_transaction(pending.transaction_id)
    assert tx.status == "Pending"
    assert tx.confirmed_at is None
    assert (await card_service.get_card(funded_card.id)).balance == Decimal("500.00")


@pytest.mark.asyncio
async def test_cancel_pending(payment_service, card_service, funded_card):
    pending = await payment_service.process_payment(_process(funded_card.id))

    result = await payment_service.cancel_payment(pending.transaction_id)

    assert result.status == "Canceled"
    assert result.balance == Decimal("1000.00")
    with pytest.raises(InvalidTransactionStateException):
        await payment_service.confirm_payment(ConfirmPayment(
            transaction_id=pending.transaction_id, confirmation_code="ABC123",
        ))
    with pytest.raises(InvalidTransactionStateException):
        await payment_service.cancel_payment(pending.transaction_id)


@pytest.mark.asyncio
async def test_return_refunds_amount_minus_fee(payment_service, card_service, funded_card):
    pending = await payment_service.process_payment(_process(funded_card.id, fee="30"))
    await payment_service.confirm_payment(ConfirmPayment(
        transaction_id=pending.transaction_id, confirmation_code="ABC123",
    ))

    result = await payment_service.return_payment(pending.transaction_id)

    assert result.status == "Returned"
    assert result.balance == Decimal("970.00")
    with pytest.raises(InvalidTransactionStateException):
        await payment_service.return_payment(pending.transaction_id)
    assert (await card_service.get_card(funded_card.id)).balance == Decimal("970.00")


@pytest.mark.asyncio
async def test_return_with_full_fee_credits_nothing(payment_service, funded_card):
    pending = await payment_service.process_payment(_process(funded_card.id, fee="100"))
    await payment_service.confirm_payment(ConfirmPayment(
        transaction_id=pending.transaction_id, confirmation_code="ABC123",
    ))

    result = await payment_service.return_payment(pending.transaction_id)

    assert result.status == "Returned"
    assert result.balance == Decimal("900.00")


@pytest.mark.asyncio
async def test_return_of_pending_rejected(payment_service, funded_card):
    pending = await payment_service.process_payment(_process(funded_card.id))
    with pytest.raises(InvalidTransactionStateException):
        await payment_service.return_payment(pending.transaction_id)


@pytest.mark.asyncio
async def test_process_validation(payment_service, funded_card):
    with pytest.raises(CardNotFoundException):
        await payment_service.process_payment(_process(999))
    with pytest.raises(InvalidAmountException):
        await payment_service.process_payment(_process(funded_card.id, amount="0"))
    with pytest.raises(DomainValidationException):
        await payment_service.process_payment(_process(funded_card.id, fee="100.01"))
    with pytest.raises(CurrencyMismatchException):
        await payment_service.process_payment(_process(funded_card.id, currency="EUR"))
    with pytest.raises(InsufficientFundsException):
        await payment_service.process_payment(_process(funded_card.id, amount="1000.01"))

    items, total = await payment_service.list_transactions(card_id=funded_card.id)
    assert total == 0
    assert items == []


@pytest.mark.asyncio
async def test_process_does_not_reserve_funds(payment_service, funded_card):
    first = await payment_service.process_payment(_process(funded_card.id, amount="800"))
    second = await payment_service.process_payment(_process(funded_card.id, amount="800"))
    await payment_service.confirm_payment(ConfirmPayment(
        transaction_id=first.transaction_id, confirmation_code="ABC123",
    ))

    with pytest.raises(InsufficientFundsException):
        await payment_service.confirm_payment(ConfirmPayment(
            transaction_id=second.transaction_id, confirmation_code="ABC123",
        ))


@pytest.mark.asyncio
async def test_unknown_transaction(payment_service):
    with pytest.raises(TransactionNotFoundException):
        await payment_service.cancel_payment(12345)
    with pytest.raises(TransactionNotFoundException):
        await payment_service.get_transaction(12345)


@pytest.mark.asyncio
async def test_list_transactions_filters(payment_service, funded_card):
    a = await payment_service.process_payment(_process(funded_card.id, amount="10"))
    await payment_service.process_payment(_process(funded_card.id, amount="20"))
    await payment_service.cancel_payment(a.transaction_id)

    items, total = await payment_service.list_transactions(
        card_id=funded_card.id, status=TransactionStatus.PENDING,
    )
    assert total == 1
    assert items[0].total_amount == Decimal("20.00")


@pytest.mark.asyncio
async def test_card_crud(card_service, funded_card):
    updated = await card_service.update_card(funded_card.id, CardUpdateDTO(card_name="Alice Smith"))
    assert updated.card_name == "Alice Smith"
    assert updated.balance == Decimal("1000.00")

    by_number = await card_service.get_card_by_number("4111111111111111")
    assert by_number.id == funded_card.id

    cards, total = await card_service.list_cards()
    assert total == 1

    await card_service.delete_card(funded_card.id)
    with pytest.raises(CardNotFoundException):
        await card_service.get_card(funded_card.id)


@pytest.mark.asyncio
async def test_delete_card_removes_its_transactions(card_service, payment_service, funded_card):
    pending = await payment_service.process_payment(_process(funded_card.id))

    await card_service.delete_card(funded_card.id)

    with pytest.raises(TransactionNotFoundException):
        await payment_service.get_transaction(pending.transaction_id)
