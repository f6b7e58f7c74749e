"""领域层业务异常定义，供领域与基础设施使用。

核心（core）层仅负责全局映射与异常处理，尽量避免领域层反向依赖核心层。
每一种业务失败对应一个异常类型，调用方按类型区分处理。
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class BusinessException(Exception):
    """业务异常基类"""

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="ValidationError",
            details=details,
            field=field,
        )


class CardNotFoundException(BusinessException):
    def __init__(self, card_id: Optional[int] = None, *, card_number: Optional[str] = None):
        details = {}
        if card_id is not None:
            details["card_id"] = card_id
        if card_number is not None:
            details["card_number"] = card_number
        super().__init__(
            code=PaymentCode.CARD_NOT_FOUND,
            message="Card not found",
            error_type="CardNotFound",
            details=details or None,
        )


class CardNumberAlreadyExistsException(BusinessException):
    def __init__(self, card_number: str):
        super().__init__(
            code=PaymentCode.CARD_NUMBER_EXISTS,
            message="Card number already registered",
            error_type="CardNumberAlreadyExists",
            field="card_number",
        )


class TransactionNotFoundException(BusinessException):
    def __init__(self, transaction_id: Optional[int] = None):
        details = {"transaction_id": transaction_id} if transaction_id is not None else None
        super().__init__(
            code=PaymentCode.TRANSACTION_NOT_FOUND,
            message="Transaction not found",
            error_type="TransactionNotFound",
            details=details,
        )


class InvalidAmountException(BusinessException):
    def __init__(self, amount: Decimal, *, field: str = "amount"):
        super().__init__(
            code=PaymentCode.INVALID_AMOUNT,
            message="Amount should be greater than 0",
            error_type="InvalidAmount",
            details={"amount": str(amount)},
            field=field,
        )


class InsufficientFundsException(BusinessException):
    def __init__(self, card_id: int, balance: Decimal, required: Decimal):
        super().__init__(
            code=PaymentCode.INSUFFICIENT_FUNDS,
            message="Insufficient funds",
            error_type="InsufficientFunds",
            details={
                "card_id": card_id,
                "balance": str(balance),
                "required": str(required),
            },
        )


class CurrencyMismatchException(BusinessException):
    def __init__(self, card_currency: str, currency: str):
        super().__init__(
            code=PaymentCode.CURRENCY_MISMATCH,
            message="Currency mismatch",
            error_type="CurrencyMismatch",
            details={"card_currency": card_currency, "currency": currency},
            field="currency",
        )


class InvalidTransactionStateException(BusinessException):
    def __init__(self, transaction_id: Optional[int], status: str, target: str):
        super().__init__(
            code=PaymentCode.INVALID_TRANSACTION_STATE,
            message=f"Transaction in status {status} cannot become {target}",
            error_type="InvalidTransactionState",
            details={
                "transaction_id": transaction_id,
                "status": status,
                "target": target,
            },
        )


class ConfirmationCodeExpiredException(BusinessException):
    def __init__(self, transaction_id: Optional[int]):
        super().__init__(
            code=PaymentCode.CONFIRMATION_CODE_EXPIRED,
            message="Confirmation code expired",
            error_type="ConfirmationCodeExpired",
            details={"transaction_id": transaction_id},
        )


class ConfirmationCodeMismatchException(BusinessException):
    def __init__(self, transaction_id: Optional[int]):
        super().__init__(
            code=PaymentCode.CONFIRMATION_CODE_MISMATCH,
            message="Invalid confirmation code",
            error_type="ConfirmationCodeMismatch",
            details={"transaction_id": transaction_id},
            field="confirmation_code",
        )


class ConcurrencyConflictException(BusinessException):
    def __init__(self, entity: str, entity_id: Optional[int]):
        super().__init__(
            code=PaymentCode.CONCURRENCY_CONFLICT,
            message=f"Concurrent modification of {entity}, please retry",
            error_type="ConcurrencyConflict",
            details={"entity": entity, "id": entity_id},
        )
