"""
Card ledger and payment lifecycle codes.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Not found (61xxx)
    CARD_NOT_FOUND = 61000
    TRANSACTION_NOT_FOUND = 61001

    # Card ledger (62xxx)
    INVALID_AMOUNT = 62000
    INSUFFICIENT_FUNDS = 62001
    CARD_NUMBER_EXISTS = 62002
    CONCURRENCY_CONFLICT = 62003

    # Payment lifecycle (63xxx)
    CURRENCY_MISMATCH = 63000
    INVALID_TRANSACTION_STATE = 63001
    CONFIRMATION_CODE_EXPIRED = 63002
    CONFIRMATION_CODE_MISMATCH = 63003


# 非 4xx 默认(400)的业务码 → HTTP 状态码
PAYMENT_CODE_TO_HTTP_STATUS = {
    PaymentCode.CARD_NOT_FOUND: 404,
    PaymentCode.TRANSACTION_NOT_FOUND: 404,
    PaymentCode.CARD_NUMBER_EXISTS: 409,
    PaymentCode.CONCURRENCY_CONFLICT: 409,
}
