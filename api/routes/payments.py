"""
Payments API routes.

Thin layer over the payment orchestrator: process, confirm, cancel, return.
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from application.services.payment_service import PaymentApplicationService
from application.dtos.payments import (
    ConfirmPayment,
    PaymentConfirmation,
    PaymentResult,
    ProcessPayment,
)
from api.dependencies import get_payment_service
from core.response import success_response, Response as ApiResponse


router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post("/process", response_model=ApiResponse[PaymentConfirmation])
async def process_payment(
    body: ProcessPayment,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    """Create a Pending transaction; the card is not debited until confirm."""
    result = await service.process_payment(body)
    return success_response(data=result, message="Payment pending confirmation")


@router.post("/confirm", response_model=ApiResponse[PaymentResult])
async def confirm_payment(
    body: ConfirmPayment,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    result = await service.confirm_payment(body)
    return success_response(data=result, message="Payment confirmed")


@router.post("/cancel/{transaction_id}", response_model=ApiResponse[PaymentResult])
async def cancel_payment(
    transaction_id: int,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    result = await service.cancel_payment(transaction_id)
    return success_response(data=result, message="Payment canceled")


@router.post("/return/{transaction_id}", response_model=ApiResponse[PaymentResult])
async def return_payment(
    transaction_id: int,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    result = await service.return_payment(transaction_id)
    return success_response(data=result, message="Payment returned")
