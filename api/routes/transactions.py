"""
交易查询API路由
"""
from typing import Optional

from fastapi import APIRouter, Depends, Query

from application.services.payment_service import PaymentApplicationService
from application.dto import TransactionResponseDTO
from api.dependencies import PaginationParams, get_payment_service
from core.response import success_response, paginated_response, Response as ApiResponse, PaginatedData
from domain.transaction.entity import TransactionStatus

router = APIRouter(
    prefix="/transactions",
    tags=["交易查询"]
)


@router.get(
    "",
    summary="获取交易列表",
    response_model=ApiResponse[PaginatedData[TransactionResponseDTO]],
)
async def list_transactions(
    params: PaginationParams = Depends(),
    card_id: Optional[int] = Query(None, description="按卡片筛选"),
    status: Optional[TransactionStatus] = Query(None, description="按状态筛选"),
    service: PaymentApplicationService = Depends(get_payment_service),
):
    """按交易时间倒序返回，确认码不会出现在响应中"""
    items, total = await service.list_transactions(card_id, status, params.skip, params.limit)
    return paginated_response(
        items=items,
        total=total,
        page=params.page,
        size=params.size,
    )


@router.get(
    "/{transaction_id}",
    summary="获取交易详情",
    response_model=ApiResponse[TransactionResponseDTO],
)
async def get_transaction(
    transaction_id: int,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    transaction = await service.get_transaction(transaction_id)
    return success_response(data=transaction)
