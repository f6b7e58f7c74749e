"""
卡片API路由 - FastAPI表现层
"""
from typing import Any

from fastapi import APIRouter, Depends, Path, status

from application.services.card_service import CardApplicationService
from application.dto import (
    BalanceChangeDTO,
    CardCreateDTO,
    CardResponseDTO,
    CardUpdateDTO,
)
from api.dependencies import PaginationParams, get_card_service
from core.response import success_response, paginated_response, Response as ApiResponse, PaginatedData

router = APIRouter(
    prefix="/cards",
    tags=["卡片管理"]
)


@router.get(
    "",
    summary="获取卡片列表",
    response_model=ApiResponse[PaginatedData[CardResponseDTO]],
)
async def list_cards(
    params: PaginationParams = Depends(),
    service: CardApplicationService = Depends(get_card_service),
):
    cards, total = await service.list_cards(params.skip, params.limit)
    return paginated_response(
        items=cards,
        total=total,
        page=params.page,
        size=params.size,
    )


@router.get(
    "/by-number/{card_number}",
    summary="按卡号查询卡片",
    response_model=ApiResponse[CardResponseDTO],
)
async def get_card_by_number(
    card_number: str = Path(..., pattern=r"^\d{12,19}$"),
    service: CardApplicationService = Depends(get_card_service),
):
    card = await service.get_card_by_number(card_number)
    return success_response(data=card)


@router.get("/{card_id}", summary="获取卡片详情", response_model=ApiResponse[CardResponseDTO])
async def get_card(
    card_id: int,
    service: CardApplicationService = Depends(get_card_service),
):
    card = await service.get_card(card_id)
    return success_response(data=card)


@router.post(
    "",
    summary="创建卡片",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[CardResponseDTO],
)
async def create_card(
    card_data: CardCreateDTO,
    service: CardApplicationService = Depends(get_card_service),
):
    """
    创建新卡片

    - **card_number**: 卡号（12-19位数字，唯一）
    - **card_name**: 持卡人/卡片名称
    - **expiration_date**: 有效期
    - **cvv**: 安全码（不会在响应中返回）
    - **currency_type**: 货币代码，如 USD

    新卡余额总是0，请求体中的 balance 会被忽略。
    """
    card = await service.create_card(card_data)
    return success_response(data=card, message="Card created")


@router.put("/{card_id}", summary="更新卡片信息", response_model=ApiResponse[CardResponseDTO])
async def update_card(
    card_id: int,
    update_data: CardUpdateDTO,
    service: CardApplicationService = Depends(get_card_service),
):
    """更新卡片名称、有效期、CVV；余额只能通过余额接口或支付流程变更"""
    card = await service.update_card(card_id, update_data)
    return success_response(data=card, message="Card updated")


@router.delete("/{card_id}", summary="删除卡片", response_model=ApiResponse[Any])
async def delete_card(
    card_id: int,
    service: CardApplicationService = Depends(get_card_service),
):
    await service.delete_card(card_id)
    return success_response(data=None, message="Card deleted")


@router.post(
    "/{card_id}/increase-balance",
    summary="增加余额",
    response_model=ApiResponse[CardResponseDTO],
)
async def increase_balance(
    card_id: int,
    change: BalanceChangeDTO,
    service: CardApplicationService = Depends(get_card_service),
):
    card = await service.increase_balance(card_id, change)
    return success_response(data=card, message="Balance increased")


@router.post(
    "/{card_id}/decrease-balance",
    summary="扣减余额",
    response_model=ApiResponse[CardResponseDTO],
)
async def decrease_balance(
    card_id: int,
    change: BalanceChangeDTO,
    service: CardApplicationService = Depends(get_card_service),
):
    card = await service.decrease_balance(card_id, change)
    return success_response(data=card, message="Balance decreased")
