"""Shop API endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from questmap.auth.dependencies import get_current_user
from questmap.db.models import User
from questmap.dependencies import get_economy
from questmap.shop.economy import EconomyEngine
from questmap.shop.schemas import BuyItemRequest, BuyItemResponse, ShopItemResponse

router = APIRouter(prefix="/api/shop", tags=["Shop"])


@router.get("/items", response_model=list[ShopItemResponse])
async def list_items(economy: EconomyEngine = Depends(get_economy)) -> list[ShopItemResponse]:
    """Public catalogue."""
    items = await economy.list_items()
    return [ShopItemResponse.model_validate(item) for item in items]


@router.post("/buy", response_model=BuyItemResponse)
async def buy_item(
    body: BuyItemRequest,
    user: User = Depends(get_current_user),
    economy: EconomyEngine = Depends(get_economy),
) -> BuyItemResponse:
    """Spend points on an item. Returns the token used for redemption."""
    purchase_id = await economy.buy(user.id, body.item_id, body.email)
    return BuyItemResponse(purchase_id=purchase_id)
