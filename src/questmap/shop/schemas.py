"""Pydantic models for shop, purchases and redemption."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ShopItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str = ""
    price: int
    image: str = ""
    stock: int


class BuyItemRequest(BaseModel):
    item_id: int = Field(gt=0)
    email: str = ""


class BuyItemResponse(BaseModel):
    purchase_id: str


class InventoryItemResponse(BaseModel):
    id: int
    item_id: int
    item_name: str
    purchase_id: str
    status: str
    purchased_at: datetime
    redeemed_at: datetime | None = None


class RedeemRequest(BaseModel):
    purchase_id: str = Field(min_length=1)


class RedeemResponse(BaseModel):
    success: bool = True
    item: str
    user: str
