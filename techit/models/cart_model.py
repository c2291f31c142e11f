from datetime import datetime, timezone
from typing import List

from bson import ObjectId
from pydantic import BaseModel, Field


class CartItemModel(BaseModel):
    productId: ObjectId
    quantity: int = Field(default=1, ge=1)

    class Config:
        arbitrary_types_allowed = True


class CartModel(BaseModel):
    userId: ObjectId
    products: List[CartItemModel] = []
    active: bool = Field(default=True)
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updatedAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        arbitrary_types_allowed = True


class AddToCartModel(BaseModel):
    productId: str


class QuantityModel(BaseModel):
    quantity: int = Field(..., ge=0)
