from datetime import datetime, timezone

from bson import ObjectId
from pydantic import BaseModel, Field


class FavoriteModel(BaseModel):
    userId: ObjectId
    productId: ObjectId
    createdAt: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Config:
        arbitrary_types_allowed = True


class FavoriteRequestModel(BaseModel):
    productId: str = Field(..., min_length=1)
