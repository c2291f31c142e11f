from typing import Optional

from pydantic import BaseModel, Field, HttpUrl

from techit.core.config import DEFAULT_PRODUCT_IMAGE


class ProductModel(BaseModel):
    name: str = Field(..., min_length=2)
    price: float
    category: str = Field(..., min_length=2)
    description: str = Field(..., min_length=2)
    image: HttpUrl = Field(default=DEFAULT_PRODUCT_IMAGE)
    available: bool = Field(default=True)
    quantity: int = Field(default=5)

    class Config:
        # clients echo back "_id" and "__v" when editing a product
        extra = "ignore"

    def to_document(self) -> dict:
        document = self.model_dump()
        document["image"] = str(self.image)
        return document


class ProductPatchModel(BaseModel):
    name: Optional[str] = None
    price: Optional[float] = None
    category: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    available: Optional[bool] = None
    quantity: Optional[int] = None

    class Config:
        extra = "ignore"
