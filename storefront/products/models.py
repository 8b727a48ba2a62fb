from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


class ProductCreateIn(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: int = Field(..., ge=0, description="Price in kobo")
    stock_count: int = Field(0, ge=0)
    category: Optional[str] = Field(None, max_length=128)
    brand: Optional[str] = Field(None, max_length=128)
    image_url: Optional[str] = None


class ProductUpdateIn(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    price: Optional[int] = Field(None, ge=0)
    stock_count: Optional[int] = Field(None, ge=0)
    category: Optional[str] = Field(None, max_length=128)
    brand: Optional[str] = Field(None, max_length=128)
    image_url: Optional[str] = None

    model_config = ConfigDict(extra="forbid")   # unknown fields are a 422 at pydantic level


class ProductOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    price: int
    stock_count: int
    category: Optional[str] = None
    brand: Optional[str] = None
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductPage(BaseModel):
    items: List[ProductOut]
    page: int
    limit: int
    total: int
    total_pages: int


def product_out(product) -> dict:
    return ProductOut.model_validate(product).model_dump(mode="json")
