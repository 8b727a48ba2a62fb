from pydantic import BaseModel, Field
from storefront.cart.constants import MAX_LINE_QUANTITY


class CartItemInput(BaseModel):
    product_id: int
    quantity: int = Field(1, ge=1, le=MAX_LINE_QUANTITY)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1, le=MAX_LINE_QUANTITY)
