from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel
from storefront.schema.full_schema import OrderStatus


class OrderStatusIn(BaseModel):
    status: OrderStatus


class OrderItemOut(BaseModel):
    id: int
    product_id: int
    quantity: int
    price_at_order: int
    product_name: Optional[str] = None


class OrderOut(BaseModel):
    id: int
    user_id: int
    total_amount: int
    status: str
    created_at: Optional[datetime] = None
    items: List[OrderItemOut] = []


class PlacedOrderOut(BaseModel):
    order_id: int
    total_amount: int
    status: str
    email: str
