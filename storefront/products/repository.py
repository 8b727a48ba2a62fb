import math
from typing import List, Optional, Tuple
from sqlalchemy import delete, desc, func, select, update
from storefront.cart.repository import purge_product_from_carts
from storefront.common.custom_exceptions import NotFound
from storefront.common.utils import now
from storefront.products.constants import logger
from storefront.schema.full_schema import OrderItem, Product


def _listing_filters(category: Optional[str], brand: Optional[str], max_price: Optional[int]):
    conds = []
    if category:
        conds.append(Product.category == category)
    if brand:
        conds.append(Product.brand == brand)
    if max_price is not None:
        conds.append(Product.price <= max_price)
    return conds


async def fetch_prods(session, page: int, limit: int, category=None, brand=None, max_price=None) -> Tuple[List[Product], int]:
    conds = _listing_filters(category, brand, max_price)

    count_stmt = select(func.count()).select_from(Product).where(*conds)
    total = (await session.execute(count_stmt)).scalar_one()

    # ordering: newest first
    stmt = (
        select(Product)
        .where(*conds)
        .order_by(desc(Product.created_at), desc(Product.id))
        .offset((page - 1) * limit)
        .limit(limit)
    )
    res = await session.execute(stmt)
    return list(res.scalars().all()), int(total)


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if total else 0


async def find_product(session, product_id: int) -> Product:
    res = await session.execute(select(Product).where(Product.id == product_id))
    product = res.scalar_one_or_none()
    if not product:
        logger.warning("product.not_found", extra={"product_id": product_id})
        raise NotFound("Product not found")
    return product


async def create_product(session, values: dict) -> Product:
    product = Product(**values)
    session.add(product)
    await session.flush()
    await session.refresh(product)
    return product


async def patch_product(session, product_id: int, updates: dict) -> Product:
    if not updates:
        return await find_product(session, product_id)

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(**updates, updated_at=now())
        .returning(Product)
    )
    res = await session.execute(stmt)
    product = res.scalar_one_or_none()
    if not product:
        raise NotFound("Product not found")
    return product


async def delete_product_cascade(session, product_id: int) -> dict:
    """Cart lines and order lines referencing the product go first, then the product row."""
    await find_product(session, product_id)

    cart_ids = await purge_product_from_carts(session, product_id)
    res = await session.execute(delete(OrderItem).where(OrderItem.product_id == product_id).returning(OrderItem.id))
    order_item_ids = list(res.scalars().all())
    await session.execute(delete(Product).where(Product.id == product_id))

    return {"carts_touched": len(cart_ids), "order_items_removed": len(order_item_ids)}


async def low_stock_products(session, threshold: int) -> List[Product]:
    stmt = select(Product).where(Product.stock_count < threshold).order_by(Product.stock_count, Product.id)
    res = await session.execute(stmt)
    return list(res.scalars().all())


async def decrement_stock(session, product_id: int, quantity: int) -> Optional[int]:
    """
    stock_count -= quantity only while enough is left; otherwise clamp to 0.
    stock_count never goes negative. Returns the resulting stock or None for a missing product.
    """
    stmt = (
        update(Product)
        .where(Product.id == product_id, Product.stock_count >= quantity)
        .values(stock_count=Product.stock_count - quantity, updated_at=now())
        .returning(Product.stock_count)
    )
    res = await session.execute(stmt)
    remaining = res.scalar_one_or_none()
    if remaining is not None:
        return remaining

    stmt = (
        update(Product)
        .where(Product.id == product_id)
        .values(stock_count=0, updated_at=now())
        .returning(Product.id)
    )
    res = await session.execute(stmt)
    if res.scalar_one_or_none() is None:
        logger.warning("product.stock.missing_product", extra={"product_id": product_id})
        return None

    logger.warning("product.stock.clamped", extra={"product_id": product_id, "requested": quantity})
    return 0
