from typing import List, Optional
from sqlalchemy import delete, func, select, update
from storefront.cart.constants import logger
from storefront.common.custom_exceptions import InsufficientStock, NotFound
from storefront.common.utils import now
from storefront.db.utils import dialect_insert
from storefront.schema.full_schema import Cart, CartItem, Product


async def get_or_create_cart(session, user_id: int) -> int:
    """
    At most one cart per user: the unique user_id constraint decides the winner,
    a losing concurrent insert falls through to reading the surviving row.
    """
    ts = now()
    ins = (
        dialect_insert(session, Cart)
        .values(user_id=user_id, grand_total=0, created_at=ts, updated_at=ts)
        .on_conflict_do_nothing(index_elements=["user_id"])
        .returning(Cart.__table__.c.id)
    )
    res = await session.execute(ins)
    cart_id = res.scalar_one_or_none()
    if cart_id is not None:
        logger.info("cart.created", extra={"user_id": user_id, "cart_id": cart_id})
        return cart_id

    res = await session.execute(select(Cart.id).where(Cart.user_id == user_id))
    return res.scalar_one()


async def get_cart_row(session, cart_id: int) -> Cart:
    res = await session.execute(select(Cart).where(Cart.id == cart_id))
    return res.scalar_one()


async def get_product_data(session, product_id: int) -> dict:
    stmt = select(Product.id, Product.price, Product.stock_count).where(Product.id == product_id)
    res = await session.execute(stmt)
    row = res.one_or_none()
    if not row:
        logger.warning("cart.product_not_found", extra={"product_id": product_id})
        raise NotFound("Product not found")
    return {"id": row[0], "price": row[1], "stock_count": row[2]}


def ensure_stock(product_data: dict, quantity: int):
    if quantity > product_data["stock_count"]:
        logger.warning("cart.insufficient_stock", extra={
            "product_id": product_data["id"],
            "requested": quantity,
            "available": product_data["stock_count"],
        })
        raise InsufficientStock(f"Only {product_data['stock_count']} left in stock")


async def add_item_to_cart(session, cart_id: int, product_data: dict, quantity: int) -> int:
    """Insert a line or grow the existing line for the same product; returns the cart item id."""
    res = await session.execute(
        select(CartItem.quantity).where(CartItem.cart_id == cart_id, CartItem.product_id == product_data["id"])
    )
    existing_qty = res.scalar_one_or_none() or 0
    ensure_stock(product_data, existing_qty + quantity)

    items = CartItem.__table__
    ins = dialect_insert(session, CartItem).values(
        cart_id=cart_id,
        product_id=product_data["id"],
        quantity=quantity,
        created_at=now(),
    )
    ins = ins.on_conflict_do_update(
        index_elements=["cart_id", "product_id"],
        set_={"quantity": items.c.quantity + ins.excluded.quantity},
    ).returning(items.c.id)
    res = await session.execute(ins)
    return res.scalar_one()


async def get_item_in_cart(session, cart_id: int, item_id: int) -> CartItem:
    stmt = select(CartItem).where(CartItem.id == item_id, CartItem.cart_id == cart_id)
    res = await session.execute(stmt)
    item = res.scalar_one_or_none()
    if not item:
        raise NotFound("Cart item not found")
    return item


async def update_item_quantity(session, cart_id: int, item_id: int, quantity: int) -> int:
    item = await get_item_in_cart(session, cart_id, item_id)
    product_data = await get_product_data(session, item.product_id)
    ensure_stock(product_data, quantity)

    stmt = (
        update(CartItem)
        .where(CartItem.id == item_id, CartItem.cart_id == cart_id)
        .values(quantity=quantity)
        .returning(CartItem.id)
    )
    res = await session.execute(stmt)
    return res.scalar_one()


async def remove_item(session, cart_id: int, item_id: int) -> int:
    stmt = delete(CartItem).where(CartItem.id == item_id, CartItem.cart_id == cart_id).returning(CartItem.id)
    res = await session.execute(stmt)
    deleted = res.scalar_one_or_none()
    if deleted is None:
        raise NotFound("Cart item not found")
    return deleted


async def recompute_grand_total(session, cart_id: int) -> int:
    """grand_total = sum(quantity * live price) over the cart's current lines."""
    stmt = (
        select(func.coalesce(func.sum(CartItem.quantity * Product.price), 0))
        .select_from(CartItem)
        .join(Product, Product.id == CartItem.product_id)
        .where(CartItem.cart_id == cart_id)
    )
    res = await session.execute(stmt)
    total = int(res.scalar_one())

    await session.execute(
        update(Cart).where(Cart.id == cart_id).values(grand_total=total, updated_at=now())
    )
    return total


async def cart_lines(session, cart_id: int) -> List[dict]:
    """Cart items joined with live product data, each carrying its line total."""
    stmt = (
        select(
            CartItem.id, CartItem.product_id, CartItem.quantity,
            Product.name, Product.price, Product.stock_count, Product.image_url,
        )
        .join(Product, Product.id == CartItem.product_id)
        .where(CartItem.cart_id == cart_id)
        .order_by(CartItem.created_at, CartItem.id)
    )
    res = await session.execute(stmt)
    return [
        {
            "id": row.id,
            "product_id": row.product_id,
            "name": row.name,
            "price": row.price,
            "quantity": row.quantity,
            "stock_count": row.stock_count,
            "image_url": row.image_url,
            "total_price": row.quantity * row.price,
        }
        for row in res.all()
    ]


async def cart_line(session, cart_id: int, item_id: int) -> Optional[dict]:
    for line in await cart_lines(session, cart_id):
        if line["id"] == item_id:
            return line
    return None


async def clear_cart(session, user_id: int) -> Optional[int]:
    """Drop every line of the user's cart and reset the stored total to 0."""
    res = await session.execute(select(Cart.id).where(Cart.user_id == user_id))
    cart_id = res.scalar_one_or_none()
    if cart_id is None:
        return None

    await session.execute(delete(CartItem).where(CartItem.cart_id == cart_id))
    await session.execute(update(Cart).where(Cart.id == cart_id).values(grand_total=0, updated_at=now()))
    return cart_id


async def purge_product_from_carts(session, product_id: int) -> List[int]:
    """Remove a product from every cart and recompute the totals of the carts it was in."""
    res = await session.execute(
        delete(CartItem).where(CartItem.product_id == product_id).returning(CartItem.cart_id)
    )
    cart_ids = sorted(set(res.scalars().all()))
    for cart_id in cart_ids:
        await recompute_grand_total(session, cart_id)
    return cart_ids
