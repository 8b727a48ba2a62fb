from typing import Any, Dict, List, Optional
from sqlalchemy import insert, select, update
from storefront.common.custom_exceptions import EmptyCart, NotFound
from storefront.common.utils import now
from storefront.orders.constants import logger
from storefront.orders.models import OrderItemOut, OrderOut
from storefront.schema.full_schema import Cart, CartItem, OrderItem, Orders, OrderStatus, Product


async def capture_cart_snapshot(session, user_id: int) -> List[Dict[str, Any]]:
    """Cart lines of the user joined with the product price at this instant."""
    stmt = (
        select(CartItem.product_id, CartItem.quantity, Product.price)
        .join(Cart, Cart.id == CartItem.cart_id)
        .join(Product, Product.id == CartItem.product_id)
        .where(Cart.user_id == user_id)
        .order_by(CartItem.id)
    )
    res = await session.execute(stmt)
    return [
        {"product_id": int(r.product_id), "quantity": int(r.quantity), "price": int(r.price)}
        for r in res.all()
    ]


async def place_order(session, user_id: int) -> Orders:
    """Snapshot the cart into a pending order; the cart itself is left untouched."""
    items = await capture_cart_snapshot(session, user_id)
    if not items:
        logger.warning("order.place.empty_cart", extra={"user_id": user_id})
        raise EmptyCart()

    total = sum(it["price"] * it["quantity"] for it in items)

    order = Orders(user_id=user_id, total_amount=total, status=OrderStatus.PENDING.value)
    session.add(order)
    await session.flush()

    await session.execute(
        insert(OrderItem),
        [
            {
                "order_id": order.id,
                "product_id": it["product_id"],
                "quantity": it["quantity"],
                "price_at_order": it["price"],
            }
            for it in items
        ],
    )
    return order


async def _items_by_order(session, order_ids: List[int]) -> Dict[int, List[OrderItemOut]]:
    if not order_ids:
        return {}
    stmt = (
        select(OrderItem.id, OrderItem.order_id, OrderItem.product_id, OrderItem.quantity,
               OrderItem.price_at_order, Product.name)
        .outerjoin(Product, Product.id == OrderItem.product_id)
        .where(OrderItem.order_id.in_(order_ids))
        .order_by(OrderItem.id)
    )
    res = await session.execute(stmt)
    grouped: Dict[int, List[OrderItemOut]] = {oid: [] for oid in order_ids}
    for r in res.all():
        grouped[r.order_id].append(OrderItemOut(
            id=r.id, product_id=r.product_id, quantity=r.quantity,
            price_at_order=r.price_at_order, product_name=r.name,
        ))
    return grouped


async def _orders_out(session, orders: List[Orders]) -> List[dict]:
    items = await _items_by_order(session, [o.id for o in orders])
    return [
        OrderOut(
            id=o.id, user_id=o.user_id, total_amount=o.total_amount, status=o.status,
            created_at=o.created_at, items=items.get(o.id, []),
        ).model_dump(mode="json")
        for o in orders
    ]


async def list_orders(session, user_id: Optional[int] = None, status: Optional[str] = None) -> List[dict]:
    """Newest first; user_id=None lists every order (admin view)."""
    stmt = select(Orders)
    if user_id is not None:
        stmt = stmt.where(Orders.user_id == user_id)
    if status is not None:
        stmt = stmt.where(Orders.status == status)
    stmt = stmt.order_by(Orders.created_at.desc(), Orders.id.desc())
    res = await session.execute(stmt)
    return await _orders_out(session, list(res.scalars().all()))


async def get_user_order(session, user_id: int, order_id: int) -> Orders:
    """Scoped to the owner; someone else's order is indistinguishable from a missing one."""
    stmt = select(Orders).where(Orders.id == order_id, Orders.user_id == user_id)
    res = await session.execute(stmt)
    order = res.scalar_one_or_none()
    if not order:
        raise NotFound("Order not found")
    return order


async def order_detail(session, order: Orders) -> dict:
    return (await _orders_out(session, [order]))[0]


async def transition_order_status(session, order_id: int, user_id: int, new_status: str) -> Optional[int]:
    """
    pending -> new_status as one conditional update.
    Returns the order id when this call performed the transition, None when the
    order was no longer pending (already processed by a concurrent or earlier delivery).
    """
    stmt = (
        update(Orders)
        .where(
            Orders.id == order_id,
            Orders.user_id == user_id,
            Orders.status == OrderStatus.PENDING.value,
        )
        .values(status=new_status, updated_at=now())
        .returning(Orders.id)
        .execution_options(synchronize_session=False)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def set_order_status(session, order_id: int, new_status: str) -> Orders:
    """Privileged override, no state machine check."""
    stmt = (
        update(Orders)
        .where(Orders.id == order_id)
        .values(status=new_status, updated_at=now())
        .returning(Orders)
    )
    res = await session.execute(stmt)
    order = res.scalar_one_or_none()
    if not order:
        raise NotFound("Order not found")
    return order


async def order_items_pid_qty(session, order_id: int) -> List[Dict[str, int]]:
    stmt = select(OrderItem.product_id, OrderItem.quantity).where(OrderItem.order_id == order_id).order_by(OrderItem.id)
    res = await session.execute(stmt)
    return [{"product_id": int(r.product_id), "quantity": int(r.quantity)} for r in res.all()]
