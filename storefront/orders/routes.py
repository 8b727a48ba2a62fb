from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.auth.dependencies import get_current_user, require_admin
from storefront.auth.models import CurrentUser
from storefront.common.utils import success_response
from storefront.db.dependencies import get_session
from storefront.orders.constants import logger
from storefront.orders.models import OrderStatusIn, PlacedOrderOut
from storefront.orders.repository import get_user_order, list_orders, order_detail, place_order, set_order_status
from storefront.schema.full_schema import OrderStatus

orders_router = APIRouter()
orders_admin_router = APIRouter()


@orders_router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(current_user: CurrentUser = Depends(get_current_user), session: AsyncSession = Depends(get_session)):

    order = await place_order(session, current_user.id)
    await session.commit()

    logger.info("order.placed", extra={"order_id": order.id, "user_id": current_user.id, "total_amount": order.total_amount})
    out = PlacedOrderOut(order_id=order.id, total_amount=order.total_amount, status=order.status, email=current_user.email)
    return success_response(out.model_dump(), status_code=status.HTTP_201_CREATED)


@orders_router.get("")
async def get_orders(current_user: CurrentUser = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    orders = await list_orders(session, user_id=current_user.id)
    return success_response({"items": orders})


# declared before /{order_id} so "history" is not parsed as an id
@orders_router.get("/history")
async def get_order_history(current_user: CurrentUser = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    orders = await list_orders(session, user_id=current_user.id, status=OrderStatus.PAID.value)
    return success_response({"items": orders})


@orders_router.get("/{order_id}")
async def get_order(order_id: int, current_user: CurrentUser = Depends(get_current_user),
                    session: AsyncSession = Depends(get_session)):
    order = await get_user_order(session, current_user.id, order_id)
    return success_response(await order_detail(session, order))


@orders_router.put("/{order_id}/status")
async def update_order_status(order_id: int, payload: OrderStatusIn, admin: CurrentUser = Depends(require_admin),
                              session: AsyncSession = Depends(get_session)):

    order = await set_order_status(session, order_id, payload.status.value)
    await session.commit()

    logger.info("order.status.override", extra={"order_id": order_id, "status": payload.status.value, "admin_id": admin.id})
    return success_response(await order_detail(session, order))


@orders_admin_router.get("/orders")
async def admin_list_orders(admin: CurrentUser = Depends(require_admin), session: AsyncSession = Depends(get_session)):
    orders = await list_orders(session)
    return success_response({"items": orders, "total": len(orders)})
