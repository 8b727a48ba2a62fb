from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.auth.dependencies import get_current_user
from storefront.auth.models import CurrentUser
from storefront.cart.constants import logger
from storefront.cart.models import CartItemInput, CartItemUpdate
from storefront.cart.repository import (
    add_item_to_cart, cart_line, cart_lines, get_cart_row, get_or_create_cart,
    get_product_data, recompute_grand_total, remove_item, update_item_quantity,
)
from storefront.common.utils import success_response
from storefront.db.dependencies import get_session

carts_router = APIRouter()


@carts_router.get("")
async def get_cart(current_user: CurrentUser = Depends(get_current_user), session: AsyncSession = Depends(get_session)):
    cart_id = await get_or_create_cart(session, current_user.id)
    await session.commit()

    cart = await get_cart_row(session, cart_id)
    items = await cart_lines(session, cart_id)
    return success_response({"cart_id": cart_id, "items": items, "grand_total": cart.grand_total})


@carts_router.post("", status_code=status.HTTP_201_CREATED)
async def add_to_cart(payload: CartItemInput, current_user: CurrentUser = Depends(get_current_user),
                      session: AsyncSession = Depends(get_session)):

    product_data = await get_product_data(session, payload.product_id)
    cart_id = await get_or_create_cart(session, current_user.id)

    item_id = await add_item_to_cart(session, cart_id, product_data, payload.quantity)
    grand_total = await recompute_grand_total(session, cart_id)
    await session.commit()

    logger.info("cart.item.added", extra={
        "user_id": current_user.id, "product_id": payload.product_id, "quantity": payload.quantity,
    })
    item = await cart_line(session, cart_id, item_id)
    return success_response({"cart_id": cart_id, "item": item, "grand_total": grand_total}, 201)


@carts_router.put("/{item_id}")
async def update_cart_item(item_id: int, payload: CartItemUpdate, current_user: CurrentUser = Depends(get_current_user),
                           session: AsyncSession = Depends(get_session)):

    cart_id = await get_or_create_cart(session, current_user.id)
    await update_item_quantity(session, cart_id, item_id, payload.quantity)
    grand_total = await recompute_grand_total(session, cart_id)
    await session.commit()

    item = await cart_line(session, cart_id, item_id)
    return success_response({"cart_id": cart_id, "item": item, "grand_total": grand_total})


@carts_router.delete("/{item_id}")
async def delete_cart_item(item_id: int, current_user: CurrentUser = Depends(get_current_user),
                           session: AsyncSession = Depends(get_session)):

    cart_id = await get_or_create_cart(session, current_user.id)
    await remove_item(session, cart_id, item_id)
    grand_total = await recompute_grand_total(session, cart_id)
    await session.commit()

    logger.info("cart.item.removed", extra={"user_id": current_user.id, "item_id": item_id})
    return success_response({"cart_id": cart_id, "removed_item_id": item_id, "grand_total": grand_total})
