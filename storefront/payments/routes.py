from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.auth.dependencies import get_current_user
from storefront.auth.models import CurrentUser
from storefront.common.custom_exceptions import Conflict
from storefront.common.utils import success_response
from storefront.config.settings import config_settings
from storefront.db.dependencies import get_mailer, get_payment_gateway, get_session
from storefront.orders.repository import get_user_order
from storefront.payments.constants import logger
from storefront.payments.gateway import new_reference
from storefront.payments.models import PaymentInitIn, PaymentInitOut
from storefront.payments.services import handle_paystack_event, verify_paystack_signature
from storefront.schema.full_schema import OrderStatus

payments_router = APIRouter()


@payments_router.post("/initiate")
async def initiate_payment(payload: PaymentInitIn, current_user: CurrentUser = Depends(get_current_user),
                           session: AsyncSession = Depends(get_session), gateway=Depends(get_payment_gateway)):

    order = await get_user_order(session, current_user.id, payload.order_id)
    if order.status != OrderStatus.PENDING.value:
        raise Conflict(f"Order is already {order.status}")

    reference = new_reference(order.id)
    logger.info("payments.initiate.attempt", extra={"order_id": order.id, "reference": reference})

    data = await gateway.initialize_transaction(
        email=current_user.email,
        amount=order.total_amount,
        reference=reference,
        metadata={"order_id": order.id},
        callback_url=config_settings.PAYSTACK_CALLBACK_URL,
    )

    out = PaymentInitOut(
        authorization_url=data["authorization_url"],
        access_code=data.get("access_code"),
        reference=data.get("reference") or reference,
        order_id=order.id,
        amount=order.total_amount,
    )
    logger.info("payments.initiate.success", extra={"order_id": order.id, "reference": out.reference})
    return success_response(out.model_dump())


# mounted with app.add_api_route at PAYSTACK_WEBHOOK_PATH, outside bearer auth
async def paystack_webhook(request: Request, background_tasks: BackgroundTasks,
                           session: AsyncSession = Depends(get_session), mailer=Depends(get_mailer)):
    body = await request.body()
    verify_paystack_signature(request, body)
    return await handle_paystack_event(body, session, background_tasks, mailer)
