import hashlib
import hmac
from typing import Awaitable, Callable, List, Optional
from fastapi import BackgroundTasks, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from storefront.auth.repository import user_by_email
from storefront.cart.repository import clear_cart
from storefront.common.custom_exceptions import BadRequest, NotFound, Unauthorized
from storefront.config.settings import config_settings
from storefront.notifications.mailer import dispatch_email
from storefront.notifications.templates import payment_confirmation_email, payment_failed_email
from storefront.orders.repository import get_user_order, order_detail, order_items_pid_qty, transition_order_status
from storefront.payments.constants import CHARGE_FAILED, CHARGE_SUCCESS, HANDLED_EVENTS, SIGNATURE_HEADER, logger
from storefront.payments.models import ChargeData, PaystackEvent
from storefront.payments.repository import insert_payment_reference
from storefront.products.repository import decrement_stock
from storefront.schema.full_schema import OrderStatus


def compute_paystack_signature(body: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()


def verify_paystack_signature(request: Request, body: bytes, secret: Optional[str] = None):
    """Raises Unauthorized unless the header is the HMAC-SHA512 of the exact raw body."""
    secret = secret if secret is not None else config_settings.PAYSTACK_SECRET_KEY
    sig = request.headers.get(SIGNATURE_HEADER)
    if not sig:
        logger.error("payments.webhook.missing_signature")
        raise Unauthorized("Missing signature")
    expected = compute_paystack_signature(body, secret)
    if not hmac.compare_digest(expected, sig.strip().lower()):
        logger.error("payments.webhook.invalid_signature")
        raise Unauthorized("Invalid signature")


def ack(note: str, **fields) -> JSONResponse:
    return JSONResponse({"status": "ok", "note": note, **fields}, status_code=200)


def invalid_payload(reason: str) -> JSONResponse:
    logger.warning("payments.webhook.invalid_payload", extra={"reason": reason})
    if config_settings.WEBHOOK_REJECT_INVALID_PAYLOAD:
        raise BadRequest(f"Invalid webhook payload: {reason}")
    return ack("ignored: invalid payload")


async def best_effort(session, step: str, action: Callable[..., Awaitable], *args, **log_fields) -> bool:
    """One side effect, one commit. A failure is rolled back, logged and reported, never raised."""
    try:
        await action(session, *args)
        await session.commit()
        return True
    except Exception:
        await session.rollback()
        logger.exception("payments.webhook.side_effect_failed", extra={"step": step, **log_fields})
        return False


async def _record_reference(session, user_id: int, order_id: int, charge: ChargeData, fallback_status: str):
    await insert_payment_reference(
        session,
        user_id=user_id,
        order_id=order_id,
        reference=charge.reference,
        amount=charge.amount,
        channel=charge.channel,
        currency=charge.currency,
        status=charge.status or fallback_status,
        paid_at=charge.paid_at,
    )


async def apply_charge_success(session, user_id: int, order_id: int, charge: ChargeData) -> List[str]:
    """Side effects after the pending -> paid transition; returns the names of the steps that failed."""
    failures: List[str] = []
    fields = {"order_id": order_id, "user_id": user_id}

    if not await best_effort(session, "clear_cart", clear_cart, user_id, **fields):
        failures.append("clear_cart")

    if not await best_effort(session, "payment_reference", _record_reference, user_id, order_id, charge, "success", **fields):
        failures.append("payment_reference")

    try:
        items = await order_items_pid_qty(session, order_id)
    except Exception:
        await session.rollback()
        logger.exception("payments.webhook.side_effect_failed", extra={"step": "load_order_items", **fields})
        failures.append("load_order_items")
        items = []

    for it in items:
        ok = await best_effort(session, "stock_decrement", decrement_stock, it["product_id"], it["quantity"],
                               product_id=it["product_id"], **fields)
        if not ok:
            failures.append(f"stock_decrement:{it['product_id']}")

    return failures


async def handle_paystack_event(body: bytes, session, background_tasks: BackgroundTasks, mailer) -> JSONResponse:
    try:
        event = PaystackEvent.model_validate_json(body)
    except ValidationError as e:
        return invalid_payload(f"envelope: {e.error_count()} error(s)")

    if event.event not in HANDLED_EVENTS:
        logger.info("payments.webhook.ignored_event", extra={"event": event.event})
        return ack("ignored: unhandled event")

    try:
        charge = ChargeData.model_validate(event.data)
    except ValidationError as e:
        return invalid_payload(f"charge data: {e.error_count()} error(s)")

    user = await user_by_email(session, charge.customer.email.strip().lower())
    if not user:
        logger.warning("payments.webhook.unknown_customer", extra={"reference": charge.reference})
        return ack("ignored: user not found")
    # plain values: a rolled back side effect expires ORM instances
    user_id, user_email, user_name = user.id, user.email, user.name

    try:
        order = await get_user_order(session, user_id, charge.metadata.order_id)
    except NotFound:
        logger.warning("payments.webhook.order_not_found", extra={"order_id": charge.metadata.order_id, "user_id": user_id})
        raise
    order_id, order_status, order_total = order.id, order.status, order.total_amount

    if order_status != OrderStatus.PENDING.value:
        logger.info("payments.webhook.duplicate", extra={"order_id": order_id, "order_status": order_status, "event": event.event})
        return ack("already processed", order_id=order_id, order_status=order_status)

    if event.event == CHARGE_SUCCESS:
        if charge.amount != order_total:
            logger.warning("payments.webhook.amount_mismatch", extra={
                "order_id": order_id, "expected": order_total, "received": charge.amount,
            })
        receipt = await order_detail(session, order)
        new_status = OrderStatus.PAID.value
    else:
        receipt = None
        new_status = OrderStatus.FAILED.value

    # the conditional transition is the idempotency guard; side effects only run for the winner
    moved = await transition_order_status(session, order_id, user_id, new_status)
    await session.commit()
    if moved is None:
        logger.info("payments.webhook.duplicate", extra={"order_id": order_id, "event": event.event, "race": True})
        return ack("already processed", order_id=order_id)

    logger.info("payments.webhook.transitioned", extra={"order_id": order_id, "order_status": new_status, "reference": charge.reference})

    if event.event == CHARGE_SUCCESS:
        failures = await apply_charge_success(session, user_id, order_id, charge)
        subject, html = payment_confirmation_email(user_name, receipt, charge.reference)
    else:
        failures = []
        if not await best_effort(session, "payment_reference", _record_reference, user_id, order_id, charge, "failed",
                                 order_id=order_id, user_id=user_id):
            failures.append("payment_reference")
        subject, html = payment_failed_email(user_name, order_id, charge.reference)

    # runs after the response has been sent to the gateway
    background_tasks.add_task(dispatch_email, mailer, user_email, subject, html)

    return ack("processed", order_id=order_id, order_status=new_status, failed_steps=failures)
