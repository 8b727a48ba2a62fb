from html import escape
from typing import Iterable, Tuple


def format_amount(minor_units: int, currency: str = "NGN") -> str:
    return f"{currency} {minor_units / 100:,.2f}"


def _item_rows(items: Iterable[dict]) -> str:
    rows = []
    for it in items:
        name = escape(it.get("product_name") or f"Product #{it['product_id']}")
        line_total = it["quantity"] * it["price_at_order"]
        rows.append(
            f"<tr><td>{name}</td><td>{it['quantity']}</td>"
            f"<td>{format_amount(it['price_at_order'])}</td><td>{format_amount(line_total)}</td></tr>"
        )
    return "".join(rows)


def payment_confirmation_email(name: str, order: dict, reference: str) -> Tuple[str, str]:
    subject = f"Payment received for order #{order['id']}"
    html = f"""
    <h2>Thank you for your order, {escape(name)}!</h2>
    <p>We have received your payment for order <strong>#{order['id']}</strong>.</p>
    <table>
      <thead><tr><th>Item</th><th>Qty</th><th>Unit price</th><th>Total</th></tr></thead>
      <tbody>{_item_rows(order.get('items', []))}</tbody>
    </table>
    <p><strong>Total paid:</strong> {format_amount(order['total_amount'])}</p>
    <p>Payment reference: {escape(reference)}</p>
    """
    return subject, html


def payment_failed_email(name: str, order_id: int, reference: str) -> Tuple[str, str]:
    subject = f"Payment failed for order #{order_id}"
    html = f"""
    <h2>Hi {escape(name)},</h2>
    <p>Your payment for order <strong>#{order_id}</strong> did not go through.</p>
    <p>Your cart has been kept, so you can check out again whenever you are ready.</p>
    <p>Payment reference: {escape(reference)}</p>
    """
    return subject, html


def password_reset_email(name: str, link: str, expires_minutes: int) -> Tuple[str, str]:
    subject = "Reset your password"
    html = f"""
    <h2>Hi {escape(name)},</h2>
    <p>Use the link below to choose a new password. It expires in {expires_minutes} minutes.</p>
    <p><a href="{escape(link, quote=True)}">Reset password</a></p>
    <p>If you did not ask for this, you can ignore this email.</p>
    """
    return subject, html
