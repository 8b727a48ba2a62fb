from datetime import datetime
from typing import Optional
from sqlalchemy import insert
from storefront.common.utils import now
from storefront.schema.full_schema import PaymentReference


async def insert_payment_reference(session, user_id: int, order_id: int, reference: str, amount: int,
                                   channel: Optional[str], currency: Optional[str], status: Optional[str],
                                   paid_at: Optional[datetime]) -> int:
    stmt = (
        insert(PaymentReference)
        .values(
            user_id=user_id,
            order_id=order_id,
            reference=reference,
            amount=amount,
            channel=channel,
            currency=currency,
            status=status,
            paid_at=paid_at,
            created_at=now(),
        )
        .returning(PaymentReference.id)
    )
    res = await session.execute(stmt)
    return res.scalar_one()
