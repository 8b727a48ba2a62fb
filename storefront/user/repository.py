from typing import List, Optional
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from storefront.common.custom_exceptions import Conflict
from storefront.common.utils import now
from storefront.schema.full_schema import Users


async def update_user_profile(session, user_id: int, values: dict) -> Optional[Users]:
    if not values:
        res = await session.execute(select(Users).where(Users.id == user_id))
        return res.scalar_one_or_none()

    stmt = (
        update(Users)
        .where(Users.id == user_id)
        .values(**values, updated_at=now())
        .returning(Users)
    )
    try:
        res = await session.execute(stmt)
    except IntegrityError:
        await session.rollback()
        raise Conflict("Email already in use")
    return res.scalar_one_or_none()


async def email_taken_by_other(session, email: str, user_id: int) -> bool:
    stmt = select(Users.id).where(Users.email == email, Users.id != user_id)
    res = await session.execute(stmt)
    return res.first() is not None


async def save_profile_image_url(session, user_id: int, url: str) -> Optional[int]:
    stmt = (
        update(Users)
        .where(Users.id == user_id)
        .values(profile_image_url=url, updated_at=now())
        .returning(Users.id)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def list_users(session) -> List[Users]:
    res = await session.execute(select(Users).order_by(Users.created_at.desc(), Users.id.desc()))
    return list(res.scalars().all())
