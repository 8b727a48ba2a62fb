from typing import Optional
from sqlalchemy import select, update
from storefront.common.utils import now
from storefront.schema.full_schema import Users


async def user_by_email(session, email: str) -> Optional[Users]:
    stmt = select(Users).where(Users.email == email)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def user_by_id(session, user_id: int) -> Optional[Users]:
    stmt = select(Users).where(Users.id == user_id)
    res = await session.execute(stmt)
    return res.scalar_one_or_none()


async def update_password_hash(session, user_id: int, password_hash: str) -> Optional[int]:
    stmt = (
        update(Users)
        .where(Users.id == user_id)
        .values(password_hash=password_hash, updated_at=now())
        .returning(Users.id)
    )
    res = await session.execute(stmt)
    return res.scalar_one_or_none()
