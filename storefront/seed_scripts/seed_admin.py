"""Create the configured admin account, or promote an existing one. Admins are never self-registered.

    python -m storefront.seed_scripts.seed_admin
"""
import asyncio
import os
from dotenv import load_dotenv
from sqlmodel import select

from storefront.auth.dependencies import normalize_email_address
from storefront.auth.utils import hash_password, validate_password
from storefront.cart.repository import get_or_create_cart
from storefront.common.utils import now
from storefront.config.settings import config_settings
from storefront.db.connection import build_engine, build_session_maker
from storefront.schema.full_schema import UserRole, Users

load_dotenv()


async def create_admin(database_url=None):
    admin_email = os.environ.get("ADMIN_EMAIL") or config_settings.ADMIN_EMAIL
    admin_password = os.environ.get("ADMIN_PASSWORD") or config_settings.ADMIN_PASSWORD
    admin_name = os.environ.get("ADMIN_NAME") or config_settings.ADMIN_NAME

    if not admin_email or not admin_password:
        raise SystemExit("Set ADMIN_EMAIL and ADMIN_PASSWORD environment variables before running")

    admin_email = normalize_email_address(admin_email)
    is_valid, detail = validate_password(admin_password)
    if not is_valid:
        raise SystemExit(f"ADMIN_PASSWORD rejected: {detail}")

    engine = build_engine(database_url)
    session_maker = build_session_maker(engine)
    try:
        async with session_maker() as session:
            q = await session.execute(select(Users).where(Users.email == admin_email))
            user = q.scalar_one_or_none()

            if not user:
                user = Users(
                    email=admin_email,
                    name=admin_name,
                    password_hash=hash_password(admin_password),
                    role=UserRole.ADMIN.value,
                )
                session.add(user)
                await session.flush()
                print(f"Created admin user id={user.id}")
            else:
                user.role = UserRole.ADMIN.value
                user.password_hash = hash_password(admin_password)
                user.updated_at = now()
                print(f"Promoted existing user id={user.id} to admin")

            await get_or_create_cart(session, user.id)
            await session.commit()
            return user.id
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(create_admin())
