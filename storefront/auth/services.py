from sqlalchemy.exc import IntegrityError
from storefront.auth.constants import RESET_PURPOSE, logger
from storefront.auth.models import SignIn, SignupIn
from storefront.auth.repository import update_password_hash, user_by_email, user_by_id
from storefront.auth.utils import create_access_token, decode_token, hash_password, validate_password, verify_password
from storefront.cart.repository import get_or_create_cart
from storefront.common.custom_exceptions import BadRequest, Conflict, Unauthorized
from storefront.schema.full_schema import UserRole, Users


async def create_user(session, payload: SignupIn) -> Users:
    """Insert a customer account and its cart in one transaction."""
    if await user_by_email(session, payload.email):
        logger.warning("user.duplicate", extra={"email": payload.email})
        raise Conflict("User with email already exists")

    try:
        user = Users(
            email=payload.email,
            name=payload.name,
            password_hash=hash_password(payload.password),
            role=UserRole.CUSTOMER.value,
        )
        session.add(user)
        await session.flush()

        await get_or_create_cart(session, user.id)

        await session.commit()
        await session.refresh(user)
    except IntegrityError:
        await session.rollback()
        logger.warning("user.create.integrity_error", extra={"email": payload.email})
        raise Conflict("User with email already exists")

    logger.info("user.created", extra={"user_id": user.id})
    return user


async def authenticate_user(session, payload: SignIn) -> Users:
    user = await user_by_email(session, payload.email.strip().lower())
    if not user or not verify_password(payload.password, user.password_hash):
        logger.warning("login.failed", extra={"email": payload.email, "reason": "invalid_credentials"})
        raise Unauthorized("Invalid email or password")
    return user


def issue_access_token(user: Users) -> str:
    return create_access_token(user)


async def reset_password(session, token: str, new_password: str) -> int:
    claims = decode_token(token, purpose=RESET_PURPOSE)
    if not claims:
        raise BadRequest("Invalid or expired reset token")

    is_valid, detail = validate_password(new_password)
    if not is_valid:
        raise BadRequest(detail)

    user = await user_by_id(session, int(claims["sub"]))
    # token is bound to the email it was issued for
    if not user or user.email != claims.get("email"):
        raise BadRequest("Invalid or expired reset token")

    await update_password_hash(session, user.id, hash_password(new_password))
    await session.commit()
    logger.info("password.reset.success", extra={"user_id": user.id})
    return user.id
