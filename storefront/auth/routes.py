from fastapi import APIRouter, BackgroundTasks, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from storefront.auth.constants import ACCESS_TOKEN_TTL_SECONDS, logger
from storefront.auth.dependencies import signup_validation
from storefront.auth.models import ForgotPasswordIn, ResetPasswordIn, SignIn, SignupIn
from storefront.auth.repository import user_by_email
from storefront.auth.services import authenticate_user, create_user, issue_access_token, reset_password
from storefront.auth.utils import create_reset_token
from storefront.common.utils import success_response
from storefront.config.settings import config_settings
from storefront.db.dependencies import get_mailer, get_session
from storefront.notifications.mailer import dispatch_email
from storefront.notifications.templates import password_reset_email
from storefront.user.models import public_user

auth_router = APIRouter()


def _token_payload(user) -> dict:
    return {
        "access_token": issue_access_token(user),
        "token_type": "bearer",
        "expires_in": ACCESS_TOKEN_TTL_SECONDS,
        "user": public_user(user),
    }


@auth_router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(payload: SignupIn = Depends(signup_validation), session: AsyncSession = Depends(get_session)):

    logger.info("signup.attempt", extra={"email": payload.email})
    user = await create_user(session, payload)
    logger.info("signup.success", extra={"user_id": user.id})
    return success_response(_token_payload(user), 201)


@auth_router.post("/login")
async def login_user(payload: SignIn, session: AsyncSession = Depends(get_session)):

    logger.info("login.attempt", extra={"email": payload.email})
    user = await authenticate_user(session, payload)
    logger.info("login.success", extra={"user_id": user.id})
    return success_response(_token_payload(user), 200)


@auth_router.post("/forgot-password")
async def forgot_password(payload: ForgotPasswordIn, background_tasks: BackgroundTasks,
                          session: AsyncSession = Depends(get_session), mailer=Depends(get_mailer)):

    user = await user_by_email(session, payload.email.strip().lower())
    if user:
        token = create_reset_token(user)
        link = f"{config_settings.PASSWORD_RESET_URL}?token={token}"
        subject, html = password_reset_email(user.name, link, config_settings.RESET_TOKEN_EXPIRE_MINUTES)
        background_tasks.add_task(dispatch_email, mailer, user.email, subject, html)
        logger.info("password.reset.requested", extra={"user_id": user.id})
    else:
        logger.info("password.reset.unknown_email")

    return success_response({"message": "If that account exists, a reset link has been sent."}, 200)


@auth_router.post("/reset-password")
async def reset_user_password(payload: ResetPasswordIn, session: AsyncSession = Depends(get_session)):

    await reset_password(session, payload.token, payload.new_password)
    return success_response({"message": "Password has been reset."}, 200)
