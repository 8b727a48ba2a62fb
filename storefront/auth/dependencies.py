from email_validator import validate_email, EmailNotValidError
from fastapi import Request
from fastapi.security import HTTPBearer
from storefront.auth.constants import logger
from storefront.auth.models import CurrentUser, SignupIn
from storefront.auth.utils import decode_token, validate_password
from storefront.common.custom_exceptions import BadRequest, Forbidden, Unauthorized
from storefront.schema.full_schema import UserRole


def normalize_email_address(email: str) -> str:
    """
    Validate and return normalized email (lowercased, normalized by email-validator).
    Raises ValueError if invalid.
    """
    try:
        v = validate_email(email, check_deliverability=False)
        return v.normalized.lower()
    except EmailNotValidError as e:
        raise ValueError(str(e))


async def signup_validation(payload: SignupIn) -> SignupIn:
    try:
        email = normalize_email_address(payload.email)
    except ValueError as e:
        logger.warning("signup.validation.email_invalid", extra={"email": payload.email, "error": str(e)})
        raise BadRequest(f"Invalid email: {e}")

    is_valid, detail = validate_password(payload.password)
    if not is_valid:
        logger.warning("signup.validation.password_invalid", extra={"email": email, "reason": detail})
        raise BadRequest(detail)

    return payload.model_copy(update={"email": email, "name": payload.name.strip()})


class Authentication(HTTPBearer):
    def __init__(self, auto_error=True):
        super().__init__(auto_error=auto_error)

    async def __call__(self, request: Request) -> dict:
        try:
            auth_creds = await super().__call__(request)
        except Exception:
            raise Unauthorized("Missing or invalid authorization header")
        if auth_creds is None:
            raise Unauthorized("Missing or invalid authorization header")

        decoded_token = decode_token(auth_creds.credentials)
        if not decoded_token:
            raise Unauthorized("Invalid or expired token provided.")

        return decoded_token


def current_user_from_claims(claims: dict) -> CurrentUser:
    return CurrentUser(
        id=int(claims.get("id") or claims["sub"]),
        email=claims["email"],
        name=claims.get("name"),
        role=claims.get("role", UserRole.CUSTOMER.value),
    )


def get_current_user(request: Request) -> CurrentUser:
    user = getattr(request.state, "current_user", None)
    if user is None:
        raise Unauthorized()
    return user


def require_admin(request: Request) -> CurrentUser:
    user = get_current_user(request)
    if user.role != UserRole.ADMIN.value:
        logger.warning("auth.admin_required", extra={"user_id": user.id, "path": request.url.path})
        raise Forbidden("Admin access required")
    return user
