from datetime import datetime, timedelta, timezone
import secrets
from typing import Optional
from passlib.context import CryptContext
from jose import jwt, JWTError
from storefront.auth.constants import ACCESS_PURPOSE, RESET_PURPOSE, SPECIALS
from storefront.config.settings import config_settings

PASS_HASH_SCHEME = config_settings.PASS_HASH_SCHEME
JWT_SECRET = config_settings.JWT_SECRET
JWT_ALGO = config_settings.JWT_ALGO

ACCESS_TOKEN_EXPIRE_MINUTES = int(config_settings.ACCESS_TOKEN_EXPIRE_MINUTES)
RESET_TOKEN_EXPIRE_MINUTES = int(config_settings.RESET_TOKEN_EXPIRE_MINUTES)

pwd_context = CryptContext(schemes=[PASS_HASH_SCHEME], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


def validate_password(password: str, min_length: int = 8) -> tuple[bool, str]:
    pw = password.strip()
    if len(pw) < min_length:
        return False, f"Password must be at least {min_length} characters long"
    if not any(c.islower() for c in pw):
        return False, "Password must include at least one lowercase letter"
    if not any(c.isupper() for c in pw):
        return False, "Password must include at least one uppercase letter"
    if not any(c.isdigit() for c in pw):
        return False, "Password must include at least one digit"
    if not any(c in SPECIALS for c in pw):
        return False, "Password must include at least one special character"
    return True, "OK"


def _encode(payload: dict, expires_minutes: int) -> str:
    now = datetime.now(timezone.utc)
    expiry = now + timedelta(minutes=expires_minutes)
    claims = {
        **payload,
        "iat": int(now.timestamp()),
        "exp": int(expiry.timestamp()),
        "jti": secrets.token_hex(16),
    }
    return jwt.encode(claims=claims, key=JWT_SECRET, algorithm=JWT_ALGO)


def create_access_token(user, expires_dur=ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    payload = {
        "sub": str(user.id),
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "role": user.role,
        "purpose": ACCESS_PURPOSE,
    }
    return _encode(payload, expires_dur)


def create_reset_token(user, expires_dur=RESET_TOKEN_EXPIRE_MINUTES) -> str:
    payload = {"sub": str(user.id), "email": user.email, "purpose": RESET_PURPOSE}
    return _encode(payload, expires_dur)


def decode_token(token: str, purpose: str = ACCESS_PURPOSE) -> Optional[dict]:
    """To verify the signature, expiration and purpose claim of a token"""
    try:
        token_data = jwt.decode(token, key=JWT_SECRET, algorithms=[JWT_ALGO])
    except JWTError:
        return None
    if token_data.get("purpose") != purpose:
        return None
    return token_data
