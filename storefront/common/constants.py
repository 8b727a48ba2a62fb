import contextvars
from typing import Optional

# Context variables for request and trace id
request_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)

SENSITIVE_KEYS = (
    "password", "secret", "token", "key", "authorization",
    "api_key", "access_token", "signature", "password_hash",
)
