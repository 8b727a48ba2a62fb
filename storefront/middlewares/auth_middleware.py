from typing import Iterable
from fastapi import Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from storefront.auth.dependencies import Authentication, current_user_from_claims
from storefront.common.constants import request_id_ctx
from storefront.common.utils import build_error, json_error
from storefront.middlewares.constants import logger


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Verifies the bearer token on every non-public path and puts CurrentUser on request.state."""

    def __init__(self, app, *, paths: Iterable[str]):
        super().__init__(app)
        self.paths = tuple(paths)
        self.authenticate = Authentication()

    async def dispatch(self, request: Request, call_next):

        if request.method == "OPTIONS" or request.url.path.startswith(self.paths):
            return await call_next(request)

        try:
            claims = await self.authenticate(request)
            current_user = current_user_from_claims(claims)
        except Exception as e:
            reason = getattr(e, "detail", None) or str(e)
            logger.warning("auth.middleware.failed", extra={
                "reason": reason,
                "path": request.url.path,
                "method": request.method
            })
            payload = build_error(code="UNAUTHORIZED", details={"message": "Missing or Invalid Auth Headers"},
                                  request_id=request_id_ctx.get())
            return json_error(payload, status_code=status.HTTP_401_UNAUTHORIZED)

        request.state.current_user = current_user

        logger.debug("auth.middleware.success", extra={
            "user_id": current_user.id,
            "path": request.url.path
        })

        return await call_next(request)
