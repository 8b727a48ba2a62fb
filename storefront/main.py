from contextlib import asynccontextmanager
from typing import Optional
from fastapi import FastAPI
from storefront.api import version_prefix, cur_version
from storefront.api.routers import public_routers, admin_routers
from storefront.common.custom_exceptions import register_all_exceptions
from storefront.common.logging_setup import setup_logging, shutdown_logging
from storefront.config.settings import config_settings
from storefront.db.connection import build_engine, build_session_maker
from storefront.image_uploads.services import CloudinaryImageStorage
from storefront.middlewares.auth_middleware import AuthenticationMiddleware
from storefront.middlewares.request_id_middleware import RequestIdMiddleware
from storefront.notifications.mailer import ResendMailer
from storefront.payments.gateway import PaystackClient
from storefront.payments.routes import paystack_webhook

paystack_webhook_path = config_settings.PAYSTACK_WEBHOOK_PATH


def build_lifespan(database_url: Optional[str] = None):

    @asynccontextmanager
    async def app_lifespan(app: FastAPI):
        logger = setup_logging()

        engine = build_engine(database_url)
        app.state.engine = engine
        app.state.session_maker = build_session_maker(engine)
        app.state.mailer = ResendMailer()
        app.state.image_storage = CloudinaryImageStorage()
        app.state.payment_gateway = PaystackClient()
        logger.info("app.startup", extra={"env": config_settings.ENV, "version": cur_version})

        try:
            yield
        finally:
            # new requests are no longer accepted at this point
            await app.state.payment_gateway.aclose()
            await engine.dispose()
            logger.info("app.shutdown")
            shutdown_logging()

    return app_lifespan


def create_app(database_url: Optional[str] = None) -> FastAPI:
    app = FastAPI(
        title="Storefront",
        version=cur_version,
        lifespan=build_lifespan(database_url))

    app.include_router(public_routers)

    app.add_api_route(paystack_webhook_path, paystack_webhook, methods=["POST"], name="paystack_webhook", tags=["payments"])

    if config_settings.ENABLE_ADMIN:
        app.include_router(admin_routers)      # mounts /api/v1/admin

    app.add_middleware(AuthenticationMiddleware, paths=[f"{version_prefix}/auth/",
                                                        f"{version_prefix}/health",
                                                        f"{version_prefix}/products",   # public catalog reads
                                                        paystack_webhook_path,
                                                        "/docs",
                                                        "/redoc",
                                                        "/openapi.json"])
    app.add_middleware(RequestIdMiddleware)
    register_all_exceptions(app)

    return app


app = create_app()
