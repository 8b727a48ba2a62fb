from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from storefront import logger
from storefront.api import cur_version
from storefront.common.custom_exceptions import StorefrontError
from storefront.common.utils import success_response
from storefront.db.dependencies import get_session

home_router = APIRouter()


@home_router.get("/health")
async def health_check(session: AsyncSession = Depends(get_session)):
    try:
        await session.execute(select(1))
    except Exception as e:
        logger.error("health.db_unreachable", extra={"error": str(e)})
        raise StorefrontError("Database connection error")

    return success_response({"status": "healthy", "version": cur_version})
