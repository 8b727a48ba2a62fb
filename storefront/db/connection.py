from typing import Optional
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine, async_sessionmaker, AsyncSession
from storefront.config.settings import config_settings
from storefront.db.utils import _normalize_db_url

DATABASE_URL = _normalize_db_url(config_settings.DATABASE_URL)


def build_engine(url: Optional[str] = None) -> AsyncEngine:
    db_url = _normalize_db_url(url) or DATABASE_URL
    kwargs = {"echo": config_settings.DB_ECHO}
    if db_url.startswith("postgresql"):
        kwargs.update(pool_size=10, max_overflow=20, pool_pre_ping=True)
    return create_async_engine(db_url, **kwargs)


def build_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
