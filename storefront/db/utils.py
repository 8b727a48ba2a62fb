from typing import Optional

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def _normalize_db_url(url: Optional[str]) -> Optional[str]:
    # managed Postgres hosts hand out "postgres://..." but SQLAlchemy async needs "postgresql+asyncpg://..."
    if not url:
        return None
    if url.startswith("postgres://"):
        return url.replace("postgres://", "postgresql+asyncpg://", 1)
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    return url


def dialect_insert(session: AsyncSession, model):
    """INSERT construct with ON CONFLICT support for the session's backend (postgres in prod, sqlite in tests)."""
    table = getattr(model, "__table__", model)
    if session.get_bind().dialect.name == "sqlite":
        return sqlite.insert(table)
    return postgresql.insert(table)
