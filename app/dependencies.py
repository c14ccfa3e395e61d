from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.database import async_session
from app.services.bol.client import BolClient

_bol_client = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session() as session:
        try:
            yield session
        finally:
            await session.close()


def get_bol_client() -> BolClient:
    """Process-wide Bol.com client; shares the token cache across requests."""
    global _bol_client
    if _bol_client is None:
        _bol_client = BolClient.from_settings(get_settings())
    return _bol_client
