"""数据库会话管理

路由层使用 get_db()（FastAPI 依赖），同步任务使用 get_db_context()。
每个会话在退出时提交，异常（包括取消）时回滚。
"""

import asyncio
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession

from farstore.core.db.provider import get_database_provider
from farstore.core.logging import get_logger

logger = get_logger("database")


async def _rollback_quietly(session: AsyncSession) -> None:
    try:
        await session.rollback()
    except Exception as e:
        logger.warning("回滚失败", error=str(e))


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """获取数据库会话（用于 FastAPI 依赖注入）"""
    session_factory = get_database_provider().session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except (asyncio.CancelledError, Exception):
            await _rollback_quietly(session)
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """获取数据库会话（上下文管理器）"""
    session_factory = get_database_provider().session_factory
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except (asyncio.CancelledError, Exception):
            await _rollback_quietly(session)
            raise


async def init_db() -> None:
    """初始化数据库（创建表）"""
    from farstore.core.config import settings
    from farstore.models import Base

    settings.ensure_data_dir()
    provider = get_database_provider()
    await provider.init_db(Base)
    logger.info("数据库表初始化完成", backend=provider.backend_name)
