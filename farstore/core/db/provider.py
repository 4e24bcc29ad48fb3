"""数据库 Provider

同步引擎的写入全部依赖 INSERT ... ON CONFLICT，所以只支持提供该语法的两个后端：
- SQLite（aiosqlite）：单机部署与测试
- PostgreSQL（asyncpg）：多实例部署

Provider 持有引擎与会话工厂，进程内只有一个实例，由 get_database_provider() 按配置创建。
"""

from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncConnection,
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

if TYPE_CHECKING:
    from sqlalchemy.orm import DeclarativeBase

from farstore.core.logging import get_logger

logger = get_logger("db.provider")


class DatabaseProvider:
    """数据库提供者基类

    子类通过 engine_options() 定制连接参数，通过 prepare() 在建表前调整连接。
    """

    backend_name: str = ""
    dialect_name: str = ""

    def __init__(self, database_url: str, **engine_options: Any):
        self.database_url = database_url
        self.engine: AsyncEngine = create_async_engine(
            database_url, echo=False, **self.engine_options(), **engine_options
        )
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    def engine_options(self) -> dict[str, Any]:
        return {}

    async def prepare(self, conn: AsyncConnection) -> None:
        """建表前执行的后端相关设置"""

    async def init_db(self, base: "type[DeclarativeBase]") -> None:
        """创建全部表（已存在的表不变）"""
        if self.engine.dialect.name != self.dialect_name:
            raise ValueError(
                f"{self.backend_name} provider 收到了 {self.engine.dialect.name} 连接串"
            )
        async with self.engine.begin() as conn:
            await self.prepare(conn)
            await conn.run_sync(base.metadata.create_all)
        logger.info("数据库表已就绪", backend=self.backend_name)

    async def ping(self) -> None:
        """执行一次最简单的查询，确认连接可用"""
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def close(self) -> None:
        await self.engine.dispose()
        logger.info("数据库连接已关闭", backend=self.backend_name)


class SQLiteProvider(DatabaseProvider):
    backend_name = "sqlite"
    dialect_name = "sqlite"

    def engine_options(self) -> dict[str, Any]:
        return {"connect_args": {"timeout": 30, "check_same_thread": False}}

    async def prepare(self, conn: AsyncConnection) -> None:
        # WAL 允许同步任务写入时读路径并发读取
        await conn.execute(text("PRAGMA journal_mode=WAL"))


class PostgresProvider(DatabaseProvider):
    backend_name = "postgres"
    dialect_name = "postgresql"

    def engine_options(self) -> dict[str, Any]:
        # 长时间空闲后第一条查询不因断开的连接失败
        return {"pool_pre_ping": True}


# ========== 单例管理 ==========
_provider: DatabaseProvider | None = None


def get_database_provider() -> DatabaseProvider:
    """获取数据库提供者（单例），按 DATABASE_BACKEND 选择后端"""
    global _provider
    if _provider is None:
        from farstore.core.config import settings

        if settings.DATABASE_BACKEND == "sqlite":
            _provider = SQLiteProvider(settings.database_url)
        elif settings.DATABASE_BACKEND == "postgres":
            _provider = PostgresProvider(
                settings.database_url,
                pool_size=settings.DATABASE_POOL_SIZE,
                max_overflow=settings.DATABASE_POOL_MAX_OVERFLOW,
                pool_timeout=settings.DATABASE_POOL_TIMEOUT,
            )
        else:
            raise ValueError(f"不支持的数据库后端: {settings.DATABASE_BACKEND}")
        logger.info("数据库 Provider 初始化", backend=_provider.backend_name)
    return _provider


def set_database_provider(provider: DatabaseProvider | None) -> None:
    """替换全局数据库提供者（测试中指向临时数据库）"""
    global _provider
    _provider = provider


async def close_database_provider() -> None:
    global _provider
    if _provider is not None:
        await _provider.close()
        _provider = None
