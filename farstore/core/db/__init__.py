"""数据库抽象层

支持多种数据库后端（SQLite、PostgreSQL）的统一接口。
同步引擎依赖后端提供的 INSERT ... ON CONFLICT 原子 upsert，两种后端都支持。
"""

from farstore.core.db.provider import (
    DatabaseProvider,
    PostgresProvider,
    SQLiteProvider,
    close_database_provider,
    get_database_provider,
    set_database_provider,
)

__all__ = [
    "DatabaseProvider",
    "SQLiteProvider",
    "PostgresProvider",
    "get_database_provider",
    "set_database_provider",
    "close_database_provider",
]
