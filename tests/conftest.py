"""Pytest 配置"""

import os

import pytest

# 测试环境配置：不写日志文件，不连接真实节点。
# 必须在导入 farstore.core.config 之前设置。
os.environ.setdefault("LOG_FILE", "")
os.environ.setdefault("LOG_MODE", "simple")
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("FARSTORE_CONTRACT", "0x1111111111111111111111111111111111111111")
os.environ.setdefault("POOL_FACTORY_CONTRACT", "0x2222222222222222222222222222222222222222")
os.environ.setdefault("BASE_JSON_RPC_URL", "https://rpc.example.invalid")
os.environ.setdefault("DATABASE_PATH", "./data/test-farstore.db")

from farstore.core.db import SQLiteProvider, set_database_provider  # noqa: E402
from farstore.models import Base  # noqa: E402
from farstore.services.cache import api_key_cache, metrics_cache  # noqa: E402


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def db_provider(anyio_backend, tmp_path):
    """临时 SQLite 数据库，替换全局数据库提供者"""
    provider = SQLiteProvider(f"sqlite+aiosqlite:///{tmp_path / 'farstore.db'}")
    await provider.init_db(Base)
    set_database_provider(provider)
    try:
        yield provider
    finally:
        set_database_provider(None)
        await provider.close()


@pytest.fixture
async def session(db_provider):
    """单个测试使用的会话（测试内手动提交）"""
    async with db_provider.session_factory() as s:
        yield s


@pytest.fixture(autouse=True)
def reset_caches():
    """每个测试前后清空进程内缓存"""
    for cache in (metrics_cache, api_key_cache):
        cache.reset()
    yield
    for cache in (metrics_cache, api_key_cache):
        cache.reset()
