"""路由测试夹具

使用 httpx.ASGITransport 直接调用应用，不触发 lifespan（不连接链上节点、不启动调度器）。
"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from farstore.main import app


@pytest.fixture
def sync_service():
    service = MagicMock()
    service.sync_domain = AsyncMock(return_value={"name": "Fetched"})
    return service


@pytest.fixture
async def client(db_provider, sync_service):
    app.state.sync_service = sync_service
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.state.sync_service = None
