"""FastAPI 依赖注入与同步组件装配

- 路由层使用 Depends(get_db_session) 获取会话
- 同步引擎及其客户端由 SyncContainer 统一创建、关闭，挂在 app.state 上
- /private 路由使用 Depends(require_api_domain) 鉴权
"""

from collections.abc import AsyncGenerator
from dataclasses import dataclass

from fastapi import Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from farstore.core.config import Settings, settings
from farstore.core.database import get_db
from farstore.core.errors import raise_service_unavailable, raise_unauthorized
from farstore.core.logging import get_logger
from farstore.services.cache import resolve_api_key
from farstore.services.ledger import ContractReader, JsonRpcClient, LedgerReader
from farstore.services.liquidity import LiquidityResolver, get_liquidity_resolver
from farstore.services.manifest import ManifestFetcher
from farstore.services.metrics import MetricsService
from farstore.services.sync import SyncService

logger = get_logger("dependencies")


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """获取数据库会话（用于 FastAPI 路由依赖注入）"""
    async for session in get_db():
        yield session


@dataclass
class SyncContainer:
    """同步引擎及其持有的网络客户端

    使用方式：
    ```python
    container = create_sync_container()
    await container.service.discover_new_apps()
    await container.close()
    ```
    """

    rpc: JsonRpcClient
    fetcher: ManifestFetcher
    liquidity: LiquidityResolver
    service: SyncService

    async def close(self) -> None:
        await self.liquidity.close()
        await self.fetcher.close()
        await self.rpc.close()
        logger.debug("同步组件已关闭")


def create_sync_container(config: Settings | None = None) -> SyncContainer:
    """按配置装配同步引擎

    Raises:
        ValueError: 未配置注册表合约或流动性策略配置不完整
    """
    config = config or settings
    if not config.FARSTORE_CONTRACT:
        raise ValueError("未配置 FARSTORE_CONTRACT")

    rpc = JsonRpcClient(config.BASE_JSON_RPC_URL, timeout=config.RPC_TIMEOUT_SECONDS)
    ledger = LedgerReader(rpc, config.FARSTORE_CONTRACT)
    contracts = ContractReader(rpc)
    liquidity = get_liquidity_resolver(contracts, config)
    fetcher = ManifestFetcher(timeout=config.MANIFEST_TIMEOUT_SECONDS)
    metrics = MetricsService(ledger, contracts, liquidity, config)

    service = SyncService(ledger, fetcher, metrics, config=config)
    logger.info(
        "同步组件已装配",
        registry=config.FARSTORE_CONTRACT,
        liquidity_strategy=liquidity.name,
        escrow_enabled=config.escrow_enabled,
        batch_reads=config.LEDGER_BATCH_READS,
    )
    return SyncContainer(rpc=rpc, fetcher=fetcher, liquidity=liquidity, service=service)


def get_sync_service(request: Request) -> SyncService:
    """从 app.state 取同步引擎，未装配时返回 503"""
    service = getattr(request.app.state, "sync_service", None)
    if service is None:
        raise_service_unavailable("sync", "同步引擎未启动")
    return service


def parse_bearer(authorization: str | None) -> str | None:
    """从 Authorization 头中取出 Bearer 凭证"""
    if not authorization:
        return None
    scheme, _, credential = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return credential.strip() or None


async def require_api_domain(
    authorization: str | None = Header(default=None),
) -> str:
    """校验 API Key，返回它授权的域名"""
    domain = resolve_api_key(parse_bearer(authorization))
    if domain is None:
        raise_unauthorized()
    return domain
