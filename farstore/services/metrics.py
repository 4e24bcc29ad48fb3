"""链上衍生指标计算

每个周期遍历注册表的全部可见条目，计算 funding 与 liquidity，
产出一份完整的新快照交给调用方整体替换缓存。

失败处理：
- 注册表读取失败（条目数、批量可见性、条目详情）：抛出 LedgerUnavailable，本周期不产出快照
- 单个条目的计算失败（辅助合约、流动性数据源、异常数据）：记录日志，该条目不进入新快照
"""

from dataclasses import dataclass, field
from typing import Any

from farstore.core.config import Settings, settings
from farstore.core.logging import get_logger
from farstore.schemas.onchain import DerivedMetrics
from farstore.services.ledger import ContractReader, LedgerEntry, LedgerReader
from farstore.services.liquidity import LiquidityResolver

logger = get_logger("metrics")

WEI = 10**18

KEY_DOMAIN = "domain"
KEY_FRAME_ID = "frame_id"


@dataclass
class MetricsBuild:
    """一次指标计算的产出"""

    snapshot: dict[str | int, DerivedMetrics]
    total: int = 0
    hidden: int = 0
    failed: list[dict[str, Any]] = field(default_factory=list)


class MetricsService:
    """链上衍生指标服务

    Attributes:
        ledger: 注册表读取
        contracts: 辅助合约读取（symbol、getAppFunds）
        liquidity: 流动性解析策略
    """

    def __init__(
        self,
        ledger: LedgerReader,
        contracts: ContractReader,
        liquidity: LiquidityResolver,
        config: Settings | None = None,
    ):
        self.ledger = ledger
        self.contracts = contracts
        self.liquidity = liquidity
        self.config = config or settings

        key = self.config.METRICS_KEY.strip().lower()
        if key not in (KEY_DOMAIN, KEY_FRAME_ID):
            raise ValueError(f"不支持的 METRICS_KEY: {self.config.METRICS_KEY}")
        self.key_field = key

    def key_of(self, metrics: DerivedMetrics) -> str | int:
        return metrics.frame_id if self.key_field == KEY_FRAME_ID else metrics.domain

    async def visible_indices(self) -> tuple[list[int], int]:
        """枚举需要计算的注册表序号

        开启批量读取时按页读取隐藏标记并过滤，否则所有条目都视为可见。

        Returns:
            (可见序号列表, 被隐藏的条目数)
        """
        count = await self.ledger.count()
        if not self.config.LEDGER_BATCH_READS:
            return list(range(1, count + 1)), 0

        page_size = max(self.config.LEDGER_BATCH_SIZE, 1)
        visible: list[int] = []
        hidden_count = 0
        for start in range(1, count + 1, page_size):
            size = min(page_size, count - start + 1)
            domains, hidden = await self.ledger.domains_and_visibility(start, size)
            for offset, (domain, is_hidden) in enumerate(zip(domains, hidden)):
                if is_hidden:
                    hidden_count += 1
                elif domain:
                    visible.append(start + offset)
        return visible, hidden_count

    async def funding_of(self, frame_id: int) -> float:
        """托管合约中的累计资金，未配置托管合约时为 0"""
        if not self.config.escrow_enabled:
            return 0.0
        funds = await self.contracts.app_funds(self.config.FUNDS_ESCROW_CONTRACT, frame_id)
        return funds / WEI

    async def compute_entry(self, entry: LedgerEntry) -> DerivedMetrics:
        """计算单个条目的指标（只访问辅助合约与流动性数据源）"""
        funding = await self.funding_of(entry.frame_id)
        symbol = None
        liquidity = 0.0
        if entry.token is not None:
            symbol = await self.contracts.token_symbol(entry.token)
            liquidity = await self.liquidity.resolve_liquidity(entry.token)

        return DerivedMetrics(
            frame_id=entry.frame_id,
            domain=entry.domain,
            owner=entry.owner,
            token=entry.token,
            symbol=symbol,
            liquidity=liquidity,
            funding=funding,
            created_at=entry.created_at,
        )

    async def build_snapshot(self) -> MetricsBuild:
        """计算一份完整的新快照

        Raises:
            LedgerUnavailable: 注册表读取失败，调用方应保留旧快照
        """
        indices, hidden_count = await self.visible_indices()
        build = MetricsBuild(snapshot={}, total=len(indices), hidden=hidden_count)

        for index in indices:
            entry = await self.ledger.entry_details(index)
            if not entry.domain:
                continue
            try:
                metrics = await self.compute_entry(entry)
            except Exception as e:
                logger.warning(
                    "链上指标计算失败，跳过该条目",
                    frame_id=index,
                    domain=entry.domain,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                build.failed.append({"frame_id": index, "domain": entry.domain, "error": str(e)})
                continue
            build.snapshot[self.key_of(metrics)] = metrics

        return build
