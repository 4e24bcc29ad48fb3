"""流动性解析器工厂"""

from farstore.core.config import Settings, settings
from farstore.core.logging import get_logger
from farstore.services.ledger import ContractReader
from farstore.services.liquidity.aggregator import AggregatorLiquidityResolver
from farstore.services.liquidity.base import LiquidityResolver
from farstore.services.liquidity.pool import PoolLiquidityResolver

logger = get_logger("liquidity.factory")


class LiquidityResolverFactory:
    """流动性解析器工厂

    支持的策略：
    - pool: 直接读取 DEX 池中参考资产余额
    - aggregator: 汇总行情聚合器返回的交易对流动性
    """

    STRATEGIES = {
        "pool": PoolLiquidityResolver,
        "aggregator": AggregatorLiquidityResolver,
    }

    @classmethod
    def create(
        cls,
        strategy: str,
        contracts: ContractReader,
        config: Settings | None = None,
    ) -> LiquidityResolver:
        """按策略名创建解析器

        Raises:
            ValueError: 不支持的策略
        """
        config = config or settings
        strategy = strategy.strip().lower()
        if strategy not in cls.STRATEGIES:
            raise ValueError(
                f"不支持的流动性策略: {strategy}. 支持的策略: {list(cls.STRATEGIES.keys())}"
            )

        if strategy == "pool":
            resolver: LiquidityResolver = PoolLiquidityResolver(
                contracts,
                factory_address=config.POOL_FACTORY_CONTRACT,
                reference_token=config.REFERENCE_TOKEN,
                fee_tier=config.POOL_FEE_TIER,
                reference_decimals=config.REFERENCE_TOKEN_DECIMALS,
            )
        else:
            resolver = AggregatorLiquidityResolver(
                config.AGGREGATOR_API_URL,
                reference_token=config.REFERENCE_TOKEN,
                timeout=config.AGGREGATOR_TIMEOUT_SECONDS,
            )

        logger.info("流动性解析器已创建", strategy=strategy)
        return resolver


def get_liquidity_resolver(
    contracts: ContractReader, config: Settings | None = None
) -> LiquidityResolver:
    """按 LIQUIDITY_STRATEGY 配置创建解析器"""
    config = config or settings
    return LiquidityResolverFactory.create(config.LIQUIDITY_STRATEGY, contracts, config)
