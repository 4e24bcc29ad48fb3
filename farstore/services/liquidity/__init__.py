"""流动性解析模块"""

from farstore.services.liquidity.aggregator import AggregatorLiquidityResolver
from farstore.services.liquidity.base import LiquidityResolver
from farstore.services.liquidity.factory import LiquidityResolverFactory, get_liquidity_resolver
from farstore.services.liquidity.pool import PoolLiquidityResolver

__all__ = [
    "AggregatorLiquidityResolver",
    "LiquidityResolver",
    "LiquidityResolverFactory",
    "PoolLiquidityResolver",
    "get_liquidity_resolver",
]
