"""直接读取 DEX 池的流动性解析器"""

from farstore.core.errors import LedgerUnavailable, LiquiditySourceUnavailable
from farstore.core.logging import get_logger
from farstore.services.ledger import ContractReader
from farstore.services.liquidity.base import LiquidityResolver

logger = get_logger("liquidity.pool")


class PoolLiquidityResolver(LiquidityResolver):
    """在固定费率档位找到 代币/参考资产 池，读取池中参考资产余额"""

    name = "pool"

    def __init__(
        self,
        contracts: ContractReader,
        *,
        factory_address: str,
        reference_token: str,
        fee_tier: int,
        reference_decimals: int = 18,
    ):
        if not factory_address:
            raise ValueError("pool 策略需要配置 POOL_FACTORY_CONTRACT")
        self.contracts = contracts
        self.factory_address = factory_address
        self.reference_token = reference_token
        self.fee_tier = fee_tier
        self.reference_decimals = reference_decimals

    async def resolve_liquidity(self, token: str) -> float:
        try:
            pool = await self.contracts.get_pool(
                self.factory_address, token, self.reference_token, self.fee_tier
            )
            if pool is None:
                logger.debug("未找到池子", token=token, fee_tier=self.fee_tier)
                return 0.0
            balance = await self.contracts.balance_of(self.reference_token, pool)
        except LiquiditySourceUnavailable:
            raise
        except LedgerUnavailable as e:
            raise LiquiditySourceUnavailable(e.method, e.detail) from e

        return balance / 10**self.reference_decimals
