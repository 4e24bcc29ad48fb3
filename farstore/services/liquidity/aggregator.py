"""行情聚合器流动性解析器

请求 {AGGREGATOR_API_URL}/{token}，返回结构（dexscreener 格式）：
{
  "pairs": [
    {
      "dexId": "uniswap",
      "baseToken": {"address": "0x..."},
      "quoteToken": {"address": "0x4200..."},
      "liquidity": {"usd": 1234.5, "base": 1000000, "quote": 0.42}
    }
  ]
}

只统计以参考资产（或零地址 / 销毁地址）计价的交易对，跨交易所求和 liquidity.quote。
"""

import math
from typing import Any

import httpx

from farstore.core.errors import LiquiditySourceUnavailable
from farstore.core.logging import get_logger
from farstore.services.ledger.abi import BURN_ADDRESS, ZERO_ADDRESS
from farstore.services.liquidity.base import LiquidityResolver

logger = get_logger("liquidity.aggregator")


class AggregatorLiquidityResolver(LiquidityResolver):
    """汇总行情聚合器返回的全部交易对流动性"""

    name = "aggregator"

    def __init__(
        self,
        api_url: str,
        *,
        reference_token: str,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.quote_addresses = {reference_token.lower(), ZERO_ADDRESS, BURN_ADDRESS}
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    async def resolve_liquidity(self, token: str) -> float:
        url = f"{self.api_url}/{token}"
        try:
            response = await self._client.get(url, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise LiquiditySourceUnavailable("aggregator", f"HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise LiquiditySourceUnavailable("aggregator", str(e) or type(e).__name__) from e
        except ValueError as e:
            raise LiquiditySourceUnavailable("aggregator", "响应不是合法 JSON") from e

        if not isinstance(payload, dict):
            raise LiquiditySourceUnavailable("aggregator", "响应不是 JSON 对象")
        pairs = payload.get("pairs") or []
        if not isinstance(pairs, list):
            raise LiquiditySourceUnavailable("aggregator", "pairs 不是数组")

        total = sum(self._quote_liquidity(pair) for pair in pairs)
        logger.debug("聚合器流动性", token=token, pair_count=len(pairs), liquidity=total)
        return total

    def _quote_liquidity(self, pair: Any) -> float:
        """单个交易对贡献的流动性，非参考资产计价的交易对返回 0"""
        if not isinstance(pair, dict):
            return 0.0
        quote_token = pair.get("quoteToken")
        quote = quote_token.get("address") if isinstance(quote_token, dict) else None
        if not isinstance(quote, str) or quote.lower() not in self.quote_addresses:
            return 0.0
        liquidity = pair.get("liquidity")
        value = liquidity.get("quote") if isinstance(liquidity, dict) else None
        try:
            value = float(value)
        except (TypeError, ValueError):
            return 0.0
        # NaN / inf 不计入
        if not math.isfinite(value):
            return 0.0
        return max(value, 0.0)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
