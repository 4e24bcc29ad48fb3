"""JSON-RPC 客户端

单次调用不重试：失败直接抛出 LedgerUnavailable，由调度器在下个周期重试。
"""

import itertools
from typing import Any

import httpx

from farstore.core.errors import LedgerUnavailable
from farstore.core.logging import get_logger

logger = get_logger("ledger.rpc")


class JsonRpcClient:
    """以太坊 JSON-RPC 客户端

    Attributes:
        url: RPC 节点地址
        timeout: 单次请求超时（秒）
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
    ):
        self.url = url
        self.timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None
        self._ids = itertools.count(1)

    async def call(self, method: str, params: list[Any]) -> Any:
        """发送一次 JSON-RPC 请求并返回 result 字段

        Raises:
            LedgerUnavailable: 网络错误、超时、非 2xx、响应格式错误或 RPC error
        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        try:
            response = await self._client.post(self.url, json=payload, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise LedgerUnavailable(method, f"请求超时 ({self.timeout}s)") from e
        except httpx.HTTPStatusError as e:
            raise LedgerUnavailable(method, f"HTTP {e.response.status_code}") from e
        except httpx.RequestError as e:
            raise LedgerUnavailable(method, f"网络错误: {e}") from e
        except ValueError as e:
            raise LedgerUnavailable(method, "响应不是合法 JSON") from e

        if not isinstance(data, dict):
            raise LedgerUnavailable(method, "响应格式错误")
        if data.get("error"):
            raise LedgerUnavailable(method, f"RPC error: {data['error']}")
        return data.get("result")

    async def eth_call(self, to: str, data: str) -> str:
        """在 latest 区块上执行只读调用，返回十六进制结果"""
        result = await self.call("eth_call", [{"to": to, "data": data}, "latest"])
        if not isinstance(result, str) or not result.startswith("0x"):
            raise LedgerUnavailable("eth_call", f"无效的返回值: {result!r}")
        return result

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
