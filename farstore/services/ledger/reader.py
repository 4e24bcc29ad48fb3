"""注册表与辅助合约读取"""

from dataclasses import dataclass
from typing import Any

from farstore.core.errors import LedgerUnavailable
from farstore.core.logging import get_logger
from farstore.services.ledger.abi import ContractFunction, is_zero_address
from farstore.services.ledger.rpc import JsonRpcClient

logger = get_logger("ledger.reader")

# 注册表合约
GET_NUM_LISTED_FRAMES = ContractFunction("getNumListedFrames", (), ("uint256",))
GET_DOMAIN = ContractFunction("getDomain", ("uint256",), ("string",))
GET_ID = ContractFunction("getId", ("string",), ("uint256",))
GET_FRAME = ContractFunction(
    "getFrame", ("uint256",), ("string", "address", "address", "uint256")
)
GET_FRAMES = ContractFunction("getFrames", ("uint256", "uint256"), ("string[]", "bool[]"))

# 辅助合约
ERC20_SYMBOL = ContractFunction("symbol", (), ("string",))
ERC20_BALANCE_OF = ContractFunction("balanceOf", ("address",), ("uint256",))
FACTORY_GET_POOL = ContractFunction(
    "getPool", ("address", "address", "uint24"), ("address",)
)
ESCROW_GET_APP_FUNDS = ContractFunction("getAppFunds", ("uint256",), ("uint256",))


@dataclass(frozen=True)
class LedgerEntry:
    """注册表条目详情

    Attributes:
        frame_id: 注册表序号（从 1 开始）
        domain: 小写域名
        owner: 所有者地址
        token: 代币地址，未发币时为 None
        created_at: 上链时间（秒）
    """

    frame_id: int
    domain: str
    owner: str
    token: str | None
    created_at: int


class _ContractCaller:
    """eth_call + ABI 编解码的公共部分"""

    def __init__(self, rpc: JsonRpcClient):
        self.rpc = rpc

    async def _call(self, to: str, fn: ContractFunction, *args: Any) -> tuple[Any, ...]:
        data = await self.rpc.eth_call(to, fn.encode_call(*args))
        return fn.decode_result(data)


class LedgerReader(_ContractCaller):
    """注册表只读客户端

    所有方法在 RPC 失败时抛出 LedgerUnavailable。
    """

    def __init__(self, rpc: JsonRpcClient, registry_address: str):
        super().__init__(rpc)
        self.registry_address = registry_address

    async def count(self) -> int:
        """已登记的条目总数"""
        (count,) = await self._call(self.registry_address, GET_NUM_LISTED_FRAMES)
        return int(count)

    async def domain_at(self, index: int) -> str:
        """按序号（从 1 开始）读取域名"""
        (domain,) = await self._call(self.registry_address, GET_DOMAIN, index)
        return domain.strip().lower()

    async def id_of(self, domain: str) -> int | None:
        """按域名反查序号，未登记时返回 None"""
        (frame_id,) = await self._call(self.registry_address, GET_ID, domain.lower())
        return int(frame_id) or None

    async def entry_details(self, index: int) -> LedgerEntry:
        """读取条目详情（域名、所有者、代币、上链时间）"""
        domain, owner, token, created_at = await self._call(
            self.registry_address, GET_FRAME, index
        )
        return LedgerEntry(
            frame_id=index,
            domain=domain.strip().lower(),
            owner=owner,
            token=None if is_zero_address(token) else token,
            created_at=int(created_at),
        )

    async def domains_and_visibility(
        self, start: int, count: int
    ) -> tuple[list[str], list[bool]]:
        """批量读取 [start, start + count) 的域名与隐藏标记

        Returns:
            (domains, hidden_flags)，两个列表等长，hidden_flags[i] 为 True 表示条目被隐藏
        """
        domains, hidden = await self._call(self.registry_address, GET_FRAMES, start, count)
        if len(domains) != len(hidden):
            raise LedgerUnavailable(
                GET_FRAMES.name,
                f"返回长度不一致: domains={len(domains)}, hidden={len(hidden)}",
            )
        return [d.strip().lower() for d in domains], [bool(h) for h in hidden]


class ContractReader(_ContractCaller):
    """辅助合约只读客户端（ERC-20、池工厂、资金托管）"""

    async def token_symbol(self, token: str) -> str:
        (symbol,) = await self._call(token, ERC20_SYMBOL)
        return symbol

    async def balance_of(self, token: str, holder: str) -> int:
        """holder 持有的 token 数量（最小单位）"""
        (balance,) = await self._call(token, ERC20_BALANCE_OF, holder)
        return int(balance)

    async def get_pool(
        self, factory: str, token_a: str, token_b: str, fee_tier: int
    ) -> str | None:
        """查询交易对池地址，不存在时返回 None"""
        (pool,) = await self._call(factory, FACTORY_GET_POOL, token_a, token_b, fee_tier)
        return None if is_zero_address(pool) else pool

    async def app_funds(self, escrow: str, frame_id: int) -> int:
        """托管合约中某个 App 累计的资金（最小单位）"""
        (funds,) = await self._call(escrow, ESCROW_GET_APP_FUNDS, frame_id)
        return int(funds)
