"""注册表读取模块

通过 JSON-RPC eth_call 只读访问注册表合约及辅助合约（ERC-20、池工厂、资金托管）：
- JsonRpcClient: httpx 上的 JSON-RPC 客户端
- ContractFunction: 函数签名与 ABI 编解码
- LedgerReader: 注册表读取（条目数、域名、详情、批量可见性）
- ContractReader: 辅助合约读取（symbol、balanceOf、getPool、getAppFunds）
"""

from farstore.services.ledger.abi import ZERO_ADDRESS, ContractFunction, is_zero_address
from farstore.services.ledger.reader import ContractReader, LedgerEntry, LedgerReader
from farstore.services.ledger.rpc import JsonRpcClient

__all__ = [
    "ZERO_ADDRESS",
    "ContractFunction",
    "ContractReader",
    "JsonRpcClient",
    "LedgerEntry",
    "LedgerReader",
    "is_zero_address",
]
