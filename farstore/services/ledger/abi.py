"""合约函数 ABI 编解码"""

from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import function_signature_to_4byte_selector, to_checksum_address

from farstore.core.errors import LedgerUnavailable

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
BURN_ADDRESS = "0x000000000000000000000000000000000000dead"


def is_zero_address(address: str | None) -> bool:
    """空地址或零地址"""
    return not address or int(address, 16) == 0


@lru_cache(maxsize=64)
def _selector(signature: str) -> bytes:
    return function_signature_to_4byte_selector(signature)


@dataclass(frozen=True)
class ContractFunction:
    """合约函数描述

    Example:
        GET_DOMAIN = ContractFunction("getDomain", ("uint256",), ("string",))
        data = GET_DOMAIN.encode_call(5)
        (domain,) = GET_DOMAIN.decode_result(await rpc.eth_call(registry, data))
    """

    name: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(self.inputs)})"

    def encode_call(self, *args: Any) -> str:
        """编码调用数据（selector + 参数）"""
        normalized = [
            to_checksum_address(arg) if abi_type == "address" else arg
            for abi_type, arg in zip(self.inputs, args)
        ]
        return "0x" + (_selector(self.signature) + encode(list(self.inputs), normalized)).hex()

    def decode_result(self, data: str) -> tuple[Any, ...]:
        """解码返回数据

        Raises:
            LedgerUnavailable: 返回为空或无法按 outputs 解码（例如地址上没有合约）
        """
        raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
        if not raw and self.outputs:
            raise LedgerUnavailable(self.name, "空返回（目标地址可能不是合约）")
        try:
            return tuple(decode(list(self.outputs), raw))
        except (DecodingError, ValueError) as e:
            raise LedgerUnavailable(self.name, f"ABI 解码失败: {e}") from e
