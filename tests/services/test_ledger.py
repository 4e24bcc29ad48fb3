"""注册表读取测试

RPC 用 httpx.MockTransport 模拟，返回值用 eth_abi 编码。
"""

import json

import httpx
import pytest
from eth_abi import encode
from eth_utils import function_signature_to_4byte_selector

from farstore.core.errors import LedgerUnavailable
from farstore.services.ledger import ContractReader, JsonRpcClient, LedgerReader, is_zero_address
from farstore.services.ledger.abi import ZERO_ADDRESS
from farstore.services.ledger.reader import GET_DOMAIN, GET_FRAME, GET_NUM_LISTED_FRAMES

REGISTRY = "0x1111111111111111111111111111111111111111"
OWNER = "0x00000000000000000000000000000000000000aa"
TOKEN = "0x00000000000000000000000000000000000000bb"


def rpc_returning(results: dict[str, bytes], calls: list | None = None) -> JsonRpcClient:
    """按 selector 返回编码后的结果"""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        data = body["params"][0]["data"]
        if calls is not None:
            calls.append(body)
        for selector, payload in results.items():
            if data.startswith(selector):
                return httpx.Response(
                    200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x" + payload.hex()}
                )
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": "0x"})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return JsonRpcClient("https://rpc.test", client=client)


def selector(fn) -> str:
    return "0x" + function_signature_to_4byte_selector(fn.signature).hex()


class TestAbi:
    def test_selector_matches_signature(self):
        assert GET_DOMAIN.signature == "getDomain(uint256)"
        assert GET_DOMAIN.encode_call(5).startswith(selector(GET_DOMAIN))
        assert len(GET_NUM_LISTED_FRAMES.encode_call()) == 10

    def test_zero_address(self):
        assert is_zero_address(ZERO_ADDRESS)
        assert is_zero_address(None)
        assert not is_zero_address(TOKEN)

    def test_empty_result_is_ledger_unavailable(self):
        with pytest.raises(LedgerUnavailable):
            GET_DOMAIN.decode_result("0x")


@pytest.mark.anyio
class TestLedgerReader:
    """测试注册表读取"""

    async def test_count_and_domain(self):
        calls = []
        rpc = rpc_returning(
            {
                selector(GET_NUM_LISTED_FRAMES): encode(["uint256"], [42]),
                selector(GET_DOMAIN): encode(["string"], ["Example.XYZ"]),
            },
            calls,
        )
        reader = LedgerReader(rpc, REGISTRY)
        assert await reader.count() == 42
        assert await reader.domain_at(5) == "example.xyz"
        assert calls[0]["method"] == "eth_call"
        assert calls[0]["params"][0]["to"] == REGISTRY

    async def test_entry_details_without_token(self):
        rpc = rpc_returning(
            {
                selector(GET_FRAME): encode(
                    ["string", "address", "address", "uint256"],
                    ["example.xyz", OWNER, ZERO_ADDRESS, 1700000000],
                )
            }
        )
        entry = await LedgerReader(rpc, REGISTRY).entry_details(5)
        assert entry.frame_id == 5
        assert entry.domain == "example.xyz"
        assert entry.token is None
        assert entry.created_at == 1700000000

    async def test_rpc_error_object(self):
        def handler(request):
            body = json.loads(request.content)
            return httpx.Response(
                200,
                json={"jsonrpc": "2.0", "id": body["id"], "error": {"code": -32000, "message": "x"}},
            )

        rpc = JsonRpcClient("https://rpc.test", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(LedgerUnavailable):
            await LedgerReader(rpc, REGISTRY).count()

    async def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectTimeout("timeout", request=request)

        rpc = JsonRpcClient("https://rpc.test", client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        with pytest.raises(LedgerUnavailable) as exc_info:
            await LedgerReader(rpc, REGISTRY).domain_at(1)
        assert exc_info.value.method == "eth_call"

    async def test_http_error(self):
        rpc = JsonRpcClient(
            "https://rpc.test",
            client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(502))),
        )
        with pytest.raises(LedgerUnavailable):
            await LedgerReader(rpc, REGISTRY).count()


@pytest.mark.anyio
class TestContractReader:
    """测试辅助合约读取"""

    async def test_get_pool_zero_address_is_none(self):
        from farstore.services.ledger.reader import FACTORY_GET_POOL

        rpc = rpc_returning({selector(FACTORY_GET_POOL): encode(["address"], [ZERO_ADDRESS])})
        pool = await ContractReader(rpc).get_pool(REGISTRY, TOKEN, OWNER, 10000)
        assert pool is None

    async def test_balance_of(self):
        from farstore.services.ledger.reader import ERC20_BALANCE_OF

        rpc = rpc_returning({selector(ERC20_BALANCE_OF): encode(["uint256"], [5 * 10**18])})
        assert await ContractReader(rpc).balance_of(TOKEN, OWNER) == 5 * 10**18
