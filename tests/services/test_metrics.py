"""链上指标计算测试"""

from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest

from farstore.core.config import Settings
from farstore.core.errors import LedgerUnavailable, LiquiditySourceUnavailable
from farstore.services.ledger import LedgerEntry
from farstore.services.liquidity import AggregatorLiquidityResolver
from farstore.services.metrics import MetricsService

ESCROW = "0x3333333333333333333333333333333333333333"
TOKEN = "0x00000000000000000000000000000000000000bb"


def entry(index: int, token: str | None = None) -> LedgerEntry:
    return LedgerEntry(
        frame_id=index,
        domain=f"app{index}.xyz",
        owner="0x00000000000000000000000000000000000000aa",
        token=token,
        created_at=1700000000 + index,
    )


def make_service(entries: dict[int, LedgerEntry], **config) -> tuple[MetricsService, MagicMock, MagicMock, MagicMock]:
    ledger = MagicMock()
    ledger.count = AsyncMock(return_value=len(entries))
    ledger.entry_details = AsyncMock(side_effect=lambda i: entries[i])
    contracts = MagicMock()
    contracts.token_symbol = AsyncMock(return_value="TKN")
    contracts.app_funds = AsyncMock(return_value=3 * 10**18)
    liquidity = MagicMock()
    liquidity.resolve_liquidity = AsyncMock(return_value=12.5)
    service = MetricsService(ledger, contracts, liquidity, Settings(_env_file=None, **config))
    return service, ledger, contracts, liquidity


@pytest.mark.anyio
class TestBuildSnapshot:
    """测试指标快照构建"""

    async def test_entry_without_token(self):
        service, _, contracts, liquidity = make_service({1: entry(1)})
        build = await service.build_snapshot()

        metrics = build.snapshot["app1.xyz"]
        assert metrics.token is None
        assert metrics.symbol is None
        assert metrics.liquidity == 0.0
        assert metrics.funding == 0.0
        contracts.token_symbol.assert_not_awaited()
        liquidity.resolve_liquidity.assert_not_awaited()

    async def test_entry_with_token_and_escrow(self):
        service, _, contracts, liquidity = make_service(
            {1: entry(1, TOKEN)}, FUNDS_ESCROW_CONTRACT=ESCROW
        )
        build = await service.build_snapshot()

        metrics = build.snapshot["app1.xyz"]
        assert metrics.symbol == "TKN"
        assert metrics.liquidity == 12.5
        assert metrics.funding == 3.0
        assert metrics.created_at == 1700000001
        contracts.app_funds.assert_awaited_once_with(ESCROW, 1)
        liquidity.resolve_liquidity.assert_awaited_once_with(TOKEN)

    async def test_keyed_by_frame_id(self):
        service, *_ = make_service({1: entry(1), 2: entry(2)}, METRICS_KEY="frame_id")
        build = await service.build_snapshot()
        assert set(build.snapshot) == {1, 2}

    async def test_auxiliary_failure_omits_entry(self):
        service, _, _, liquidity = make_service({1: entry(1, TOKEN), 2: entry(2)})
        liquidity.resolve_liquidity = AsyncMock(side_effect=LiquiditySourceUnavailable("aggregator", "500"))

        build = await service.build_snapshot()
        assert set(build.snapshot) == {"app2.xyz"}
        assert build.failed[0]["frame_id"] == 1

    async def test_unexpected_entry_error_omits_only_that_entry(self):
        """聚合器返回异常数据导致的非 RPC 错误也只影响当前条目"""
        service, _, _, liquidity = make_service({1: entry(1, TOKEN), 2: entry(2)})
        liquidity.resolve_liquidity = AsyncMock(side_effect=AttributeError("'str' object has no attribute 'get'"))

        build = await service.build_snapshot()

        assert set(build.snapshot) == {"app2.xyz"}
        assert [f["frame_id"] for f in build.failed] == [1]

    async def test_malformed_aggregator_payload_keeps_siblings(self):
        service, *_ = make_service({1: entry(1, TOKEN), 2: entry(2, TOKEN), 3: entry(3)})
        bodies = {
            "1": {"pairs": {"quoteToken": "0xabc"}},
            "2": {"pairs": [{"quoteToken": "0xabc", "liquidity": {"quote": 1}}]},
        }
        calls = []

        def handler(request):
            calls.append(request.url.path)
            return httpx.Response(200, json=bodies[str(len(calls))])

        service.liquidity = AggregatorLiquidityResolver(
            "https://api.example/tokens",
            reference_token="0x4200000000000000000000000000000000000006",
            client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        )

        build = await service.build_snapshot()

        assert set(build.snapshot) == {"app2.xyz", "app3.xyz"}
        assert build.snapshot["app2.xyz"].liquidity == 0.0
        assert [f["frame_id"] for f in build.failed] == [1]

    async def test_invalid_liquidity_value_omits_entry(self):
        service, _, _, liquidity = make_service({1: entry(1, TOKEN), 2: entry(2)})
        liquidity.resolve_liquidity = AsyncMock(return_value=float("nan"))

        build = await service.build_snapshot()

        assert set(build.snapshot) == {"app2.xyz"}

    async def test_registry_failure_aborts(self):
        service, ledger, *_ = make_service({1: entry(1)})
        ledger.entry_details = AsyncMock(side_effect=LedgerUnavailable("getFrame", "timeout"))

        with pytest.raises(LedgerUnavailable):
            await service.build_snapshot()

    async def test_batch_reads_filter_hidden(self):
        entries = {i: entry(i) for i in range(1, 6)}
        service, ledger, *_ = make_service(entries, LEDGER_BATCH_READS=True, LEDGER_BATCH_SIZE=2)
        pages = {
            1: (["app1.xyz", "app2.xyz"], [False, True]),
            3: (["app3.xyz", "app4.xyz"], [False, False]),
            5: (["app5.xyz"], [True]),
        }
        ledger.domains_and_visibility = AsyncMock(side_effect=lambda start, count: pages[start])

        build = await service.build_snapshot()
        assert set(build.snapshot) == {"app1.xyz", "app3.xyz", "app4.xyz"}
        assert build.hidden == 2
        ledger.domains_and_visibility.assert_any_await(5, 1)
        requested = [call.args[0] for call in ledger.entry_details.await_args_list]
        assert requested == [1, 3, 4]

    def test_invalid_metrics_key(self):
        with pytest.raises(ValueError):
            make_service({}, METRICS_KEY="owner")
