"""状态与链上指标 API 测试"""

import pytest

from farstore.schemas.onchain import DerivedMetrics
from farstore.services.cache import metrics_cache


@pytest.mark.anyio
class TestStatus:
    async def test_status_ok(self, client):
        response = await client.get("/status")

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["status"] == "OK"
        assert results["database"] == "ok"
        assert results["scheduler"] == {"running": False}
        assert {c["name"] for c in results["caches"]} == {"derived_metrics", "api_keys"}


@pytest.mark.anyio
class TestOnchain:
    """测试 /onchain（只读内存快照）"""

    async def test_known_domain(self, client):
        metrics_cache.swap({
            "example.xyz": DerivedMetrics(
                frame_id=5, domain="example.xyz", token="0xabc", liquidity=150.0, funding=2.5
            )
        })

        response = await client.get("/onchain/Example.xyz")

        results = response.json()["results"]
        assert results["liquidity"] == 150.0
        assert results["funding"] == 2.5
        assert results["frameId"] == 5

    async def test_unknown_key_is_zero(self, client):
        response = await client.get("/onchain/nobody.xyz")

        assert response.status_code == 200
        results = response.json()["results"]
        assert results["domain"] == "nobody.xyz"
        assert results["liquidity"] == 0
        assert results["funding"] == 0

    async def test_list(self, client):
        metrics_cache.swap({
            "a.xyz": DerivedMetrics(frame_id=1, domain="a.xyz"),
            "b.xyz": DerivedMetrics(frame_id=2, domain="b.xyz"),
        })

        response = await client.get("/onchain")

        assert [m["domain"] for m in response.json()["results"]] == ["a.xyz", "b.xyz"]
