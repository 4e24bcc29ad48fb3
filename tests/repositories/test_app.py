"""AppRepository 测试（临时 SQLite 数据库）"""

from datetime import datetime, timedelta

import pytest

from farstore.repositories import ApiKeyRepository, AppRepository, NotificationTargetRepository

T0 = datetime(2026, 1, 1, 12, 0, 0)


@pytest.mark.anyio
class TestUpsertAppRecord:
    """测试成功同步的原子 upsert"""

    async def test_insert_new_domain(self, session):
        repo = AppRepository(session)
        await repo.upsert_app_record("example.xyz", 5, {"name": "Example"}, now=T0)
        await session.commit()

        record = await repo.get_by_domain("example.xyz")
        assert record.frame_id == 5
        assert record.manifest == {"name": "Example"}
        assert record.last_check_attempt == T0
        assert record.last_check_success == T0

    async def test_update_keeps_single_row(self, session):
        repo = AppRepository(session)
        await repo.upsert_app_record("example.xyz", 5, {"name": "Old"}, now=T0)
        await repo.upsert_app_record("example.xyz", 5, {"name": "New"}, now=T0 + timedelta(minutes=1))
        await session.commit()

        rows = await repo.get_all()
        assert len(rows) == 1
        assert rows[0].manifest == {"name": "New"}
        assert rows[0].last_check_success == T0 + timedelta(minutes=1)

    async def test_missing_frame_id_keeps_existing(self, session):
        repo = AppRepository(session)
        await repo.upsert_app_record("example.xyz", 5, {"name": "Example"}, now=T0)
        await repo.upsert_app_record("example.xyz", None, {"name": "Example"}, now=T0 + timedelta(seconds=1))
        await session.commit()

        assert (await repo.get_by_domain("example.xyz")).frame_id == 5

    async def test_timestamps_never_move_backwards(self, session):
        """并发写入时较早的写入不会让时间倒退"""
        repo = AppRepository(session)
        later = T0 + timedelta(minutes=5)
        await repo.upsert_app_record("example.xyz", 5, {"name": "Later"}, now=later)
        await repo.upsert_app_record("example.xyz", 5, {"name": "Earlier"}, now=T0)
        await session.commit()

        record = await repo.get_by_domain("example.xyz")
        assert record.last_check_attempt == later
        assert record.last_check_success == later
        assert record.last_check_success <= record.last_check_attempt


@pytest.mark.anyio
class TestTouchAttempt:
    """测试失败尝试只推进 last_check_attempt"""

    async def test_existing_row_keeps_manifest_and_success(self, session):
        repo = AppRepository(session)
        await repo.upsert_app_record("example.xyz", 5, {"name": "Example"}, now=T0)
        await repo.touch_attempt("example.xyz", now=T0 + timedelta(minutes=1))
        await session.commit()

        record = await repo.get_by_domain("example.xyz")
        assert record.manifest == {"name": "Example"}
        assert record.last_check_success == T0
        assert record.last_check_attempt == T0 + timedelta(minutes=1)
        assert record.frame_id == 5

    async def test_unseen_domain_gets_attempt_only_row(self, session):
        repo = AppRepository(session)
        await repo.touch_attempt("new.xyz", 7, now=T0)
        await session.commit()

        record = await repo.get_by_domain("new.xyz")
        assert record.frame_id == 7
        assert record.frame_json is None
        assert record.manifest is None
        assert record.last_check_success is None
        assert record.last_check_attempt == T0

    async def test_success_after_attempt_only_row(self, session):
        repo = AppRepository(session)
        await repo.touch_attempt("new.xyz", 7, now=T0)
        await repo.upsert_app_record("new.xyz", 7, {"name": "New"}, now=T0 + timedelta(minutes=1))
        await session.commit()

        record = await repo.get_by_domain("new.xyz")
        assert record.manifest == {"name": "New"}
        assert record.last_check_success == record.last_check_attempt


@pytest.mark.anyio
class TestQueries:
    """测试水位线与批量查询"""

    async def test_max_known_ledger_id_empty(self, session):
        assert await AppRepository(session).max_known_ledger_id() == 0

    async def test_max_known_ledger_id(self, session):
        repo = AppRepository(session)
        await repo.upsert_app_record("a.xyz", 1, {"name": "A"}, now=T0)
        await repo.upsert_app_record("c.xyz", 3, {"name": "C"}, now=T0)
        await repo.touch_attempt("orphan.xyz", now=T0)
        await session.commit()

        assert await repo.max_known_ledger_id() == 3

    async def test_missing_ledger_ids(self, session):
        repo = AppRepository(session)
        await repo.upsert_app_record("c.xyz", 3, {"name": "C"}, now=T0)
        await repo.touch_attempt("e.xyz", 5, now=T0)
        await repo.touch_attempt("orphan.xyz", now=T0)
        await session.commit()

        assert await repo.missing_ledger_ids(6) == [1, 2, 4, 6]
        assert await repo.missing_ledger_ids(0) == []

    async def test_select_stale_batch_orders_by_attempt(self, session):
        repo = AppRepository(session)
        for i in range(1, 13):
            # 序号越大越久未尝试
            await repo.upsert_app_record(f"app{i}.xyz", i, {"name": str(i)}, now=T0 - timedelta(minutes=i))
        await repo.touch_attempt("orphan.xyz", now=T0 - timedelta(days=1))
        await session.commit()

        batch = await repo.select_stale_batch(10)
        assert len(batch) == 10
        assert [r.frame_id for r in batch] == list(range(12, 2, -1))
        attempts = [r.last_check_attempt for r in batch]
        assert attempts == sorted(attempts)

    async def test_list_listed_excludes_unlisted_and_unfetched(self, session):
        repo = AppRepository(session)
        await repo.upsert_app_record("a.xyz", 1, {"name": "A"}, now=T0)
        await repo.upsert_app_record("manual.xyz", None, {"name": "M"}, now=T0)
        await repo.touch_attempt("b.xyz", 2, now=T0)
        await session.commit()

        assert [r.domain for r in await repo.list_listed()] == ["a.xyz"]

    async def test_list_by_frame_ids(self, session):
        repo = AppRepository(session)
        for i in range(1, 5):
            await repo.upsert_app_record(f"app{i}.xyz", i, {"name": str(i)}, now=T0)
        await session.commit()

        records = await repo.list_by_frame_ids([4, 2, 99])
        assert [r.frame_id for r in records] == [2, 4]
        assert await repo.list_by_frame_ids([]) == []


@pytest.mark.anyio
class TestApiKeyRepository:
    async def test_list_api_keys(self, session):
        repo = ApiKeyRepository(session)
        await repo.create_key("key-a", "A.xyz")
        await repo.create_key("key-b", "b.xyz")
        await session.commit()

        assert sorted(await repo.list_api_keys()) == [("key-a", "a.xyz"), ("key-b", "b.xyz")]


@pytest.mark.anyio
class TestNotificationTargetRepository:
    async def test_upsert_reactivates(self, session):
        repo = NotificationTargetRepository(session)
        await repo.upsert_target("a.xyz", 42, "https://push.example/1", "t1")
        assert await repo.deactivate("a.xyz", 42) == 1
        assert await repo.get_active("a.xyz", 42) is None

        await repo.upsert_target("a.xyz", 42, "https://push.example/1", "t2")
        target = await repo.get_active("a.xyz", 42)
        assert target.token == "t2"
        assert target.to_dict()["url"] == "https://push.example/1"
        assert len(await repo.get_all()) == 1

    async def test_scoped_by_domain(self, session):
        repo = NotificationTargetRepository(session)
        await repo.upsert_target("a.xyz", 42, "https://push.example/1", "t1")
        assert await repo.get_active("b.xyz", 42) is None
        assert await repo.deactivate("b.xyz", 42) == 0
