"""App 镜像 Repository

写操作都是单条 INSERT ... ON CONFLICT (domain) DO UPDATE 语句，
多个同步任务并发写同一域名时依赖数据库的原子 upsert 收敛为一行，不做应用层加锁。
时间戳只前进不后退：并发写入时保留较大的时间。
"""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from farstore.models.app import App
from farstore.repositories.base import BaseRepository


def _dialect_insert(dialect_name: str):
    """根据方言返回支持 on_conflict_do_update 的 insert 构造器"""
    if dialect_name == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    elif dialect_name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        raise ValueError(f"不支持 upsert 的数据库方言: {dialect_name}")
    return insert


def _latest(column, incoming):
    """取已有值与新值中较晚的一个（已有值为空时取新值）"""
    return case(
        (column.is_(None), incoming),
        (column > incoming, column),
        else_=incoming,
    )


class AppRepository(BaseRepository[App]):
    """App 镜像数据访问"""

    model = App

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    def _insert(self):
        return _dialect_insert(self.session.get_bind().dialect.name)(App)

    async def get_by_domain(self, domain: str) -> App | None:
        """根据域名获取"""
        return await self.session.get(App, domain.lower(), populate_existing=True)

    async def upsert_app_record(
        self,
        domain: str,
        frame_id: int | None,
        frame: dict[str, Any] | str,
        *,
        now: datetime | None = None,
    ) -> None:
        """记录一次成功同步

        写入 manifest，同时推进 last_check_attempt 与 last_check_success。
        frame_id 为空时保留已有值。

        Args:
            domain: 小写域名
            frame_id: 注册表序号
            frame: manifest 中的 frame 对象（dict 或已序列化的 JSON）
            now: 本次同步时间，默认当前时间
        """
        now = now or datetime.now()
        frame_json = frame if isinstance(frame, str) else json.dumps(frame, ensure_ascii=False)

        stmt = self._insert().values(
            domain=domain,
            frame_id=frame_id,
            frame_json=frame_json,
            last_check_attempt=now,
            last_check_success=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[App.domain],
            set_={
                "frame_id": func.coalesce(stmt.excluded.frame_id, App.frame_id),
                "frame_json": stmt.excluded.frame_json,
                "last_check_attempt": _latest(App.last_check_attempt, stmt.excluded.last_check_attempt),
                "last_check_success": _latest(App.last_check_success, stmt.excluded.last_check_success),
            },
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def touch_attempt(
        self,
        domain: str,
        frame_id: int | None = None,
        *,
        now: datetime | None = None,
    ) -> None:
        """记录一次失败的同步尝试

        只推进 last_check_attempt，manifest 与 last_check_success 保持不变。
        域名尚无记录时插入一条仅含尝试时间的行。
        """
        now = now or datetime.now()

        stmt = self._insert().values(
            domain=domain,
            frame_id=frame_id,
            frame_json=None,
            last_check_attempt=now,
            last_check_success=None,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[App.domain],
            set_={
                "frame_id": func.coalesce(App.frame_id, stmt.excluded.frame_id),
                "last_check_attempt": _latest(App.last_check_attempt, stmt.excluded.last_check_attempt),
            },
        )
        await self.session.execute(stmt)
        await self.session.flush()

    async def max_known_ledger_id(self) -> int:
        """本地已知的最大注册表序号（水位线），空表返回 0"""
        result = await self.session.execute(select(func.coalesce(func.max(App.frame_id), 0)))
        return int(result.scalar_one())

    async def missing_ledger_ids(self, upper: int) -> list[int]:
        """[1, upper] 中本地还没有记录的注册表序号（升序）

        读路径按域名同步时可能先写入较大的序号，水位线之下因此会留下空洞。
        """
        if upper <= 0:
            return []
        result = await self.session.execute(
            select(App.frame_id).where(App.frame_id.between(1, upper))
        )
        known = set(result.scalars().all())
        return [i for i in range(1, upper + 1) if i not in known]

    async def select_stale_batch(self, limit: int) -> list[App]:
        """选出最久未尝试同步的一批已登记 App

        仅包含有 frame_id 的行，按 last_check_attempt 升序。
        """
        result = await self.session.execute(
            select(App)
            .where(App.frame_id.isnot(None))
            .order_by(App.last_check_attempt.asc(), App.frame_id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def list_listed(self) -> list[App]:
        """所有已登记且拉取成功过的 App"""
        result = await self.session.execute(
            select(App)
            .where(App.frame_id.isnot(None), App.frame_json.isnot(None))
            .order_by(App.frame_id.asc())
        )
        return list(result.scalars().all())

    async def list_by_frame_ids(self, frame_ids: list[int]) -> list[App]:
        """根据 frame_id 列表查询"""
        if not frame_ids:
            return []
        result = await self.session.execute(
            select(App)
            .where(App.frame_id.in_(frame_ids), App.frame_json.isnot(None))
            .order_by(App.frame_id.asc())
        )
        return list(result.scalars().all())
