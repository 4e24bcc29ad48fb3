"""通知目标 Repository"""

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from farstore.models.notification import NotificationTarget
from farstore.repositories.base import BaseRepository


class NotificationTargetRepository(BaseRepository[NotificationTarget]):
    """通知目标数据访问"""

    model = NotificationTarget

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def get_active(self, domain: str, fid: int) -> NotificationTarget | None:
        """获取 App 为某个 fid 登记的通知目标"""
        result = await self.session.execute(
            select(NotificationTarget)
            .where(
                NotificationTarget.domain == domain,
                NotificationTarget.fid == fid,
                NotificationTarget.active.is_(True),
            )
            .order_by(NotificationTarget.updated_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def upsert_target(
        self, domain: str, fid: int, endpoint: str, token: str
    ) -> NotificationTarget:
        """登记通知目标，已存在时重新激活并更新 token"""
        result = await self.session.execute(
            select(NotificationTarget).where(
                NotificationTarget.domain == domain,
                NotificationTarget.fid == fid,
                NotificationTarget.endpoint == endpoint,
            )
        )
        target = result.scalar_one_or_none()
        if target is None:
            return await self.create(
                NotificationTarget(domain=domain, fid=fid, endpoint=endpoint, token=token)
            )
        target.active = True
        target.token = token
        return await self.update(target)

    async def deactivate(self, domain: str, fid: int) -> int:
        """停用某个 fid 的全部通知目标，返回受影响行数"""
        result = await self.session.execute(
            update(NotificationTarget)
            .where(NotificationTarget.domain == domain, NotificationTarget.fid == fid)
            .values(active=False)
        )
        await self.session.flush()
        return result.rowcount or 0
