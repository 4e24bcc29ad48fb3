"""API Key Repository"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from farstore.models.api_key import AppApiKey
from farstore.repositories.base import BaseRepository


class ApiKeyRepository(BaseRepository[AppApiKey]):
    """API Key 数据访问"""

    model = AppApiKey

    def __init__(self, session: AsyncSession):
        super().__init__(session)

    async def list_api_keys(self) -> list[tuple[str, str]]:
        """读取完整的 (api_key, domain) 凭证表"""
        result = await self.session.execute(select(AppApiKey.api_key, AppApiKey.domain))
        return [(row.api_key, row.domain) for row in result.all()]

    async def create_key(self, api_key: str, domain: str) -> AppApiKey:
        """登记 API Key"""
        return await self.create(AppApiKey(api_key=api_key, domain=domain.lower()))
