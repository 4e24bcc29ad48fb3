"""Manifest 拉取

从 https://{domain}/.well-known/farcaster.json 拉取 App 所有者托管的 manifest，
做最小校验（frame.name 非空）后返回 frame 对象。

失败统一抛出 ManifestFetchFailed，stage 区分三个阶段：
- transport: 无法连接、超时、非 2xx
- parse: 响应体不是 JSON 对象
- validation: 缺少 frame 或 frame.name

拉取器本身不重试，也不落库；重试由下一次调度负责，落库由调用方负责。
"""

from typing import Any

import httpx

from farstore.core.config import settings
from farstore.core.errors import ManifestFetchFailed
from farstore.core.logging import get_logger

logger = get_logger("manifest")


def normalize_domain(domain: str) -> str:
    """去掉首尾空白与结尾的点，并转小写"""
    return domain.strip().rstrip(".").lower()


class ManifestFetcher:
    """Manifest 拉取器

    Attributes:
        path: manifest 的固定路径
        timeout: 单次请求超时（秒）
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        path: str | None = None,
        timeout: float | None = None,
    ):
        self.path = path or settings.MANIFEST_PATH
        self.timeout = timeout or settings.MANIFEST_TIMEOUT_SECONDS
        self._client = client or httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=True,
            headers={"User-Agent": settings.MANIFEST_USER_AGENT, "Accept": "application/json"},
        )
        self._owns_client = client is None

    def manifest_url(self, domain: str) -> str:
        return f"https://{normalize_domain(domain)}{self.path}"

    async def fetch_manifest(self, domain: str) -> dict[str, Any]:
        """拉取并校验 manifest

        Args:
            domain: 域名（会先转小写）

        Returns:
            manifest 中的 frame 对象

        Raises:
            ManifestFetchFailed: 任一阶段失败
        """
        domain = normalize_domain(domain)
        url = self.manifest_url(domain)

        try:
            response = await self._client.get(url, timeout=self.timeout)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise self._failed(domain, ManifestFetchFailed.STAGE_TRANSPORT, url, "timeout") from e
        except httpx.HTTPStatusError as e:
            raise self._failed(
                domain, ManifestFetchFailed.STAGE_TRANSPORT, url, f"HTTP {e.response.status_code}"
            ) from e
        except httpx.RequestError as e:
            raise self._failed(domain, ManifestFetchFailed.STAGE_TRANSPORT, url, str(e)) from e

        try:
            document = response.json()
        except ValueError as e:
            raise self._failed(domain, ManifestFetchFailed.STAGE_PARSE, url, "invalid json") from e
        if not isinstance(document, dict):
            raise self._failed(domain, ManifestFetchFailed.STAGE_PARSE, url, "not a json object")

        frame = document.get("frame")
        name = frame.get("name") if isinstance(frame, dict) else None
        if not isinstance(name, str) or not name.strip():
            raise self._failed(domain, ManifestFetchFailed.STAGE_VALIDATION, url, "missing frame.name")

        logger.debug("manifest 拉取成功", domain=domain, name=name)
        return frame

    @staticmethod
    def _failed(domain: str, stage: str, url: str, detail: str) -> ManifestFetchFailed:
        logger.warning("manifest 拉取失败", domain=domain, stage=stage, detail=detail)
        return ManifestFetchFailed(domain, stage, url, detail)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
