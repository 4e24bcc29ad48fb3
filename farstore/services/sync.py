"""同步引擎

四个互相独立的周期任务，各自由调度器按自己的节奏触发：
- discover_new_apps: 增量发现，从本地水位线 +1 处理到注册表条目数，遇到第一个失败即中止
- resync_stale_apps: 重同步最久未尝试的一批条目，单条失败只记录不中止
- refresh_derived_metrics: 重算链上指标，整体替换缓存
- reload_api_keys: 重建 API Key 缓存，失败时保留旧快照

任务之间不加锁，同一域名的并发写入依赖 AppRepository 的原子 upsert 收敛。
"""

from collections.abc import AsyncIterator, Callable
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import asdict, dataclass, field
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from farstore.core.config import Settings, settings
from farstore.core.database import get_db_context
from farstore.core.errors import LedgerUnavailable, ManifestFetchFailed, StoreUnavailable
from farstore.core.logging import get_logger
from farstore.repositories import ApiKeyRepository, AppRepository
from farstore.services.cache import SnapshotCache, api_key_cache, metrics_cache
from farstore.services.ledger import LedgerReader
from farstore.services.manifest import ManifestFetcher, normalize_domain
from farstore.services.metrics import MetricsService

logger = get_logger("sync")

RepoT = TypeVar("RepoT")

SessionContext = Callable[[], AbstractAsyncContextManager[AsyncSession]]


@dataclass
class SyncReport:
    """一次任务执行的统计"""

    task: str
    processed: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: list[dict[str, Any]] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def record_failure(self, **context: Any) -> None:
        self.failed.append(context)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class SyncService:
    """同步引擎

    Attributes:
        ledger: 注册表读取
        fetcher: manifest 拉取
        metrics: 链上指标计算，为 None 时跳过指标刷新
    """

    def __init__(
        self,
        ledger: LedgerReader,
        fetcher: ManifestFetcher,
        metrics: MetricsService | None = None,
        *,
        session_context: SessionContext = get_db_context,
        metrics_snapshot: SnapshotCache | None = None,
        api_key_snapshot: SnapshotCache | None = None,
        config: Settings | None = None,
    ):
        self.ledger = ledger
        self.fetcher = fetcher
        self.metrics = metrics
        self._session_context = session_context
        self.metrics_cache = metrics_snapshot if metrics_snapshot is not None else metrics_cache
        self.api_key_cache = api_key_snapshot if api_key_snapshot is not None else api_key_cache
        self.config = config or settings

    @asynccontextmanager
    async def _repository(
        self, repo_cls: Callable[[AsyncSession], RepoT], operation: str
    ) -> AsyncIterator[RepoT]:
        """在独立会话中使用 Repository，存储异常统一转为 StoreUnavailable"""
        try:
            async with self._session_context() as session:
                yield repo_cls(session)
        except SQLAlchemyError as e:
            logger.error("存储操作失败", operation=operation, error=str(e))
            raise StoreUnavailable(operation, str(e)) from e

    # ========== 单域名同步 ==========

    async def sync_domain(self, domain: str, frame_id: int | None = None) -> dict[str, Any]:
        """同步单个域名

        拉取 manifest，必要时向注册表反查序号，成功后原子 upsert。
        失败时只推进 last_check_attempt 并重新抛出。

        Args:
            domain: 域名（会先转小写）
            frame_id: 已知的注册表序号，为空时通过 getId 反查

        Returns:
            manifest 中的 frame 对象

        Raises:
            ManifestFetchFailed: manifest 拉取或校验失败
            LedgerUnavailable: 反查序号失败
            StoreUnavailable: 写库失败
        """
        domain = normalize_domain(domain)
        if not domain:
            raise ValueError("domain 不能为空")

        try:
            frame = await self.fetcher.fetch_manifest(domain)
            if frame_id is None:
                frame_id = await self.ledger.id_of(domain)
        except (ManifestFetchFailed, LedgerUnavailable) as e:
            logger.warning(
                "同步失败，记录尝试时间",
                domain=domain,
                frame_id=frame_id,
                error_code=e.code,
                stage=getattr(e, "stage", None),
            )
            await self._record_attempt(domain, frame_id)
            raise

        async with self._repository(AppRepository, "upsert_app_record") as repo:
            await repo.upsert_app_record(domain, frame_id, frame)

        logger.info("同步完成", domain=domain, frame_id=frame_id, name=frame.get("name"))
        return frame

    async def _record_attempt(self, domain: str, frame_id: int | None) -> None:
        async with self._repository(AppRepository, "touch_attempt") as repo:
            await repo.touch_attempt(domain, frame_id)

    # ========== 任务 A：增量发现 ==========

    async def discover_new_apps(self) -> SyncReport:
        """同步 [1, 注册表条目数] 中本地还没有记录的序号

        按序号升序处理，第一个失败直接抛出，剩余条目留给下一次调度。
        失败的序号会留下仅含尝试时间的记录，之后由重同步任务接手。
        """
        report = SyncReport(task="discover_apps")

        count = await self.ledger.count()
        async with self._repository(AppRepository, "missing_ledger_ids") as repo:
            local_max = await repo.max_known_ledger_id()
            missing = await repo.missing_ledger_ids(count)
        report.extra.update(ledger_count=count, local_max=local_max, missing=len(missing))

        if not missing:
            logger.debug("没有新条目", ledger_count=count, local_max=local_max)
            return report

        for index in missing:
            domain = await self.ledger.domain_at(index)
            report.processed += 1
            if not domain:
                logger.warning("注册表条目域名为空，跳过", frame_id=index)
                report.skipped += 1
                continue
            await self.sync_domain(domain, index)
            report.succeeded += 1

        logger.info(
            "增量发现完成",
            ledger_count=count,
            local_max=local_max,
            synced=report.succeeded,
        )
        return report

    # ========== 任务 B：重同步 ==========

    async def resync_stale_apps(self, limit: int | None = None) -> SyncReport:
        """重同步最久未尝试的一批已登记条目

        manifest 拉取失败只记录，整批一定处理完；注册表 / 存储不可用时中止本周期。
        """
        limit = limit or self.config.RESYNC_BATCH_SIZE
        report = SyncReport(task="resync_apps")

        async with self._repository(AppRepository, "select_stale_batch") as repo:
            rows = await repo.select_stale_batch(limit)
            batch = [(row.frame_id, row.domain) for row in rows]

        for frame_id, known_domain in batch:
            report.processed += 1
            domain = await self.ledger.domain_at(frame_id)
            if not domain:
                logger.warning("注册表条目域名为空，仅记录尝试", frame_id=frame_id)
                await self._record_attempt(known_domain, frame_id)
                report.skipped += 1
                continue
            try:
                await self.sync_domain(domain, frame_id)
            except (ManifestFetchFailed, LedgerUnavailable) as e:
                logger.warning("Unable to resync domain", domain=domain, frame_id=frame_id)
                report.record_failure(domain=domain, frame_id=frame_id, error=str(e))
                continue
            report.succeeded += 1

        logger.info(
            "重同步完成",
            batch_size=len(batch),
            succeeded=report.succeeded,
            failed=len(report.failed),
        )
        return report

    # ========== 任务 C：链上指标 ==========

    async def refresh_derived_metrics(self) -> SyncReport:
        """重算链上指标并整体替换缓存

        注册表读取失败时直接抛出，旧快照保持可见。
        """
        report = SyncReport(task="refresh_metrics")
        if self.metrics is None:
            logger.debug("未配置链上指标服务，跳过")
            report.extra["reason"] = "metrics disabled"
            return report

        build = await self.metrics.build_snapshot()
        self.metrics_cache.swap(build.snapshot)

        report.processed = build.total
        report.succeeded = len(build.snapshot)
        report.skipped = build.hidden
        report.failed = build.failed
        report.extra["cache_version"] = self.metrics_cache.version
        logger.info(
            "链上指标已刷新",
            entries=len(build.snapshot),
            hidden=build.hidden,
            failed=len(build.failed),
        )
        return report

    # ========== 任务 D：API Key 缓存 ==========

    async def reload_api_keys(self) -> SyncReport:
        """重建 API Key 缓存

        读取失败时抛出 StoreUnavailable，旧快照保持不变。
        """
        report = SyncReport(task="reload_api_keys")

        async with self._repository(ApiKeyRepository, "list_api_keys") as repo:
            rows = await repo.list_api_keys()

        self.api_key_cache.swap(dict(rows))
        report.processed = len(rows)
        report.succeeded = len(self.api_key_cache)
        report.extra["cache_version"] = self.api_key_cache.version
        logger.debug("API Key 缓存已重建", size=len(self.api_key_cache))
        return report
