"""应用配置管理"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic_settings import BaseSettings, SettingsConfigDict

from farstore.core.paths import get_project_root


class Settings(BaseSettings):
    """应用配置"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ========== 数据库配置 ==========
    DATABASE_BACKEND: str = "sqlite"  # sqlite, postgres
    DATABASE_PATH: str = "./data/farstore.db"

    # PostgreSQL（DATABASE_BACKEND=postgres 时生效）
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "farstore"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "farstore"
    DATABASE_POOL_SIZE: int = 10
    DATABASE_POOL_MAX_OVERFLOW: int = 10
    DATABASE_POOL_TIMEOUT: int = 30

    # ========== 链上配置 ==========
    BASE_JSON_RPC_URL: str = "https://mainnet.base.org"
    FARSTORE_CONTRACT: str = ""  # 注册表合约地址（生产环境必填）
    FUNDS_ESCROW_CONTRACT: str = ""  # 资金托管合约，留空则 funding 恒为 0
    POOL_FACTORY_CONTRACT: str = ""  # DEX 池工厂合约（pool 策略必填）
    REFERENCE_TOKEN: str = "0x4200000000000000000000000000000000000006"  # 参考资产（Base WETH）
    REFERENCE_TOKEN_DECIMALS: int = 18
    POOL_FEE_TIER: int = 10000  # 1% 费率档位
    RPC_TIMEOUT_SECONDS: float = 5.0

    # 批量读取（部分注册表版本提供 getFrames(start, count)）
    LEDGER_BATCH_READS: bool = False
    LEDGER_BATCH_SIZE: int = 50

    # ========== Manifest 拉取配置 ==========
    MANIFEST_PATH: str = "/.well-known/farcaster.json"
    MANIFEST_TIMEOUT_SECONDS: float = 5.0
    MANIFEST_USER_AGENT: str = "farstore-sync/0.1"

    # ========== 流动性配置 ==========
    # pool: 直接读取 DEX 池中参考资产余额
    # aggregator: 汇总行情聚合器返回的所有交易对流动性
    LIQUIDITY_STRATEGY: str = "pool"
    AGGREGATOR_API_URL: str = "https://api.dexscreener.com/latest/dex/tokens"
    AGGREGATOR_TIMEOUT_SECONDS: float = 5.0

    # ========== 同步任务配置 ==========
    SYNC_ENABLED: bool = True  # 是否注册同步任务
    SYNC_CRON_EXPRESSION: str = "* * * * *"  # 发现 / 重同步 / API Key 重载
    METRICS_REFRESH_INTERVAL_SECONDS: int = 60  # 链上指标刷新间隔（秒）
    RESYNC_BATCH_SIZE: int = 10  # 每次重同步的最大条数
    METRICS_KEY: str = "domain"  # 指标缓存键: domain, frame_id
    SYNC_RUN_ON_START: bool = True  # 启动时先同步执行一轮所有任务
    TASK_TIMEOUT_SECONDS: int = 300  # 单次任务执行超时（秒）

    # ========== 服务配置 ==========
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "*"
    APPS_MAX_FRAME_IDS: int = 20  # /apps 单次最多查询的 frameId 数量

    # 日志配置
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_MODE: str = "detailed"  # simple, detailed, json
    LOG_FILE: str = "./logs/farstore.log"  # 日志文件路径
    LOG_FILE_ROTATION: str = "10 MB"  # 日志文件轮转大小
    LOG_FILE_RETENTION: str = "7 days"  # 日志文件保留时间

    # ENV_JSON 目录（复杂 JSON 配置可放在独立文件中）
    ENV_JSON_DIR: str = ""

    @property
    def database_url(self) -> str:
        """数据库 URL"""
        if self.DATABASE_BACKEND == "postgres":
            return (
                f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
                f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
            )
        return f"sqlite+aiosqlite:///{self.DATABASE_PATH}"

    @property
    def cors_origins_list(self) -> list[str]:
        """
        CORS 允许的源列表

        支持两种写法：
        1. 逗号分隔字符串
        2. JSON 数组（环境变量或 ENV_JSON_DIR/CORS_ORIGINS.json）
        """
        parsed = self._load_json_from_env_or_file("CORS_ORIGINS", self.CORS_ORIGINS)
        if isinstance(parsed, list):
            return [str(origin).strip() for origin in parsed]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def escrow_enabled(self) -> bool:
        """是否配置了资金托管合约"""
        return bool(self.FUNDS_ESCROW_CONTRACT.strip())

    def ensure_data_dir(self) -> None:
        """确保数据目录存在"""
        if self.DATABASE_BACKEND == "sqlite":
            Path(self.DATABASE_PATH).parent.mkdir(parents=True, exist_ok=True)

    def _load_json_from_env_or_file(self, var_name: str, env_value: str) -> Any:
        """
        通用 JSON 配置加载函数

        加载优先级：
        1. 优先使用 .env 中的环境变量（env_value）
        2. 若环境变量不是 JSON，尝试从 ENV_JSON_DIR/<var_name>.json 加载
        3. 若都不存在，返回 None
        """
        raw = (env_value or "").strip()
        if raw:
            try:
                return json.loads(raw)
            except json.JSONDecodeError:
                pass

        if not self.ENV_JSON_DIR:
            return None

        env_dir = Path(self.ENV_JSON_DIR)
        if not env_dir.is_absolute():
            env_dir = (get_project_root() / env_dir).resolve()
        json_file = env_dir / f"{var_name}.json"
        if not json_file.exists():
            return None

        try:
            return json.loads(json_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return None


@lru_cache
def get_settings() -> Settings:
    """获取配置单例"""
    return Settings()


settings = get_settings()
