# locale_sync/config.py

import enum
import tempfile
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from locale_sync.utils import validate_lang_codes

# 配置为 0 时，调度器回退到的周期间隔（分钟）
FALLBACK_MINUTES_BETWEEN_CYCLES = 10


class TranslatorEngine(str, enum.Enum):
    LIBRE = "libre"
    DEBUG = "debug"


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: Literal["json", "console"] = "console"


class LocalizationConfig(BaseModel):
    default_language: str = "en"
    ignored_languages: list[str] = Field(default_factory=list)
    minutes_between_cycles: int = Field(default=60, ge=0)
    old_logs_delete_after_days: int = Field(default=30, gt=0)

    @field_validator("default_language")
    @classmethod
    def validate_default_language(cls, v: str) -> str:
        validate_lang_codes([v])
        return v.lower()

    @field_validator("ignored_languages")
    @classmethod
    def validate_ignored_languages(cls, v: list[str]) -> list[str]:
        validate_lang_codes(v)
        return [code.lower() for code in v]

    @property
    def cycle_interval_minutes(self) -> int:
        return self.minutes_between_cycles or FALLBACK_MINUTES_BETWEEN_CYCLES


class TranslatorConfig(BaseModel):
    engine: TranslatorEngine = TranslatorEngine.LIBRE
    host: str = "http://localhost:5000"
    api_key: SecretStr | None = None
    needs_key: bool = False
    retries_on_failure: int = Field(
        default=3, ge=0, description="临时性失败时的最大尝试次数（0 视为 1）"
    )
    wait_seconds_before_retry: float = Field(default=1.0, ge=0)
    translate_endpoint: str = "/translate"
    detect_language_endpoint: str = "/detect"
    languages_endpoint: str = "/languages"
    translate_file_endpoint: str = "/translate_file"
    timeout_total: float = Field(default=30.0, gt=0)
    timeout_connect: float = Field(default=5.0, gt=0)
    max_concurrency: int | None = Field(
        default=None, description="最大并发请求数", gt=0
    )

    @property
    def max_attempts(self) -> int:
        return max(1, self.retries_on_failure)


class QueueConfig(BaseModel):
    batch_size: int = Field(default=20, gt=0, description="每个缓冲批次的短语数")
    language_concurrency: int = Field(
        default=1, gt=0, description="同时处理的语言数，默认逐个语言串行处理"
    )


class StoreConfig(BaseModel):
    server_locales_dir: Path = Path("Locales")
    client_locales_dir: Path = Path("LocalesClient")
    language_names_path: Path = Path("language_names.json")
    snapshot_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()) / "locale_sync"
    )


class LocalizerConfig(BaseModel):
    """同步查询门面的缓存配置。"""

    maxsize: int = Field(default=128, gt=0)
    ttl: int = Field(default=300, gt=0)
    translate_timeout: float = Field(
        default=10.0, gt=0, description="缺失短语的翻译回退最长等待秒数"
    )


class LocaleSyncConfig(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    database_url: str = "sqlite+aiosqlite:///locale_sync.db"

    localization: LocalizationConfig = Field(default_factory=LocalizationConfig)
    translator: TranslatorConfig = Field(default_factory=TranslatorConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    localizer: LocalizerConfig = Field(default_factory=LocalizerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
