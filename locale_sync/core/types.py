# locale_sync/core/types.py
"""
本模块定义了 Locale-Sync 系统的核心数据类型。

`WorkerResult` 是一次同步周期的聚合根：周期开始时创建，由当前阶段独占修改，
周期结束（或致命错误）时整体持久化一次。
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Union

from pydantic import BaseModel, ConfigDict, Field

Dictionary = dict[str, str]
"""一个扁平的 key -> 短语 映射，对应一个语言在一个上下文中的本地化文件。"""

DictionaryTree = dict[str, Dictionary]
"""语言代码 -> 字典，供传输层一次性读取/写入全部字典。"""


def utcnow() -> datetime:
    """返回带时区信息的当前 UTC 时间。"""
    return datetime.now(timezone.utc)


class WorkerStage(str, Enum):
    """同步周期的各个阶段，按声明顺序构成全序。"""

    IDLE = "idle"
    CHECK_SERVERS_AND_FILES = "check_servers_and_files"
    CHECK_LANGUAGES_TRANSLATIONS = "check_languages_translations"
    TRANSLATING_FRONTEND = "translating_frontend"
    TRANSLATING_BACKEND = "translating_backend"
    STORING_CHANGES = "storing_changes"

    @property
    def order(self) -> int:
        return list(WorkerStage).index(self)

    @property
    def text(self) -> str:
        """面向人类的阶段描述，用于进度通知。"""
        return _STAGE_TEXTS[self]


_STAGE_TEXTS = {
    WorkerStage.IDLE: "Idle",
    WorkerStage.CHECK_SERVERS_AND_FILES: "Checking servers and files",
    WorkerStage.CHECK_LANGUAGES_TRANSLATIONS: "Translating language names",
    WorkerStage.TRANSLATING_FRONTEND: "Translating frontend",
    WorkerStage.TRANSLATING_BACKEND: "Translating backend",
    WorkerStage.STORING_CHANGES: "Storing changes",
}


class TranslationContext(str, Enum):
    """区分面向客户端与面向服务端的两套本地化字典。"""

    FRONTEND = "frontend"
    BACKEND = "backend"


class PhraseChange(str, Enum):
    """一条短语在差异计划中的变更类型。"""

    ADD = "add"
    REMOVE = "remove"
    UPDATE = "update"


# --- 翻译客户端返回值 ---


class TranslateSuccess(BaseModel):
    """代表从翻译服务成功返回的单次翻译结果。"""

    translated_text: str
    alternatives: list[str] = Field(default_factory=list)
    attempts: int = 0


class TranslateFailure(BaseModel):
    """
    代表单次翻译的失败结果。

    `fallback_text` 始终是原文，保证下游写入的字典中不会出现空值。
    """

    error_message: str
    fallback_text: str
    is_retryable: bool = False
    unsupported: bool = False
    attempts: int = 0


TranslateOutcome = Union[TranslateSuccess, TranslateFailure]


class Detection(BaseModel):
    """语言检测的单个候选结果。"""

    language: str
    confidence: float = 0.0


class TranslateFileResult(BaseModel):
    """文件翻译成功后，服务端返回的译文文件地址。"""

    translated_file_url: str


# --- 周期结果（WorkerResult 聚合） ---


class TranslationError(BaseModel):
    """只追加的翻译错误日志条目，创建后不可修改。"""

    model_config = ConfigDict(frozen=True)

    time: datetime = Field(default_factory=utcnow)
    target_language: str
    error_message: str
    original_text: str


class WorkerError(BaseModel):
    """某个阶段抛出错误时记录的条目。"""

    model_config = ConfigDict(frozen=True)

    message: str
    time: datetime = Field(default_factory=utcnow)
    stage_at_failure: WorkerStage


class CycleCheck(BaseModel):
    """“检查服务与文件”阶段的快照，阶段结束时一次性构建，之后不可修改。"""

    model_config = ConfigDict(frozen=True)

    settings_loaded: bool = False
    default_translation_found: dict[TranslationContext, bool] = Field(
        default_factory=dict
    )
    ignored_languages_found: bool = False
    libre_languages_count: int = 0
    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime = Field(default_factory=utcnow)


class LanguageTranslationStats(BaseModel):
    """“翻译语言显示名称”阶段的统计。"""

    needed: int = 0
    done: int = 0
    errors: int = 0
    failed_translations: list[TranslationError] = Field(default_factory=list)
    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime = Field(default_factory=utcnow)


class PhraseItem(BaseModel):
    """差异计划中的一个条目。"""

    language_code: str
    phrase_key: str
    change: PhraseChange


class TranslationRequest(BaseModel):
    """某个语言的差异计划摘要，计数必须与差异引擎的结果完全一致。"""

    language_code: str
    to_add: int = 0
    to_remove: int = 0
    to_update: int = 0
    items: list[PhraseItem] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.to_add + self.to_remove + self.to_update


class TranslationResult(BaseModel):
    """某个语言处理完成后的结果。"""

    language_code: str
    successful_count: int = Field(default=0, ge=0)
    errors: list[str] = Field(default_factory=list)


class Translations(BaseModel):
    """单个上下文（前端/后端）翻译阶段的记录。"""

    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime = Field(default_factory=utcnow)
    old_file_found: bool = False
    translations_needed: int = 0
    successful: bool = True
    requests: list[TranslationRequest] = Field(default_factory=list)
    results: list[TranslationResult] = Field(default_factory=list)

    def add_result(self, result: TranslationResult) -> None:
        """追加一个语言结果，并校验成功数不超过该语言请求的总数。"""
        request = next(
            (r for r in self.requests if r.language_code == result.language_code),
            None,
        )
        if request is None:
            raise ValueError(f"语言 '{result.language_code}' 没有对应的翻译请求。")
        if result.successful_count > request.total:
            raise ValueError(
                f"语言 '{result.language_code}' 的成功数 {result.successful_count} "
                f"超过了请求总数 {request.total}。"
            )
        self.results.append(result)


class CleanupResult(BaseModel):
    """“存储变更”阶段的清理记录。"""

    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime = Field(default_factory=utcnow)
    client_snapshot_stored: bool = False
    server_snapshot_stored: bool = False
    old_results_deleted: int = 0


class WorkerResult(BaseModel):
    """一次同步周期的聚合根。"""

    start_time: datetime = Field(default_factory=utcnow)
    end_time: datetime | None = None
    successful: bool = True
    last_status: WorkerStage = WorkerStage.IDLE
    cycle_check: CycleCheck = Field(default_factory=CycleCheck)
    language_stats: LanguageTranslationStats = Field(
        default_factory=LanguageTranslationStats
    )
    frontend: Translations = Field(default_factory=Translations)
    backend: Translations = Field(default_factory=Translations)
    cleanup: CleanupResult = Field(default_factory=CleanupResult)
    errors: list[WorkerError] = Field(default_factory=list)

    def advance(self, stage: WorkerStage) -> None:
        """
        推进到指定阶段。

        周期内的状态只能向前推进；回到 IDLE 是唯一允许的“回绕”，表示周期结束。
        """
        if stage is not WorkerStage.IDLE and stage.order <= self.last_status.order:
            raise ValueError(
                f"非法的阶段回退: {self.last_status.value} -> {stage.value}"
            )
        self.last_status = stage

    def record_error(self, message: str, stage: WorkerStage | None = None) -> WorkerError:
        """追加一个 WorkerError，默认归属于当前阶段。"""
        error = WorkerError(message=message, stage_at_failure=stage or self.last_status)
        self.errors.append(error)
        return error

    def translations_for(self, context: TranslationContext) -> Translations:
        return self.frontend if context is TranslationContext.FRONTEND else self.backend
