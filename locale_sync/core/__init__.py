# locale_sync/core/__init__.py
"""
本核心包定义了 Locale-Sync 系统中最基础、最稳定的构建块。

这里包含了系统的核心数据类型、接口协议和自定义异常，它们共同构成了
整个应用的“契约”。所有其他模块都依赖于此核心包，但本包不依赖于
项目中的任何其他模块。
"""

from .exceptions import (
    APIError,
    ConfigurationError,
    HistoryError,
    LocaleSyncError,
    StageAbortedError,
    StoreError,
)
from .interfaces import DictionaryStore, HistoryStore, ProgressNotifier
from .types import (
    CleanupResult,
    CycleCheck,
    Detection,
    Dictionary,
    DictionaryTree,
    LanguageTranslationStats,
    PhraseChange,
    PhraseItem,
    TranslateFailure,
    TranslateFileResult,
    TranslateOutcome,
    TranslateSuccess,
    TranslationContext,
    TranslationError,
    TranslationRequest,
    TranslationResult,
    Translations,
    WorkerError,
    WorkerResult,
    WorkerStage,
    utcnow,
)

__all__ = [
    # from exceptions.py
    "LocaleSyncError",
    "ConfigurationError",
    "StoreError",
    "HistoryError",
    "APIError",
    "StageAbortedError",
    # from interfaces.py
    "DictionaryStore",
    "HistoryStore",
    "ProgressNotifier",
    # from types.py
    "Dictionary",
    "DictionaryTree",
    "WorkerStage",
    "TranslationContext",
    "PhraseChange",
    "TranslateSuccess",
    "TranslateFailure",
    "TranslateOutcome",
    "Detection",
    "TranslateFileResult",
    "TranslationError",
    "WorkerError",
    "CycleCheck",
    "LanguageTranslationStats",
    "PhraseItem",
    "TranslationRequest",
    "TranslationResult",
    "Translations",
    "CleanupResult",
    "WorkerResult",
    "utcnow",
]
