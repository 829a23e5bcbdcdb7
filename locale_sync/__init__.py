# locale_sync/__init__.py
"""Locale-Sync: 一个周期运行的本地化字典同步引擎。

它按固定间隔比较默认语言字典与上次快照，通过机器翻译服务补齐各语言的
前端/后端本地化文件，并将每个周期的结果作为历史记录持久化。
"""

__version__ = "1.0.0"

from .config import LocaleSyncConfig, TranslatorEngine
from .cycle import CycleContext, TranslationCycle
from .factory import create_cycle_factory, create_scheduler
from .scheduler import Scheduler, SchedulerState

__all__ = [
    "__version__",
    "LocaleSyncConfig",
    "TranslatorEngine",
    "TranslationCycle",
    "CycleContext",
    "Scheduler",
    "SchedulerState",
    "create_cycle_factory",
    "create_scheduler",
]
