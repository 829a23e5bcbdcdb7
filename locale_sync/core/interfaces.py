# locale_sync/core/interfaces.py
"""
本模块使用 typing.Protocol 定义了同步引擎所依赖的外部协作者接口。

传输层（HTTP/推送）与关系型存储都不在本项目范围内，引擎只通过这些协议与它们交互。
"""

from typing import Any, Optional, Protocol

from locale_sync.core.types import (
    Dictionary,
    DictionaryTree,
    TranslationContext,
    WorkerResult,
    WorkerStage,
)


class DictionaryStore(Protocol):
    """定义了本地化字典存储的纯异步接口协议。"""

    async def load(
        self, language: str, context: TranslationContext
    ) -> Optional[Dictionary]: ...

    async def save(
        self, language: str, context: TranslationContext, dictionary: Dictionary
    ) -> None: ...

    async def load_snapshot(self, context: TranslationContext) -> Optional[Dictionary]: ...

    async def save_snapshot(
        self, context: TranslationContext, dictionary: Dictionary
    ) -> None: ...

    async def list_present_languages(self, context: TranslationContext) -> list[str]: ...

    async def load_tree(self, context: TranslationContext) -> DictionaryTree: ...

    async def save_tree(
        self, context: TranslationContext, tree: DictionaryTree
    ) -> dict[str, bool]: ...

    async def load_language_names(self) -> dict[str, str]: ...

    async def save_language_names(self, names: dict[str, str]) -> None: ...


class HistoryStore(Protocol):
    """定义了周期历史（WorkerResult）持久化的接口协议。"""

    async def connect(self) -> None: ...
    async def close(self) -> None: ...
    async def save(self, result: WorkerResult) -> None: ...
    async def load_last(self) -> Optional[WorkerResult]: ...
    async def list_recent(self, limit: int = 10) -> list[WorkerResult]: ...
    async def delete_older_than(self, days: int) -> int: ...


class ProgressNotifier(Protocol):
    """进度通知的接收端。投递是尽力而为的，失败不得影响周期本身。"""

    async def on_cycle_started(self) -> None: ...

    async def on_status_changed(self, stage: WorkerStage) -> None: ...

    async def on_stage_completed(
        self, stage: WorkerStage, results: dict[str, Any]
    ) -> None: ...
