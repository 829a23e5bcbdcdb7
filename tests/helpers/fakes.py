# tests/helpers/fakes.py
"""
测试用的协作者替身与数据工厂。

这些替身实现了 `core.interfaces` 中的协议，使周期可以在不依赖数据库和
网络的情况下被完整执行。
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

from locale_sync.config import (
    LocaleSyncConfig,
    LocalizationConfig,
    StoreConfig,
    TranslatorConfig,
    TranslatorEngine,
)
from locale_sync.core.types import WorkerResult, WorkerStage

TEST_DEFAULT_LANG = "en"


def make_config(tmp_path: Path, **localization: Any) -> LocaleSyncConfig:
    """创建一个所有路径都位于 `tmp_path` 下的配置。"""
    return LocaleSyncConfig(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'history.db'}",
        localization=LocalizationConfig(**localization),
        translator=TranslatorConfig(
            engine=TranslatorEngine.DEBUG, wait_seconds_before_retry=0
        ),
        store=StoreConfig(
            server_locales_dir=tmp_path / "Locales",
            client_locales_dir=tmp_path / "LocalesClient",
            language_names_path=tmp_path / "language_names.json",
            snapshot_dir=tmp_path / "snapshots",
        ),
    )


def write_json(path: Path, data: dict[str, str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")


def read_json(path: Path) -> dict[str, str]:
    return json.loads(path.read_text(encoding="utf-8"))


class InMemoryHistoryStore:
    """`HistoryStore` 的内存实现。"""

    def __init__(self) -> None:
        self.results: list[WorkerResult] = []
        self.connected = False
        self.deleted_calls: list[int] = []

    async def connect(self) -> None:
        self.connected = True

    async def close(self) -> None:
        self.connected = False

    async def save(self, result: WorkerResult) -> None:
        self.results.append(result.model_copy(deep=True))

    async def load_last(self) -> Optional[WorkerResult]:
        return self.results[-1] if self.results else None

    async def list_recent(self, limit: int = 10) -> list[WorkerResult]:
        return list(reversed(self.results))[:limit]

    async def delete_older_than(self, days: int) -> int:
        self.deleted_calls.append(days)
        return 0


class RecordingNotifier:
    """记录所有收到的进度事件。"""

    def __init__(self) -> None:
        self.events: list[tuple[str, Any]] = []

    @property
    def statuses(self) -> list[WorkerStage]:
        return [payload for name, payload in self.events if name == "status"]

    @property
    def completed(self) -> list[WorkerStage]:
        return [payload[0] for name, payload in self.events if name == "completed"]

    async def on_cycle_started(self) -> None:
        self.events.append(("started", None))

    async def on_status_changed(self, stage: WorkerStage) -> None:
        self.events.append(("status", stage))

    async def on_stage_completed(
        self, stage: WorkerStage, results: dict[str, Any]
    ) -> None:
        self.events.append(("completed", (stage, results)))


class FailingNotifier:
    """每次投递都抛出异常的通知端。"""

    async def on_cycle_started(self) -> None:
        raise ConnectionError("hub offline")

    async def on_status_changed(self, stage: WorkerStage) -> None:
        raise ConnectionError("hub offline")

    async def on_stage_completed(
        self, stage: WorkerStage, results: dict[str, Any]
    ) -> None:
        raise ConnectionError("hub offline")
