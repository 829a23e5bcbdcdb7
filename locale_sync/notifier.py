# locale_sync/notifier.py
"""进度通知的内置实现，以及尽力而为的投递包装。"""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import structlog

from locale_sync.core.types import WorkerStage

logger = structlog.get_logger(__name__)

NOTIFY_TIMEOUT_SECONDS = 5.0


async def safe_notify(
    callback: Callable[..., Awaitable[None]],
    *args: Any,
    timeout: float = NOTIFY_TIMEOUT_SECONDS,
) -> bool:
    """
    投递一条通知。超时或出错时只记录日志，绝不向周期传播。

    Returns:
        投递是否成功。
    """
    try:
        await asyncio.wait_for(callback(*args), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        logger.warning("进度通知超时，已放弃。", timeout=timeout)
    except Exception:
        logger.warning("进度通知投递失败，已忽略。", exc_info=True)
    return False


class NullNotifier:
    """丢弃所有通知。"""

    async def on_cycle_started(self) -> None:
        return None

    async def on_status_changed(self, stage: WorkerStage) -> None:
        return None

    async def on_stage_completed(
        self, stage: WorkerStage, results: dict[str, Any]
    ) -> None:
        return None


class LoggingNotifier:
    """将进度事件写入 structlog 日志。"""

    def __init__(self) -> None:
        self.log = structlog.get_logger("locale_sync.progress")

    async def on_cycle_started(self) -> None:
        self.log.info("同步周期开始")

    async def on_status_changed(self, stage: WorkerStage) -> None:
        self.log.info("阶段切换", stage=stage.value, text=stage.text)

    async def on_stage_completed(
        self, stage: WorkerStage, results: dict[str, Any]
    ) -> None:
        self.log.info("阶段完成", stage=stage.value, **_summarize(results))


def _summarize(results: dict[str, Any]) -> dict[str, Any]:
    """只保留标量字段，避免把整个结果树写进日志。"""
    summary: dict[str, Any] = {}
    for key, value in results.items():
        if isinstance(value, dict):
            summary.update(
                {
                    f"{key}.{k}": v
                    for k, v in value.items()
                    if isinstance(v, str | int | float | bool)
                }
            )
        elif isinstance(value, str | int | float | bool):
            summary[key] = value
    return summary
