# locale_sync/scheduler.py
"""
周期调度器：按固定间隔触发同步周期，保证同一时刻最多只有一个周期在运行。

周期运行期间到来的触发会被直接丢弃（而不是排队）。
"""

import asyncio
import signal
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager
from enum import Enum
from typing import Any, Optional, Protocol

import structlog

from locale_sync.core.types import WorkerResult

logger = structlog.get_logger(__name__)


class SchedulerState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"


class RunnableCycle(Protocol):
    async def run(self) -> WorkerResult: ...


CycleFactory = Callable[[], AbstractAsyncContextManager[RunnableCycle]]


class Scheduler:
    """
    Args:
        cycle_factory: 每次触发时调用，返回一个异步上下文管理器，
            为该周期创建独立的协作者作用域（存储、数据库连接等）并产出周期对象。
        interval_minutes: 两次触发之间的间隔（分钟）。
    """

    def __init__(self, cycle_factory: CycleFactory, interval_minutes: float):
        if interval_minutes <= 0:
            raise ValueError("周期间隔必须为正数")
        self._cycle_factory = cycle_factory
        self.interval_minutes = interval_minutes
        self.state = SchedulerState.IDLE
        self.cycles_started = 0
        self.ticks_dropped = 0
        self.last_result: Optional[WorkerResult] = None

    @property
    def interval_seconds(self) -> float:
        return self.interval_minutes * 60

    async def tick(self) -> bool:
        """
        触发一次周期。

        Returns:
            本次触发是否真正启动了周期；周期运行中时返回 False。
        """
        if self.state is SchedulerState.RUNNING:
            self.ticks_dropped += 1
            logger.warning("上一个周期仍在运行，本次触发被丢弃。", dropped=self.ticks_dropped)
            return False

        self.state = SchedulerState.RUNNING
        self.cycles_started += 1
        try:
            async with self._cycle_factory() as cycle:
                self.last_result = await cycle.run()
        except Exception:
            logger.error("同步周期中发生未处理的异常", exc_info=True)
        finally:
            self.state = SchedulerState.IDLE
        return True

    async def run(self, shutdown_event: asyncio.Event) -> None:
        """立即触发一次，然后每隔一个间隔触发一次，直到 `shutdown_event` 被设置。"""
        in_flight: set[asyncio.Task[bool]] = set()
        logger.info("调度器已启动", interval_minutes=self.interval_minutes)

        while not shutdown_event.is_set():
            task = asyncio.create_task(self.tick())
            in_flight.add(task)
            task.add_done_callback(in_flight.discard)
            try:
                await asyncio.wait_for(shutdown_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                continue

        if in_flight:
            logger.info("等待进行中的周期结束...")
            await asyncio.gather(*in_flight, return_exceptions=True)
        logger.info("调度器已停止")

    async def run_forever(self) -> None:
        """安装 SIGINT/SIGTERM 处理器并运行，收到信号后优雅停机。"""
        loop = asyncio.get_running_loop()
        shutdown_event = asyncio.Event()

        def _signal_handler(signum: int, frame: Any) -> None:
            logger.warning("收到停机信号，正在准备优雅关闭...", signal=signal.strsignal(signum))
            if not shutdown_event.is_set():
                loop.call_soon_threadsafe(shutdown_event.set)

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler, sig, None)
        try:
            await self.run(shutdown_event)
        finally:
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.remove_signal_handler(sig)
