# locale_sync/cli/worker.py
"""处理后台同步 Worker 运行的 CLI 命令。"""

import asyncio

import structlog
import typer
from rich.console import Console

from locale_sync.cli.state import State
from locale_sync.cli.utils import render_worker_result
from locale_sync.factory import create_cycle_factory, create_scheduler
from locale_sync.notifier import LoggingNotifier

logger = structlog.get_logger(__name__)
console = Console()
worker_app = typer.Typer(help="启动后台同步 Worker")


@worker_app.command("start")
def worker_start(ctx: typer.Context) -> None:
    """启动调度器，按配置的间隔持续运行同步周期，直到收到 CTRL+C。"""
    state: State = ctx.obj
    scheduler = create_scheduler(state.config, LoggingNotifier())

    console.print(
        f"▶️  [bold green]Worker 已启动[/bold green]，"
        f"每 {scheduler.interval_minutes} 分钟运行一次同步周期。按 CTRL+C 停止。"
    )
    try:
        asyncio.run(scheduler.run_forever())
    except KeyboardInterrupt:
        logger.info("主循环被强制中断。")
    console.print(
        f"[bold]✅ Worker 已安全关闭。[/bold] "
        f"共运行 {scheduler.cycles_started} 个周期，丢弃 {scheduler.ticks_dropped} 次触发。"
    )


@worker_app.command("run-once")
def worker_run_once(ctx: typer.Context) -> None:
    """立即运行一个同步周期并打印结果摘要。"""
    state: State = ctx.obj
    factory = create_cycle_factory(state.config, LoggingNotifier())

    async def _run() -> None:
        async with factory() as cycle:
            result = await cycle.run()
        console.print(render_worker_result(result))
        if not result.successful:
            raise typer.Exit(code=1)

    asyncio.run(_run())
