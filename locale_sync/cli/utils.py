# locale_sync/cli/utils.py
"""提供 CLI 命令共享的 Rich 渲染函数。"""

from datetime import datetime
from typing import Optional

from rich.console import Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from locale_sync.core.types import TranslationContext, WorkerResult


def _fmt_time(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M:%S") if value else "-"


def render_worker_result(result: WorkerResult) -> Panel:
    """将一个周期结果渲染为摘要面板。"""
    status = "[green]成功[/green]" if result.successful else "[red]失败[/red]"
    check = result.cycle_check

    overview = Table(show_header=False, box=None, padding=(0, 1))
    overview.add_column(style="dim", justify="right")
    overview.add_column()
    overview.add_row("开始时间", _fmt_time(result.start_time))
    overview.add_row("结束时间", _fmt_time(result.end_time))
    overview.add_row("状态", status)
    overview.add_row("翻译服务语言数", str(check.libre_languages_count))
    overview.add_row(
        "语言名称",
        f"{result.language_stats.done}/{result.language_stats.needed}"
        f" (错误 {result.language_stats.errors})",
    )
    overview.add_row("清理历史记录", str(result.cleanup.old_results_deleted))

    contexts = Table(title="翻译", show_lines=False)
    contexts.add_column("上下文")
    contexts.add_column("快照", justify="center")
    contexts.add_column("需要", justify="right")
    contexts.add_column("成功", justify="right")
    contexts.add_column("语言数", justify="right")
    contexts.add_column("结果", justify="center")
    for context in TranslationContext:
        translations = result.translations_for(context)
        contexts.add_row(
            context.value,
            "✓" if translations.old_file_found else "✗",
            str(translations.translations_needed),
            str(sum(r.successful_count for r in translations.results)),
            str(len(translations.results)),
            "[green]✓[/green]" if translations.successful else "[red]✗[/red]",
        )

    renderables: list[RenderableType] = [overview, contexts]
    if result.errors:
        errors = Table(title="错误", show_header=True)
        errors.add_column("阶段")
        errors.add_column("消息", overflow="fold")
        for error in result.errors:
            errors.add_row(error.stage_at_failure.value, Text(error.message))
        renderables.append(errors)

    return Panel(
        Group(*renderables),
        title="同步周期结果",
        border_style="green" if result.successful else "red",
        expand=False,
    )


def render_history_table(results: list[WorkerResult]) -> Table:
    table = Table(title="最近的同步周期")
    table.add_column("开始时间")
    table.add_column("耗时 (秒)", justify="right")
    table.add_column("结果", justify="center")
    table.add_column("前端", justify="right")
    table.add_column("后端", justify="right")
    table.add_column("错误数", justify="right")
    for result in results:
        duration = (
            f"{(result.end_time - result.start_time).total_seconds():.1f}"
            if result.end_time
            else "-"
        )
        table.add_row(
            _fmt_time(result.start_time),
            duration,
            "[green]✓[/green]" if result.successful else "[red]✗[/red]",
            str(result.frontend.translations_needed),
            str(result.backend.translations_needed),
            str(len(result.errors)),
        )
    return table
