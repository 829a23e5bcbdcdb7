# locale_sync/cli/main.py
"""Locale-Sync CLI 的主入口点。"""

import asyncio
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

import locale_sync
from locale_sync.cli.state import State
from locale_sync.cli.utils import render_history_table, render_worker_result
from locale_sync.cli.worker import worker_app
from locale_sync.config import LocaleSyncConfig
from locale_sync.core.exceptions import APIError, HistoryError
from locale_sync.core.types import TranslateSuccess
from locale_sync.history import SQLAlchemyHistoryStore
from locale_sync.logging_config import setup_logging
from locale_sync.translator import AUTO_LANGUAGE, create_translator

app = typer.Typer(
    name="locale-sync",
    help="🌐 Locale-Sync: 周期运行的本地化字典同步引擎。",
    add_completion=False,
    no_args_is_help=True,
)
app.add_typer(worker_app, name="worker")

console = Console()


def version_callback(value: bool) -> None:
    if value:
        console.print(f"Locale-Sync [bold cyan]v{locale_sync.__version__}[/bold cyan]")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="显示版本信息并退出。",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """主回调函数，在任何子命令执行前加载配置并配置日志。"""
    try:
        config = LocaleSyncConfig()
        setup_logging(log_level=config.logging.level, log_format=config.logging.format)
        ctx.obj = State(config=config)
    except Exception as e:
        console.print("[bold red]❌ 启动失败：无法加载配置或初始化日志。[/bold red]")
        console.print(f"[dim]{e}[/dim]")
        raise typer.Exit(code=1) from e


@app.command("history")
def show_history(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option("--limit", "-n", help="显示的记录数。", min=1)] = 10,
    last: Annotated[bool, typer.Option("--last", help="显示最近一次周期的详细结果。")] = False,
) -> None:
    """显示已持久化的同步周期历史。"""
    state: State = ctx.obj

    async def _load() -> None:
        history = SQLAlchemyHistoryStore.from_url(state.config.database_url)
        try:
            await history.connect()
            if last:
                result = await history.load_last()
                if result is None:
                    console.print("[yellow]⚠️ 还没有任何周期记录。[/yellow]")
                else:
                    console.print(render_worker_result(result))
                return
            results = await history.list_recent(limit=limit)
            if not results:
                console.print("[yellow]⚠️ 还没有任何周期记录。[/yellow]")
                return
            console.print(render_history_table(results))
        finally:
            await history.close()

    try:
        asyncio.run(_load())
    except HistoryError as e:
        console.print(f"[bold red]❌ 读取历史失败: {e}[/bold red]")
        raise typer.Exit(code=1) from e


@app.command("translate")
def translate_text(
    ctx: typer.Context,
    text: Annotated[str, typer.Argument(help="要翻译的文本。")],
    target_lang: Annotated[str, typer.Option("--to", "-t", help="目标语言代码。")],
    source_lang: Annotated[
        Optional[str],
        typer.Option("--from", "-s", help="源语言代码；省略时由服务自动检测。"),
    ] = None,
) -> None:
    """通过配置的翻译服务翻译一段文本。"""
    state: State = ctx.obj
    translator = create_translator(state.config.translator)

    async def _translate() -> None:
        try:
            await translator.initialize()
            if source_lang is None or source_lang == AUTO_LANGUAGE:
                outcome = await translator.translate_from_any_language(text, target_lang)
            else:
                outcome = await translator.translate(text, source_lang, target_lang)
        finally:
            await translator.close()

        if isinstance(outcome, TranslateSuccess):
            console.print(outcome.translated_text, markup=False)
            for alternative in outcome.alternatives:
                console.print(f"[dim]  ~ {escape(alternative)}[/dim]")
            return
        console.print(f"[bold red]❌ 翻译失败: {outcome.error_message}[/bold red]")
        raise typer.Exit(code=1)

    asyncio.run(_translate())


@app.command("languages")
def list_languages(ctx: typer.Context) -> None:
    """列出翻译服务支持的语言。"""
    state: State = ctx.obj
    translator = create_translator(state.config.translator)

    async def _list() -> list[str]:
        try:
            await translator.initialize()
            return await translator.get_available_languages()
        finally:
            await translator.close()

    try:
        languages = asyncio.run(_list())
    except APIError as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(code=1) from e

    table = Table(title=f"受支持的语言 ({len(languages)})")
    table.add_column("代码")
    for code in sorted(languages):
        table.add_row(code)
    console.print(table)
