# locale_sync/logging_config.py
"""
集中配置项目的日志系统。

console 格式面向在终端中观察 Worker 的开发者：INFO 及以上级别渲染为 Rich 面板，
DEBUG 折叠为单行；周期日志里的 `context`、`stage`、`language` 字段会被提升到
面板标题（或行首），便于一眼看出日志属于哪个上下文的哪个阶段。
json 格式用于生产环境，每条日志输出一行机器可读的 JSON。
"""

import logging
from collections.abc import MutableMapping
from typing import Any, Literal

import structlog
from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from structlog.typing import Processor

APP_LOGGER_NAME = "locale_sync"

# 提升到标题中显示的周期字段，按此顺序拼接
HEADLINE_KEYS = ("context", "stage", "language")

# 这些第三方库在 DEBUG 下过于啰嗦，统一压到 WARNING
NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")

LEVEL_STYLES: dict[str, tuple[str, str]] = {
    "debug": ("blue", "DEBUG   "),
    "info": ("green", "INFO    "),
    "warning": ("yellow", "WARNING "),
    "error": ("bold red", "ERROR   "),
    "critical": ("bold magenta", "CRITICAL"),
}


class HybridPanelRenderer:
    """INFO 及以上渲染为面板、DEBUG 渲染为单行的 structlog 处理器。"""

    def __init__(
        self,
        kv_truncate_at: int = 256,
        show_timestamp: bool = True,
        show_logger_name: bool = True,
        kv_key_width: int = 18,
        console: Console | None = None,
    ):
        self._console = console or Console()
        self._kv_truncate_at = kv_truncate_at
        self._show_timestamp = show_timestamp
        self._show_logger_name = show_logger_name
        self._kv_key_width = kv_key_width

    def __call__(
        self, logger: Any, name: str, event_dict: MutableMapping[str, Any]
    ) -> str:
        event = str(event_dict.pop("event", "")).strip()
        if not event:
            return ""

        timestamp = str(event_dict.pop("timestamp", ""))
        level = str(event_dict.pop("level", "info")).lower()
        logger_name = str(event_dict.pop("logger", "unknown"))
        headline = self._pop_headline(event_dict)

        if level == "debug":
            return self._render_as_line(timestamp, level, logger_name, headline, event, event_dict)
        return self._render_as_panel(timestamp, level, logger_name, headline, event, event_dict)

    @staticmethod
    def _pop_headline(event_dict: MutableMapping[str, Any]) -> str:
        parts = [str(event_dict.pop(key)) for key in HEADLINE_KEYS if key in event_dict]
        return "/".join(parts)

    def _format_value(self, value: Any) -> str:
        value_repr = repr(value)
        if len(value_repr) > self._kv_truncate_at or "\n" in value_repr:
            if value_repr[:1] in {"'", '"'} and value_repr[-1:] == value_repr[:1]:
                value_repr = value_repr[1:-1]
        return value_repr

    def _render(self, renderable: RenderableType) -> str:
        with self._console.capture() as capture:
            self._console.print(renderable)
        return capture.get().rstrip()

    def _render_as_panel(
        self,
        timestamp: str,
        level: str,
        logger_name: str,
        headline: str,
        event: str,
        kv: MutableMapping[str, Any],
    ) -> str:
        style, level_text = LEVEL_STYLES.get(level, ("default", level.upper()))
        title = Text(level_text.strip(), style=style)
        if headline:
            title.append(f" [{headline}]", style="bold")
        if self._show_logger_name:
            title.append(f" ({logger_name})", style="cyan dim")

        body: list[RenderableType] = [Text(event)]
        if kv:
            table = Table(show_header=False, show_edge=False, box=None, padding=(0, 1))
            table.add_column(style="dim", justify="right", width=self._kv_key_width)
            table.add_column(overflow="fold")
            for key, value in sorted(kv.items()):
                table.add_row(f"{key} :", Text(self._format_value(value)))
            body.append(table)

        return self._render(
            Panel(
                Group(*body),
                title=title,
                title_align="left",
                subtitle=Text(timestamp, style="dim") if self._show_timestamp and timestamp else None,
                subtitle_align="right",
                border_style=style,
                expand=False,
            )
        )

    def _render_as_line(
        self,
        timestamp: str,
        level: str,
        logger_name: str,
        headline: str,
        event: str,
        kv: MutableMapping[str, Any],
    ) -> str:
        style, level_text = LEVEL_STYLES.get(level, ("default", level.upper()))
        line = Text()
        if self._show_timestamp and timestamp:
            line.append(f"{timestamp} ", style="dim")
        line.append(f"{level_text} ", style=style)
        if headline:
            line.append(f"[{headline}] ", style="bold")
        line.append(event)
        for key, value in sorted(kv.items()):
            line.append(f" {key}=", style="dim")
            line.append(self._format_value(value))
        if self._show_logger_name:
            line.append(f" ({logger_name})", style="cyan dim")
        return self._render(line)


class _RenderedMessageFormatter(logging.Formatter):
    """structlog 已经渲染好整条消息，标准库只负责输出。"""

    def format(self, record: logging.LogRecord) -> str:
        return str(record.getMessage())


def setup_logging(
    log_level: str = "INFO",
    log_format: Literal["json", "console"] = "console",
    show_timestamp: bool = True,
    show_logger_name: bool = True,
    kv_truncate_at: int = 80,
) -> None:
    """
    配置全局的 structlog 日志系统。

    Args:
        log_level: `locale_sync` 记录器的最低日志级别。
        log_format: 'console' 为 Rich 面板输出，'json' 为机器可读输出。
        show_timestamp: 是否在日志中包含时间戳。
        show_logger_name: 是否在日志中包含记录器名称。
        kv_truncate_at: console 模式下值的 repr 超过该长度时去掉引号折行显示。
    """
    renderer: Processor
    if log_format == "json":
        timestamper = structlog.processors.TimeStamper(fmt="iso", utc=True)
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)
    else:
        timestamper = structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False)
        renderer = HybridPanelRenderer(
            kv_truncate_at=kv_truncate_at,
            show_timestamp=show_timestamp,
            show_logger_name=show_logger_name,
        )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            timestamper,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(_RenderedMessageFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(logging.WARNING)

    logging.getLogger(APP_LOGGER_NAME).setLevel(log_level.upper())
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.get_logger(f"{APP_LOGGER_NAME}.logging_config").debug(
        "日志系统已配置完成。", log_format=log_format, app_log_level=log_level.upper()
    )
