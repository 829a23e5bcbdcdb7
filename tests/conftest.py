# tests/conftest.py
"""项目全局共享的测试 Fixtures。"""

from collections.abc import AsyncGenerator, Generator
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from pytest_mock import MockerFixture
from rich.console import Console

from locale_sync.config import LocaleSyncConfig
from locale_sync.store import FileDictionaryStore
from locale_sync.translator import DebugTranslator
from tests.helpers.fakes import InMemoryHistoryStore, RecordingNotifier, make_config


@pytest.fixture(scope="session", autouse=True)
def disable_rich_colors_for_tests(
    session_mocker: MockerFixture,
) -> Generator[None, None, None]:
    """全局禁用 rich 库的颜色输出，以确保测试结果的确定性。"""
    original_init = Console.__init__

    def new_init(self: Console, *args: Any, **kwargs: Any) -> None:
        kwargs["force_terminal"] = False
        kwargs["color_system"] = None
        original_init(self, *args, **kwargs)

    session_mocker.patch("rich.console.Console.__init__", new=new_init)
    yield


@pytest.fixture
def config(tmp_path: Path) -> LocaleSyncConfig:
    """指向临时目录、使用调试翻译客户端的配置。"""
    return make_config(tmp_path)


@pytest.fixture
def store(config: LocaleSyncConfig) -> FileDictionaryStore:
    return FileDictionaryStore(config.store)


@pytest_asyncio.fixture
async def translator(
    config: LocaleSyncConfig,
) -> AsyncGenerator[DebugTranslator, None]:
    translator = DebugTranslator(config.translator)
    await translator.initialize()
    yield translator
    await translator.close()


@pytest.fixture
def history() -> InMemoryHistoryStore:
    return InMemoryHistoryStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
