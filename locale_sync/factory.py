# locale_sync/factory.py
"""根据配置装配周期及其协作者。"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Optional

from locale_sync.config import LocaleSyncConfig
from locale_sync.core.interfaces import ProgressNotifier
from locale_sync.cycle import TranslationCycle
from locale_sync.history import SQLAlchemyHistoryStore
from locale_sync.scheduler import CycleFactory, Scheduler
from locale_sync.store import FileDictionaryStore
from locale_sync.translator import create_translator


def create_cycle_factory(
    config: LocaleSyncConfig, notifier: Optional[ProgressNotifier] = None
) -> CycleFactory:
    """
    返回一个周期工厂。

    每次调用都会为一个周期创建全新的作用域：翻译客户端、字典存储和历史数据库连接，
    周期结束后无论成功与否都会释放。
    """

    @asynccontextmanager
    async def _scope() -> AsyncIterator[TranslationCycle]:
        translator = create_translator(config.translator)
        history = SQLAlchemyHistoryStore.from_url(config.database_url)
        try:
            await translator.initialize()
            await history.connect()
            yield TranslationCycle(
                config,
                translator,
                FileDictionaryStore(config.store),
                history,
                notifier,
            )
        finally:
            await translator.close()
            await history.close()

    return _scope


def create_scheduler(
    config: LocaleSyncConfig, notifier: Optional[ProgressNotifier] = None
) -> Scheduler:
    return Scheduler(
        create_cycle_factory(config, notifier),
        interval_minutes=config.localization.cycle_interval_minutes,
    )
