# locale_sync/localizer.py
"""
面向边缘调用方（同步的属性访问、模板渲染等）的同步本地化查询门面。

查询顺序：缓存 -> 目标语言字典 -> 默认语言字典 -> 翻译回退。
翻译回退在门面私有的事件循环线程上执行，调用方只在该线程的 Future 上
带超时等待，绝不占用同步引擎所在的事件循环。
"""

import asyncio
import threading
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Optional

import structlog
from cachetools import TTLCache

from locale_sync.config import LocalizerConfig
from locale_sync.core.exceptions import StoreError
from locale_sync.core.types import Dictionary, TranslateSuccess, TranslationContext
from locale_sync.store import FileDictionaryStore
from locale_sync.translator.base import BaseTranslator

logger = structlog.get_logger(__name__)


class DictionaryLocalizer:
    """
    同步查询门面。

    传入的 `translator` 只能由本门面使用：它的 HTTP 连接会绑定到门面私有的事件循环上。
    """

    def __init__(
        self,
        store: FileDictionaryStore,
        context: TranslationContext,
        default_language: str = "en",
        translator: Optional[BaseTranslator] = None,
        config: Optional[LocalizerConfig] = None,
    ):
        self.store = store
        self.context = context
        self.default_language = default_language
        self.translator = translator
        self.config = config or LocalizerConfig()
        self._dictionaries: TTLCache[str, Dictionary] = TTLCache(
            maxsize=self.config.maxsize, ttl=self.config.ttl
        )
        self._translations: TTLCache[tuple[str, str], str] = TTLCache(
            maxsize=self.config.maxsize * 16, ttl=self.config.ttl
        )
        self._lock = threading.Lock()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None

    def get(self, key: str, language: str) -> str:
        """返回 `key` 在 `language` 中的短语；完全未知的键原样返回。"""
        language = language.lower()
        value = self.get_all(language).get(key)
        if value:
            return value

        default_value = self.get_all(self.default_language).get(key)
        if default_value is None:
            return key
        if language == self.default_language or self.translator is None:
            return default_value

        translated = self._translate_fallback(key, default_value, language)
        return translated or default_value

    def get_all(self, language: str) -> Dictionary:
        language = language.lower()
        with self._lock:
            cached = self._dictionaries.get(language)
        if cached is not None:
            return cached

        try:
            dictionary = self.store.read_dictionary(language, self.context) or {}
        except StoreError as e:
            logger.warning("读取字典失败", language=language, error=str(e))
            return {}
        with self._lock:
            self._dictionaries[language] = dictionary
        return dictionary

    def invalidate(self, language: Optional[str] = None) -> None:
        with self._lock:
            if language is None:
                self._dictionaries.clear()
                self._translations.clear()
            else:
                self._dictionaries.pop(language.lower(), None)

    def close(self) -> None:
        """停止私有事件循环线程并关闭翻译客户端。"""
        loop, thread = self._loop, self._thread
        if loop is None or thread is None:
            return
        if self.translator is not None:
            future = asyncio.run_coroutine_threadsafe(self.translator.close(), loop)
            try:
                future.result(timeout=self.config.translate_timeout)
            except FutureTimeoutError:
                logger.warning("关闭翻译客户端超时。")
        loop.call_soon_threadsafe(loop.stop)
        thread.join(timeout=self.config.translate_timeout)
        loop.close()
        self._loop = None
        self._thread = None

    def _translate_fallback(self, key: str, text: str, language: str) -> Optional[str]:
        if self.translator is None:
            return None
        with self._lock:
            cached = self._translations.get((language, key))
        if cached is not None:
            return cached

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            # 在事件循环线程中被调用时不能阻塞等待，直接回退到默认语言
            logger.debug("在事件循环中调用，跳过翻译回退", key=key, language=language)
            return None

        future = asyncio.run_coroutine_threadsafe(
            self.translator.translate(text, self.default_language, language),
            self._ensure_loop(),
        )
        try:
            outcome = future.result(timeout=self.config.translate_timeout)
        except FutureTimeoutError:
            future.cancel()
            logger.warning("翻译回退超时", key=key, language=language)
            return None

        if not isinstance(outcome, TranslateSuccess):
            logger.info(
                "翻译回退失败，使用默认语言短语",
                key=key,
                language=language,
                error=outcome.error_message,
            )
            return None
        with self._lock:
            self._translations[(language, key)] = outcome.translated_text
        return outcome.translated_text

    def _ensure_loop(self) -> asyncio.AbstractEventLoop:
        with self._lock:
            if self._loop is None:
                loop = asyncio.new_event_loop()
                thread = threading.Thread(
                    target=loop.run_forever, name="locale-sync-localizer", daemon=True
                )
                thread.start()
                self._loop, self._thread = loop, thread
            return self._loop
