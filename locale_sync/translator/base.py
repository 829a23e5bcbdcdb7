# locale_sync/translator/base.py
"""
本模块定义了所有翻译客户端必须继承的抽象基类（ABC）。

公共入口 `translate` 负责输入校验、同语言快速路径和并发控制；
子类只需实现真正发出请求的 `_execute_translation` 等方法。
"""

import asyncio
from abc import ABC, abstractmethod

from locale_sync.config import TranslatorConfig
from locale_sync.core.types import (
    Detection,
    TranslateFailure,
    TranslateFileResult,
    TranslateOutcome,
    TranslateSuccess,
)
from locale_sync.utils import is_two_letter_code

AUTO_LANGUAGE = "auto"


class BaseTranslator(ABC):
    """翻译客户端的纯异步抽象基类，内置并发控制。"""

    VERSION: str = "1.0.0"

    def __init__(self, config: TranslatorConfig):
        self.config = config
        self._concurrency_semaphore: asyncio.Semaphore | None = None
        self.initialized: bool = False

        if config.max_concurrency:
            self._concurrency_semaphore = asyncio.Semaphore(config.max_concurrency)

    @property
    def name(self) -> str:
        """从类名自动推断客户端的名称。"""
        return self.__class__.__name__.replace("Translator", "").replace("Client", "").lower()

    async def initialize(self) -> None:
        """异步初始化钩子，用于设置连接池等。"""
        self.initialized = True

    async def close(self) -> None:
        """异步关闭钩子，用于安全释放资源。"""
        self.initialized = False

    @abstractmethod
    async def _execute_translation(
        self, text: str, source_lang: str, target_lang: str
    ) -> TranslateOutcome:
        """[子类实现] 真正执行单次翻译的逻辑（包含重试）。"""
        ...

    @abstractmethod
    async def get_available_languages(self) -> list[str]:
        """[子类实现] 返回翻译服务支持的语言代码列表。失败时抛出 APIError。"""
        ...

    @abstractmethod
    async def detect_language(self, text: str) -> list[Detection]:
        """[子类实现] 检测文本的语言。失败时抛出 APIError。"""
        ...

    @abstractmethod
    async def translate_file(
        self,
        content: bytes,
        filename: str,
        source_lang: str,
        target_lang: str,
    ) -> TranslateFileResult | TranslateFailure:
        """[子类实现] 翻译整个文件，源语言允许为 'auto'。"""
        ...

    async def translate(
        self, text: str, source_lang: str, target_lang: str
    ) -> TranslateOutcome:
        """
        [模板方法] 将文本从 `source_lang` 翻译到 `target_lang`。

        永远不会抛出单条短语级别的异常：校验失败、重试耗尽等都以
        `TranslateFailure` 返回，并携带原文作为回退译文。
        """
        invalid = self._validate(text, source_lang, target_lang)
        if invalid is not None:
            return invalid

        if source_lang.lower() == target_lang.lower():
            return TranslateSuccess(translated_text=text)

        return await self._limited(text, source_lang.lower(), target_lang.lower())

    async def translate_from_any_language(
        self, text: str, target_lang: str
    ) -> TranslateOutcome:
        """由服务端自动检测源语言的翻译入口。"""
        if not is_two_letter_code(target_lang):
            return self._invalid(text, "目标语言代码无效")
        if not text:
            return self._invalid(text, "待翻译文本不能为空")
        return await self._limited(text, AUTO_LANGUAGE, target_lang.lower())

    async def translate_batch(
        self, texts: list[str], source_lang: str, target_lang: str
    ) -> list[TranslateOutcome]:
        """并发翻译一个缓冲批次，结果顺序与输入一致。"""
        results = await asyncio.gather(
            *[self.translate(text, source_lang, target_lang) for text in texts],
            return_exceptions=True,
        )

        final_results: list[TranslateOutcome] = []
        for text, res in zip(texts, results):
            if isinstance(res, TranslateSuccess | TranslateFailure):
                final_results.append(res)
            elif isinstance(res, BaseException):
                final_results.append(
                    TranslateFailure(
                        error_message=f"翻译客户端异常: {res.__class__.__name__}: {res}",
                        fallback_text=text,
                        is_retryable=True,
                    )
                )
        return final_results

    async def _limited(
        self, text: str, source_lang: str, target_lang: str
    ) -> TranslateOutcome:
        if self._concurrency_semaphore:
            async with self._concurrency_semaphore:
                return await self._execute_translation(text, source_lang, target_lang)
        return await self._execute_translation(text, source_lang, target_lang)

    def _validate(
        self, text: str, source_lang: str, target_lang: str
    ) -> TranslateFailure | None:
        if not is_two_letter_code(target_lang):
            return self._invalid(text, "目标语言代码无效")
        if not text:
            return self._invalid(text, "待翻译文本不能为空")
        if source_lang == AUTO_LANGUAGE or not is_two_letter_code(source_lang):
            return self._invalid(text, "源语言代码无效")
        return None

    @staticmethod
    def _invalid(text: str, message: str) -> TranslateFailure:
        return TranslateFailure(error_message=message, fallback_text=text or "")
