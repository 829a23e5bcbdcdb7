# locale_sync/translator/debug.py
"""提供一个用于开发和测试的离线调试翻译客户端。"""

from typing import Optional

from locale_sync.config import TranslatorConfig
from locale_sync.core.exceptions import APIError
from locale_sync.core.types import (
    Detection,
    TranslateFailure,
    TranslateFileResult,
    TranslateOutcome,
    TranslateSuccess,
)
from locale_sync.translator.base import BaseTranslator

DEFAULT_SUPPORTED_LANGUAGES = ["ar", "de", "en", "es", "fr", "it", "ja", "pt", "ru", "zh"]


class DebugTranslator(BaseTranslator):
    """一个确定性的调试翻译客户端，输出形如 `[de] Hello`。"""

    VERSION = "1.0.0"

    def __init__(
        self,
        config: TranslatorConfig,
        translation_map: Optional[dict[str, str]] = None,
        fail_on_text: Optional[set[str]] = None,
        supported_languages: Optional[list[str]] = None,
    ):
        super().__init__(config)
        self.translation_map = translation_map or {}
        self.fail_on_text = fail_on_text or set()
        self.supported_languages = (
            list(supported_languages)
            if supported_languages is not None
            else list(DEFAULT_SUPPORTED_LANGUAGES)
        )
        self.calls: list[tuple[str, str, str]] = []

    async def _execute_translation(
        self, text: str, source_lang: str, target_lang: str
    ) -> TranslateOutcome:
        """[实现] 异步翻译单个文本。"""
        self.calls.append((text, source_lang, target_lang))

        if target_lang not in self.supported_languages:
            return TranslateFailure(
                error_message=f"{target_lang} is not supported",
                fallback_text=text,
                unsupported=True,
                attempts=1,
            )

        if text in self.fail_on_text:
            return TranslateFailure(
                error_message=f"模拟失败：检测到配置的文本 '{text}'",
                fallback_text=text,
                is_retryable=True,
                attempts=self.config.max_attempts,
            )

        translated_text = self.translation_map.get(text, f"[{target_lang}] {text}")
        return TranslateSuccess(translated_text=translated_text, attempts=1)

    async def get_available_languages(self) -> list[str]:
        return list(self.supported_languages)

    async def detect_language(self, text: str) -> list[Detection]:
        if not text:
            raise APIError("待检测文本不能为空。")
        return [Detection(language="en", confidence=100.0)]

    async def translate_file(
        self,
        content: bytes,
        filename: str,
        source_lang: str,
        target_lang: str,
    ) -> TranslateFileResult | TranslateFailure:
        if target_lang not in self.supported_languages:
            return TranslateFailure(
                error_message=f"{target_lang} is not supported",
                fallback_text=content.decode("utf-8", errors="replace"),
                unsupported=True,
            )
        return TranslateFileResult(
            translated_file_url=f"debug://{target_lang}/{filename}"
        )
