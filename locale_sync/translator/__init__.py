# locale_sync/translator/__init__.py
"""翻译客户端包：抽象基类、LibreTranslate 客户端与调试客户端。"""

from locale_sync.config import TranslatorConfig, TranslatorEngine
from locale_sync.core.exceptions import ConfigurationError
from locale_sync.translator.base import AUTO_LANGUAGE, BaseTranslator
from locale_sync.translator.debug import DebugTranslator
from locale_sync.translator.libre import LibreTranslateClient

TRANSLATOR_REGISTRY: dict[TranslatorEngine, type[BaseTranslator]] = {
    TranslatorEngine.LIBRE: LibreTranslateClient,
    TranslatorEngine.DEBUG: DebugTranslator,
}


def create_translator(config: TranslatorConfig) -> BaseTranslator:
    """根据配置中的 `engine` 创建翻译客户端实例。"""
    translator_class = TRANSLATOR_REGISTRY.get(config.engine)
    if translator_class is None:
        raise ConfigurationError(f"未知的翻译引擎: '{config.engine}'")
    return translator_class(config)


__all__ = [
    "AUTO_LANGUAGE",
    "BaseTranslator",
    "DebugTranslator",
    "LibreTranslateClient",
    "TRANSLATOR_REGISTRY",
    "create_translator",
]
