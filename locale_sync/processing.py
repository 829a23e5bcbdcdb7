# locale_sync/processing.py
"""
翻译队列处理器：消费差异引擎生成的语言计划，调用翻译客户端，
产出更新后的字典、每个语言的 `TranslationResult` 以及翻译错误日志。
"""

from __future__ import annotations

import asyncio
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from typing import Optional

import structlog

from locale_sync.core.types import (
    Dictionary,
    PhraseChange,
    TranslateFailure,
    TranslateSuccess,
    TranslationError,
    TranslationResult,
)
from locale_sync.diff import DiffPlan, LanguagePlan
from locale_sync.translator.base import BaseTranslator
from locale_sync.utils import chunked

logger = structlog.get_logger(__name__)


@dataclass
class LanguageOutcome:
    """单个语言的处理结果。"""

    language: str
    dictionary: Dictionary
    result: TranslationResult
    errors: list[TranslationError] = field(default_factory=list)
    changed: bool = False
    aborted: bool = False
    # 未能翻译的键及其变更类型，放弃的语言包含计划中全部待翻译的键
    failed_keys: dict[str, PhraseChange] = field(default_factory=dict)


@dataclass
class ProcessedContext:
    """一个上下文中所有入队语言的处理结果，按语言代码排序。"""

    outcomes: list[LanguageOutcome] = field(default_factory=list)

    @property
    def results(self) -> list[TranslationResult]:
        return [o.result for o in self.outcomes]

    @property
    def errors(self) -> list[TranslationError]:
        return [e for o in self.outcomes for e in o.errors]

    @property
    def changed(self) -> dict[str, Dictionary]:
        return {o.language: o.dictionary for o in self.outcomes if o.changed}

    @property
    def aborted(self) -> list[str]:
        return [o.language for o in self.outcomes if o.aborted]

    @property
    def failed_keys(self) -> dict[str, PhraseChange]:
        """所有语言中未能翻译的键。同一个键在任一语言中作为新增失败时记为 ADD。"""
        merged: dict[str, PhraseChange] = {}
        for outcome in self.outcomes:
            for key, change in outcome.failed_keys.items():
                if merged.get(key) is not PhraseChange.ADD:
                    merged[key] = change
        return merged


class _LanguageAborted(Exception):
    """翻译服务报告语言对不受支持，当前语言的剩余短语全部放弃。"""


class TranslationQueueProcessor:
    """按语言（默认串行）、按缓冲批次处理翻译队列。"""

    def __init__(
        self,
        translator: BaseTranslator,
        batch_size: int = 20,
        language_concurrency: int = 1,
    ):
        if batch_size <= 0:
            raise ValueError("batch_size 必须为正数")
        if language_concurrency <= 0:
            raise ValueError("language_concurrency 必须为正数")
        self.translator = translator
        self.batch_size = batch_size
        self.language_concurrency = language_concurrency

    async def process(
        self,
        plans: list[LanguagePlan],
        source: Mapping[str, str],
        dictionaries: Mapping[str, Optional[Dictionary]],
        source_language: str,
        supported_languages: Optional[Collection[str]] = None,
    ) -> ProcessedContext:
        """
        处理所有 `queued=True` 的计划。

        语言按代码的字典序启动；信号量保证同时处理的语言数不超过
        `language_concurrency`，默认逐个串行。
        """
        semaphore = asyncio.Semaphore(self.language_concurrency)
        queued = sorted((p for p in plans if p.queued), key=lambda p: p.language)

        async def _run(plan: LanguagePlan) -> LanguageOutcome:
            async with semaphore:
                return await self._process_language(
                    plan,
                    source,
                    dictionaries.get(plan.language),
                    source_language,
                    supported_languages,
                )

        outcomes = await asyncio.gather(*[_run(plan) for plan in queued])
        return ProcessedContext(outcomes=list(outcomes))

    async def _process_language(
        self,
        language_plan: LanguagePlan,
        source: Mapping[str, str],
        existing: Optional[Dictionary],
        source_language: str,
        supported_languages: Optional[Collection[str]],
    ) -> LanguageOutcome:
        language = language_plan.language
        plan = language_plan.plan
        log = logger.bind(language=language)
        original: Dictionary = dict(existing or {})

        if supported_languages is not None and language not in supported_languages:
            message = f"翻译服务不支持语言 '{language}'，已跳过。"
            log.warning("语言不受支持，跳过处理")
            return self._aborted(language, original, message, plan)

        working = dict(original)
        successful = 0
        errors: list[TranslationError] = []
        messages: list[str] = []
        failed_keys: dict[str, PhraseChange] = {}

        for key in plan.to_remove:
            working.pop(key, None)
            successful += 1

        try:
            for batch in chunked(plan.keys_to_translate(), self.batch_size):
                texts = [source[key] for key, _ in batch]
                outcomes = await self.translator.translate_batch(
                    texts, source_language, language
                )
                for (key, change), outcome in zip(batch, outcomes):
                    if isinstance(outcome, TranslateSuccess):
                        working[key] = outcome.translated_text
                        successful += 1
                        continue
                    if outcome.unsupported:
                        raise _LanguageAborted(outcome.error_message)
                    errors.append(self._record(language, key, source[key], outcome))
                    messages.append(f"{key}: {outcome.error_message}")
                    failed_keys[key] = change
                    if change is PhraseChange.ADD:
                        working[key] = outcome.fallback_text
                    else:
                        working.setdefault(key, outcome.fallback_text)
        except _LanguageAborted as e:
            log.warning("翻译服务报告语言对不受支持，放弃该语言", error=str(e))
            return self._aborted(language, original, str(e), plan)

        ordered = {key: working[key] for key in source if key in working}
        changed = existing is None or ordered != original or list(ordered) != list(original)

        log.info(
            "语言处理完成",
            added=len(plan.to_add),
            removed=len(plan.to_remove),
            updated=len(plan.to_update),
            successful=successful,
            failed=len(errors),
        )
        return LanguageOutcome(
            language=language,
            dictionary=ordered,
            result=TranslationResult(
                language_code=language, successful_count=successful, errors=messages
            ),
            errors=errors,
            changed=changed,
            failed_keys=failed_keys,
        )

    @staticmethod
    def _record(
        language: str, key: str, text: str, failure: TranslateFailure
    ) -> TranslationError:
        logger.warning(
            "短语翻译失败，使用回退文本",
            language=language,
            key=key,
            error=failure.error_message,
            attempts=failure.attempts,
        )
        return TranslationError(
            target_language=language,
            error_message=failure.error_message,
            original_text=text,
        )

    @staticmethod
    def _aborted(
        language: str, original: Dictionary, message: str, plan: DiffPlan
    ) -> LanguageOutcome:
        return LanguageOutcome(
            language=language,
            dictionary=original,
            result=TranslationResult(language_code=language, errors=[message]),
            errors=[
                TranslationError(
                    target_language=language, error_message=message, original_text=""
                )
            ],
            aborted=True,
            failed_keys=dict(plan.keys_to_translate()),
        )
