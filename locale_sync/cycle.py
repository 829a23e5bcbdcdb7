# locale_sync/cycle.py
"""
同步周期状态机。

一个 `TranslationCycle` 按固定顺序执行各阶段：
Idle -> 检查服务与文件 -> 翻译语言名称 -> 翻译前端 -> 翻译后端 -> 存储变更 -> Idle。

周期的全部可变状态都保存在 `CycleContext` 中，由单个进行中的周期独占，
不存在任何进程级的全局状态。
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional

import structlog

from locale_sync.config import LocaleSyncConfig
from locale_sync.core.exceptions import (
    APIError,
    HistoryError,
    StageAbortedError,
    StoreError,
)
from locale_sync.core.interfaces import DictionaryStore, HistoryStore, ProgressNotifier
from locale_sync.core.types import (
    CycleCheck,
    Dictionary,
    PhraseChange,
    TranslateSuccess,
    TranslationContext,
    TranslationError,
    WorkerResult,
    WorkerStage,
    utcnow,
)
from locale_sync.diff import build_plans, to_translation_request
from locale_sync.notifier import NullNotifier, safe_notify
from locale_sync.processing import TranslationQueueProcessor
from locale_sync.translator.base import BaseTranslator
from locale_sync.utils import english_display_name, is_two_letter_code

logger = structlog.get_logger(__name__)

# 语言显示名称总是从英文翻译
DISPLAY_NAME_SOURCE_LANGUAGE = "en"

CONTEXT_STAGES = {
    TranslationContext.FRONTEND: WorkerStage.TRANSLATING_FRONTEND,
    TranslationContext.BACKEND: WorkerStage.TRANSLATING_BACKEND,
}


@dataclass
class CycleContext:
    """单个周期的上下文，逐阶段传递。"""

    result: WorkerResult = field(default_factory=WorkerResult)
    default_language: str = "en"
    ignored_languages: set[str] = field(default_factory=set)
    available_languages: set[str] = field(default_factory=set)
    sources: dict[TranslationContext, Dictionary] = field(default_factory=dict)
    languages: list[str] = field(default_factory=list)
    snapshots_to_store: dict[TranslationContext, Dictionary] = field(
        default_factory=dict
    )


class TranslationCycle:
    """执行一次完整的同步周期。"""

    def __init__(
        self,
        config: LocaleSyncConfig,
        translator: BaseTranslator,
        store: DictionaryStore,
        history: HistoryStore,
        notifier: Optional[ProgressNotifier] = None,
    ):
        self.config = config
        self.translator = translator
        self.store = store
        self.history = history
        self.notifier: ProgressNotifier = notifier or NullNotifier()
        self.processor = TranslationQueueProcessor(
            translator,
            batch_size=config.queue.batch_size,
            language_concurrency=config.queue.language_concurrency,
        )

    async def run(self) -> WorkerResult:
        """
        执行周期并返回（已持久化的）`WorkerResult`。

        前置条件失败时直接跳到“存储变更”阶段；意外异常会被记录到结果中，
        状态机直接回到 Idle。两种情况下部分结果都会被持久化。
        """
        ctx = CycleContext(
            default_language=self.config.localization.default_language,
            ignored_languages=set(self.config.localization.ignored_languages),
        )
        log = logger.bind(cycle_start=ctx.result.start_time.isoformat())
        log.info("同步周期开始")
        await safe_notify(self.notifier.on_cycle_started)

        try:
            try:
                await self._check_servers_and_files(ctx)
                await self._translate_language_names(ctx)
                for context in (TranslationContext.FRONTEND, TranslationContext.BACKEND):
                    await self._translate_context(ctx, context)
            except StageAbortedError as e:
                log.error("前置条件检查失败，跳过剩余阶段", error=str(e))
                ctx.result.record_error(str(e))
            await self._store_changes(ctx)
        except Exception as e:
            log.error("同步周期发生意外错误", exc_info=True)
            ctx.result.record_error(f"{e.__class__.__name__}: {e}")
            ctx.result.successful = False

        await self._finish(ctx)
        log.info(
            "同步周期结束",
            successful=ctx.result.successful,
            errors=len(ctx.result.errors),
        )
        return ctx.result

    # --- 阶段切换 ---

    async def _enter(self, ctx: CycleContext, stage: WorkerStage) -> None:
        ctx.result.advance(stage)
        logger.info("进入阶段", stage=stage.value)
        await safe_notify(self.notifier.on_status_changed, stage)

    async def _completed(self, stage: WorkerStage, payload: dict[str, Any]) -> None:
        await safe_notify(self.notifier.on_stage_completed, stage, payload)

    # --- 阶段 1：检查服务与文件 ---

    async def _check_servers_and_files(self, ctx: CycleContext) -> None:
        stage = WorkerStage.CHECK_SERVERS_AND_FILES
        await self._enter(ctx, stage)
        start_time = utcnow()
        fatal: list[str] = []

        settings_loaded = is_two_letter_code(ctx.default_language)
        if not settings_loaded:
            fatal.append(f"默认语言 '{ctx.default_language}' 不是两个字母的语言代码。")

        try:
            ctx.available_languages = set(await self.translator.get_available_languages())
        except APIError as e:
            fatal.append(f"无法连接翻译服务: {e}")

        default_found: dict[TranslationContext, bool] = {}
        present: set[str] = set()
        for context in TranslationContext:
            source: Optional[Dictionary] = None
            if settings_loaded:
                try:
                    source = await self.store.load(ctx.default_language, context)
                except StoreError as e:
                    ctx.result.record_error(f"[{context.value}] {e}")
            try:
                present.update(await self.store.list_present_languages(context))
            except StoreError as e:
                # 列举失败只影响目标语言集合，默认语言字典仍然可用
                ctx.result.record_error(f"[{context.value}] {e}")
            default_found[context] = source is not None
            if source is not None:
                ctx.sources[context] = source
            else:
                logger.warning("未找到默认语言字典", context=context.value)

        if not ctx.sources:
            fatal.append("前端和后端都没有找到默认语言字典。")

        # 任一上下文中存在的语言在两个上下文中都是必需的
        ctx.languages = sorted(
            present - ctx.ignored_languages - {ctx.default_language}
        )

        check = CycleCheck(
            settings_loaded=settings_loaded,
            default_translation_found=default_found,
            ignored_languages_found=bool(present & ctx.ignored_languages),
            libre_languages_count=len(ctx.available_languages),
            start_time=start_time,
            end_time=utcnow(),
        )
        ctx.result.cycle_check = check
        await self._completed(stage, {"cycle_check": check.model_dump(mode="json")})

        if fatal:
            raise StageAbortedError(" ".join(fatal))

    # --- 阶段 2：翻译语言显示名称 ---

    async def _translate_language_names(self, ctx: CycleContext) -> None:
        stage = WorkerStage.CHECK_LANGUAGES_TRANSLATIONS
        await self._enter(ctx, stage)
        stats = ctx.result.language_stats
        stats.start_time = utcnow()

        try:
            names = await self.store.load_language_names()
        except StoreError as e:
            ctx.result.record_error(str(e))
            names = None

        if names is not None:
            missing = [
                lang
                for lang in sorted({*ctx.languages, ctx.default_language})
                if lang not in names
            ]
            stats.needed = len(missing)
            for language in missing:
                english_name = english_display_name(language)
                outcome = await self.translator.translate(
                    english_name, DISPLAY_NAME_SOURCE_LANGUAGE, language
                )
                if isinstance(outcome, TranslateSuccess):
                    names[language] = outcome.translated_text
                    stats.done += 1
                else:
                    stats.errors += 1
                    stats.failed_translations.append(
                        TranslationError(
                            target_language=language,
                            error_message=outcome.error_message,
                            original_text=english_name,
                        )
                    )

            if stats.done:
                try:
                    await self.store.save_language_names(names)
                except StoreError as e:
                    ctx.result.record_error(str(e))

        stats.end_time = utcnow()
        logger.info(
            "语言名称翻译完成", needed=stats.needed, done=stats.done, errors=stats.errors
        )
        await self._completed(
            stage,
            {"language_stats": stats.model_dump(mode="json", exclude={"failed_translations"})},
        )

    # --- 阶段 3/4：翻译前端、后端 ---

    async def _translate_context(
        self, ctx: CycleContext, context: TranslationContext
    ) -> None:
        stage = CONTEXT_STAGES[context]
        await self._enter(ctx, stage)
        translations = ctx.result.translations_for(context)
        translations.start_time = utcnow()
        log = logger.bind(context=context.value)

        source = ctx.sources.get(context)
        if source is None:
            ctx.result.record_error(f"[{context.value}] 缺少默认语言字典，跳过翻译。")
            translations.successful = False
        else:
            try:
                await self._sync_context(ctx, context, source)
            except StoreError as e:
                log.error("字典存储失败", error=str(e))
                ctx.result.record_error(f"[{context.value}] {e}")
                translations.successful = False

        translations.end_time = utcnow()
        await self._completed(
            stage,
            {
                "context": context.value,
                "translations": translations.model_dump(
                    mode="json", include={"old_file_found", "translations_needed", "successful"}
                ),
            },
        )

    async def _sync_context(
        self, ctx: CycleContext, context: TranslationContext, source: Dictionary
    ) -> None:
        translations = ctx.result.translations_for(context)

        snapshot = await self.store.load_snapshot(context)
        translations.old_file_found = snapshot is not None

        dictionaries = {
            language: await self.store.load(language, context)
            for language in ctx.languages
        }
        plans = build_plans(
            source, dictionaries, snapshot, ctx.languages, ctx.default_language
        )
        translations.requests = [to_translation_request(plan) for plan in plans]
        translations.translations_needed = sum(r.total for r in translations.requests)

        processed = await self.processor.process(
            plans,
            source,
            dictionaries,
            ctx.default_language,
            supported_languages=ctx.available_languages,
        )
        for result in processed.results:
            translations.add_result(result)

        failed: list[str] = []
        for language, dictionary in sorted(processed.changed.items()):
            try:
                await self.store.save(language, context, dictionary)
            except StoreError as e:
                ctx.result.record_error(f"[{context.value}] {e}")
                failed.append(language)
        if failed:
            translations.successful = False

        failed_keys = processed.failed_keys
        if failed_keys:
            ctx.result.record_error(
                f"[{context.value}] {len(failed_keys)} 条短语未能翻译，将在下个周期重试。"
            )
            translations.successful = False
        if not failed:
            ctx.snapshots_to_store[context] = _held_back_snapshot(
                source, snapshot, failed_keys
            )

        logger.info(
            "上下文同步完成",
            context=context.value,
            translations_needed=translations.translations_needed,
            saved=len(processed.changed) - len(failed),
            phrase_errors=len(processed.errors),
            aborted_languages=processed.aborted,
        )

    # --- 阶段 5：存储变更 ---

    async def _store_changes(self, ctx: CycleContext) -> None:
        stage = WorkerStage.STORING_CHANGES
        await self._enter(ctx, stage)
        cleanup = ctx.result.cleanup
        cleanup.start_time = utcnow()

        for context, source in ctx.snapshots_to_store.items():
            try:
                await self.store.save_snapshot(context, source)
            except StoreError as e:
                ctx.result.record_error(f"[{context.value}] 快照保存失败: {e}")
                continue
            if context is TranslationContext.FRONTEND:
                cleanup.client_snapshot_stored = True
            else:
                cleanup.server_snapshot_stored = True

        try:
            cleanup.old_results_deleted = await self.history.delete_older_than(
                self.config.localization.old_logs_delete_after_days
            )
        except HistoryError as e:
            ctx.result.record_error(f"清理历史记录失败: {e}")

        cleanup.end_time = utcnow()
        await self._completed(stage, {"cleanup": cleanup.model_dump(mode="json")})

    # --- 收尾 ---

    async def _finish(self, ctx: CycleContext) -> None:
        result = ctx.result
        result.end_time = utcnow()
        result.successful = result.successful and not result.errors
        result.advance(WorkerStage.IDLE)
        await safe_notify(self.notifier.on_status_changed, WorkerStage.IDLE)
        try:
            await self.history.save(result)
        except HistoryError as e:
            logger.error("周期结果持久化失败", error=str(e))


def _held_back_snapshot(
    source: Dictionary,
    snapshot: Optional[Dictionary],
    failed_keys: Mapping[str, PhraseChange],
) -> Dictionary:
    """
    计算本周期应保存的快照：以当前源字典为准，但未能翻译的键不前进。

    更新失败的键保留上次快照中的源值；新增失败的键（语言文件里写入的是回退原文）
    从快照中移除，下个周期差异引擎会把它们当作基线未知的键重新翻译。
    """
    stored: Dictionary = {}
    for key, value in source.items():
        change = failed_keys.get(key)
        if change is None:
            stored[key] = value
        elif change is PhraseChange.UPDATE and snapshot is not None and key in snapshot:
            stored[key] = snapshot[key]
    return stored
