# locale_sync/diff.py
"""
差异引擎：比较“上次已知”快照与当前所需的短语集合，为每个语言生成
新增 / 删除 / 更新 计划。

本模块只包含纯函数，不做任何 I/O。
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Optional

from locale_sync.core.types import (
    PhraseChange,
    PhraseItem,
    TranslationRequest,
)


@dataclass(frozen=True)
class DiffPlan:
    """一个语言的差异计划。各集合两两不相交，键顺序是确定的。"""

    to_add: tuple[str, ...] = ()
    to_remove: tuple[str, ...] = ()
    to_update: tuple[str, ...] = ()
    unchanged: tuple[str, ...] = ()

    @property
    def total(self) -> int:
        return len(self.to_add) + len(self.to_remove) + len(self.to_update)

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def keys_to_translate(self) -> list[tuple[str, PhraseChange]]:
        """需要调用翻译服务的键：先新增，后更新。"""
        return [(k, PhraseChange.ADD) for k in self.to_add] + [
            (k, PhraseChange.UPDATE) for k in self.to_update
        ]


@dataclass(frozen=True)
class LanguagePlan:
    language: str
    plan: DiffPlan
    queued: bool = True
    file_found: bool = True


def diff_dictionaries(old: Mapping[str, str], required: Mapping[str, str]) -> DiffPlan:
    """
    计算 `old` 到 `required` 的差异。

    - to_add:    R \\ O
    - to_remove: O \\ R
    - to_update: {k ∈ O ∩ R : O[k] != R[k]}
    值逐字节相同的键归入 unchanged。
    """
    to_add: list[str] = []
    to_update: list[str] = []
    unchanged: list[str] = []
    for key, value in required.items():
        if key not in old:
            to_add.append(key)
        elif old[key] != value:
            to_update.append(key)
        else:
            unchanged.append(key)
    to_remove = [key for key in old if key not in required]
    return DiffPlan(
        to_add=tuple(to_add),
        to_remove=tuple(to_remove),
        to_update=tuple(to_update),
        unchanged=tuple(unchanged),
    )


def plan_language(
    source: Mapping[str, str],
    existing: Optional[Mapping[str, str]],
    snapshot: Optional[Mapping[str, str]],
) -> DiffPlan:
    """
    为一个目标语言生成差异计划。

    目标语言字典里存的是译文，无法直接与源字典比较，因此先为它已有的每个键
    构造一个“源语言基线”：键仍在源字典中时取快照里的源值；键已不在源字典中时
    保留原值，它会落入 to_remove。

    快照文件缺失时取当前源值作为基线，即视为未变更。快照存在但没有该键时基线
    未知（例如上个周期该键翻译失败，写入的是回退原文），该键归入 to_update，
    以便重新翻译。语言文件不存在时视为全部新增。
    """
    if existing is None:
        return diff_dictionaries({}, source)

    to_add: list[str] = []
    to_update: list[str] = []
    unchanged: list[str] = []
    for key, value in source.items():
        if key not in existing:
            to_add.append(key)
        elif snapshot is None:
            unchanged.append(key)
        elif key not in snapshot or snapshot[key] != value:
            to_update.append(key)
        else:
            unchanged.append(key)
    to_remove = [key for key in existing if key not in source]
    return DiffPlan(
        to_add=tuple(to_add),
        to_remove=tuple(to_remove),
        to_update=tuple(to_update),
        unchanged=tuple(unchanged),
    )


def build_plans(
    source: Mapping[str, str],
    dictionaries: Mapping[str, Optional[Mapping[str, str]]],
    snapshot: Optional[Mapping[str, str]],
    languages: Iterable[str],
    default_language: str,
) -> list[LanguagePlan]:
    """
    为默认语言和所有目标语言生成计划，按语言代码的字典序排列。

    默认语言只参与结构计数（快照 vs 当前源字典），不会进入翻译队列。
    """
    plans: list[LanguagePlan] = []
    for language in sorted(set(languages) | {default_language}):
        if language == default_language:
            plans.append(
                LanguagePlan(
                    language=language,
                    plan=diff_dictionaries(snapshot or {}, source),
                    queued=False,
                )
            )
            continue
        existing = dictionaries.get(language)
        plans.append(
            LanguagePlan(
                language=language,
                plan=plan_language(source, existing, snapshot),
                file_found=existing is not None,
            )
        )
    return plans


def to_translation_request(language_plan: LanguagePlan) -> TranslationRequest:
    """将计划转换为 `TranslationRequest` 记录，计数与计划集合的大小完全一致。"""
    plan = language_plan.plan
    language = language_plan.language
    items = (
        [PhraseItem(language_code=language, phrase_key=k, change=PhraseChange.ADD) for k in plan.to_add]
        + [PhraseItem(language_code=language, phrase_key=k, change=PhraseChange.REMOVE) for k in plan.to_remove]
        + [PhraseItem(language_code=language, phrase_key=k, change=PhraseChange.UPDATE) for k in plan.to_update]
    )
    return TranslationRequest(
        language_code=language,
        to_add=len(plan.to_add),
        to_remove=len(plan.to_remove),
        to_update=len(plan.to_update),
        items=items,
    )
