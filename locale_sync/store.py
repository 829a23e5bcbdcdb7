# locale_sync/store.py
"""
`DictionaryStore` 协议的文件系统实现。

每个上下文对应一个目录，每个语言对应一个 `<xx>.json` 文件；每个上下文另有一个
“上次已知”快照文件，仅用于差异比较。所有写入都是原子的：先写入同目录下的临时
文件并 fsync，再用 `os.replace` 替换，保证并发读取方永远看不到写了一半的文件。
"""

from __future__ import annotations

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

import structlog

from locale_sync.config import StoreConfig
from locale_sync.core.exceptions import StoreError
from locale_sync.core.types import Dictionary, DictionaryTree, TranslationContext
from locale_sync.utils import is_two_letter_code

logger = structlog.get_logger(__name__)

SNAPSHOT_FILENAMES = {
    TranslationContext.BACKEND: "old.json",
    TranslationContext.FRONTEND: "old_client.json",
}


class FileDictionaryStore:
    """基于 JSON 文件的字典存储，文件 I/O 通过 `asyncio.to_thread` 执行。"""

    def __init__(self, config: StoreConfig):
        self.config = config

    # --- 路径 ---

    def context_dir(self, context: TranslationContext) -> Path:
        if context is TranslationContext.FRONTEND:
            return self.config.client_locales_dir
        return self.config.server_locales_dir

    def dictionary_path(self, language: str, context: TranslationContext) -> Path:
        if not is_two_letter_code(language):
            raise StoreError(f"无效的语言代码: '{language}'")
        return self.context_dir(context) / f"{language.lower()}.json"

    def snapshot_path(self, context: TranslationContext) -> Path:
        return self.config.snapshot_dir / SNAPSHOT_FILENAMES[context]

    # --- 同步读取（供边缘调用方使用） ---

    def read_dictionary(
        self, language: str, context: TranslationContext
    ) -> Optional[Dictionary]:
        """同步读取一个字典；文件不存在时返回 None。"""
        return self._read_json(self.dictionary_path(language, context))

    # --- DictionaryStore 协议 ---

    async def load(
        self, language: str, context: TranslationContext
    ) -> Optional[Dictionary]:
        return await asyncio.to_thread(self.read_dictionary, language, context)

    async def save(
        self, language: str, context: TranslationContext, dictionary: Dictionary
    ) -> None:
        path = self.dictionary_path(language, context)
        await asyncio.to_thread(self._write_json, path, dictionary)
        logger.debug(
            "字典已保存", language=language, context=context.value, keys=len(dictionary)
        )

    async def load_snapshot(self, context: TranslationContext) -> Optional[Dictionary]:
        return await asyncio.to_thread(self._read_json, self.snapshot_path(context))

    async def save_snapshot(
        self, context: TranslationContext, dictionary: Dictionary
    ) -> None:
        await asyncio.to_thread(self._write_json, self.snapshot_path(context), dictionary)
        logger.info("快照已保存", context=context.value, keys=len(dictionary))

    async def list_present_languages(self, context: TranslationContext) -> list[str]:
        return await asyncio.to_thread(self._list_languages, self.context_dir(context))

    async def load_tree(self, context: TranslationContext) -> DictionaryTree:
        tree: DictionaryTree = {}
        for language in await self.list_present_languages(context):
            dictionary = await self.load(language, context)
            if dictionary is not None:
                tree[language] = dictionary
        return tree

    async def save_tree(
        self, context: TranslationContext, tree: DictionaryTree
    ) -> dict[str, bool]:
        """批量保存；单个语言失败不影响其他语言，返回每个语言的保存结果。"""
        outcome: dict[str, bool] = {}
        for language in sorted(tree):
            try:
                await self.save(language, context, tree[language])
                outcome[language] = True
            except StoreError as e:
                logger.error("批量保存字典失败", language=language, error=str(e))
                outcome[language] = False
        return outcome

    async def load_language_names(self) -> dict[str, str]:
        names = await asyncio.to_thread(self._read_json, self.config.language_names_path)
        return names or {}

    async def save_language_names(self, names: dict[str, str]) -> None:
        await asyncio.to_thread(
            self._write_json, self.config.language_names_path, dict(sorted(names.items()))
        )

    # --- 内部实现 ---

    @staticmethod
    def _list_languages(directory: Path) -> list[str]:
        if not directory.is_dir():
            return []
        return sorted(
            path.stem.lower()
            for path in directory.glob("*.json")
            if is_two_letter_code(path.stem)
        )

    @staticmethod
    def _read_json(path: Path) -> Optional[dict[str, str]]:
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StoreError(f"无法读取文件 '{path}': {e}") from e

        try:
            data: Any = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreError(f"文件 '{path}' 不是有效的 JSON: {e}") from e
        if not isinstance(data, dict):
            raise StoreError(f"文件 '{path}' 的顶层必须是一个 JSON 对象。")
        return {str(k): "" if v is None else str(v) for k, v in data.items()}

    @staticmethod
    def _write_json(path: Path, data: dict[str, str]) -> None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, ensure_ascii=False, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreError(f"无法写入文件 '{path}': {e}") from e
