# locale_sync/utils.py
"""
本模块包含项目范围内的通用工具函数。
语言代码校验与显示名称统一交给 langcodes 库处理。
"""

import re
from collections.abc import Iterator, Sequence
from typing import TypeVar

from langcodes import Language
from langcodes.tag_parser import LanguageTagError

# 语言子标签应该由 2-3 个字母组成 (BCP 47)
LANGUAGE_SUBTAG_PATTERN = re.compile(r"^[a-zA-Z]{2,3}$")
# 本地化文件与翻译服务只接受两个字母的 ISO 639-1 代码
TWO_LETTER_CODE_PATTERN = re.compile(r"^[a-zA-Z]{2}$")

_T = TypeVar("_T")


def validate_lang_codes(lang_codes: list[str]) -> None:
    """使用 `langcodes` 库校验语言代码列表中的每个代码是否符合 BCP 47 规范。"""
    for code in lang_codes:
        try:
            lang = Language.get(code)
            if not lang.language or not LANGUAGE_SUBTAG_PATTERN.match(lang.language):
                raise LanguageTagError(
                    f"Tag '{code}' lacks a valid 2-3 letter language subtag."
                )
        except LanguageTagError as e:
            raise ValueError(f"提供的语言代码 '{code}' 格式无效。原因: {e}") from e


def is_two_letter_code(code: str | None) -> bool:
    return bool(code) and TWO_LETTER_CODE_PATTERN.match(code) is not None  # type: ignore[arg-type]


def english_display_name(code: str) -> str:
    """返回语言代码的英文显示名称，例如 'de' -> 'German'。"""
    return Language.get(code).display_name("en")


def chunked(items: Sequence[_T], size: int) -> Iterator[list[_T]]:
    """将序列按固定大小切分为若干缓冲批次。"""
    if size <= 0:
        raise ValueError("批次大小必须为正数")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])
