# tests/unit/test_store.py
"""针对文件字典存储 `FileDictionaryStore` 的单元测试。"""

import os

import pytest
from pytest_mock import MockerFixture

from locale_sync.core.exceptions import StoreError
from locale_sync.core.types import TranslationContext
from locale_sync.store import FileDictionaryStore
from tests.helpers.fakes import read_json, write_json

BACKEND = TranslationContext.BACKEND
FRONTEND = TranslationContext.FRONTEND


@pytest.mark.asyncio
async def test_load_missing_returns_none(store: FileDictionaryStore) -> None:
    assert await store.load("de", BACKEND) is None
    assert await store.load_snapshot(FRONTEND) is None


@pytest.mark.asyncio
async def test_save_and_load_roundtrip_per_context(store: FileDictionaryStore) -> None:
    await store.save("de", BACKEND, {"hello": "Hallo"})
    await store.save("de", FRONTEND, {"hello": "Servus"})

    assert await store.load("de", BACKEND) == {"hello": "Hallo"}
    assert await store.load("de", FRONTEND) == {"hello": "Servus"}
    assert store.dictionary_path("de", BACKEND).parent == store.config.server_locales_dir
    assert store.dictionary_path("de", FRONTEND).parent == store.config.client_locales_dir


@pytest.mark.asyncio
async def test_snapshot_files_are_named_per_context(store: FileDictionaryStore) -> None:
    await store.save_snapshot(BACKEND, {"a": "A"})
    await store.save_snapshot(FRONTEND, {"b": "B"})

    snapshot_dir = store.config.snapshot_dir
    assert read_json(snapshot_dir / "old.json") == {"a": "A"}
    assert read_json(snapshot_dir / "old_client.json") == {"b": "B"}


@pytest.mark.asyncio
async def test_non_ascii_is_written_verbatim(store: FileDictionaryStore) -> None:
    await store.save("ja", BACKEND, {"hello": "こんにちは"})
    raw = store.dictionary_path("ja", BACKEND).read_text(encoding="utf-8")
    assert "こんにちは" in raw


@pytest.mark.asyncio
async def test_list_present_languages_only_counts_two_letter_files(
    store: FileDictionaryStore,
) -> None:
    locales = store.config.server_locales_dir
    for name in ["fr.json", "de.json", "EN.json", "language_names.json", "zh-CN.json", "notes.txt"]:
        write_json(locales / name, {})

    assert await store.list_present_languages(BACKEND) == ["de", "en", "fr"]
    assert await store.list_present_languages(FRONTEND) == []


@pytest.mark.asyncio
async def test_invalid_language_code_raises(store: FileDictionaryStore) -> None:
    with pytest.raises(StoreError):
        await store.save("deu", BACKEND, {})
    with pytest.raises(StoreError):
        await store.load("../etc", BACKEND)


@pytest.mark.asyncio
async def test_invalid_json_raises_store_error(store: FileDictionaryStore) -> None:
    path = store.dictionary_path("de", BACKEND)
    path.parent.mkdir(parents=True)
    path.write_text("{not json", encoding="utf-8")

    with pytest.raises(StoreError, match="不是有效的 JSON"):
        await store.load("de", BACKEND)


@pytest.mark.asyncio
async def test_failed_write_keeps_previous_file_intact(
    store: FileDictionaryStore, mocker: MockerFixture
) -> None:
    """原子写入：替换失败时旧文件保持不变，且不会残留临时文件。"""
    await store.save("de", BACKEND, {"hello": "Hallo"})
    mocker.patch("locale_sync.store.os.replace", side_effect=OSError("disk full"))

    with pytest.raises(StoreError, match="disk full"):
        await store.save("de", BACKEND, {"hello": "KAPUTT"})

    directory = store.config.server_locales_dir
    assert read_json(directory / "de.json") == {"hello": "Hallo"}
    assert sorted(os.listdir(directory)) == ["de.json"]


@pytest.mark.asyncio
async def test_tree_read_and_bulk_save(store: FileDictionaryStore) -> None:
    outcome = await store.save_tree(FRONTEND, {"de": {"a": "A-de"}, "fr": {"a": "A-fr"}})
    assert outcome == {"de": True, "fr": True}
    assert await store.load_tree(FRONTEND) == {"de": {"a": "A-de"}, "fr": {"a": "A-fr"}}

    outcome = await store.save_tree(FRONTEND, {"de": {"a": "x"}, "bad-code": {"a": "y"}})
    assert outcome == {"bad-code": False, "de": True}


@pytest.mark.asyncio
async def test_language_names_roundtrip(store: FileDictionaryStore) -> None:
    assert await store.load_language_names() == {}
    await store.save_language_names({"fr": "français", "de": "Deutsch"})
    assert await store.load_language_names() == {"de": "Deutsch", "fr": "français"}


def test_read_dictionary_is_synchronous(store: FileDictionaryStore) -> None:
    write_json(store.config.client_locales_dir / "es.json", {"hello": "Hola"})
    assert store.read_dictionary("es", FRONTEND) == {"hello": "Hola"}
    assert store.read_dictionary("it", FRONTEND) is None
