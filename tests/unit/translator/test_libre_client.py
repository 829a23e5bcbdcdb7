# tests/unit/translator/test_libre_client.py
"""
针对 `LibreTranslateClient` 的单元测试。

所有网络交互都通过 `httpx.MockTransport` 模拟，重试等待时间为 0。
"""

from collections.abc import AsyncGenerator, Callable
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from pydantic import SecretStr

from locale_sync.config import TranslatorConfig
from locale_sync.core.exceptions import APIError
from locale_sync.core.types import TranslateFailure, TranslateFileResult, TranslateSuccess
from locale_sync.translator.libre import LibreTranslateClient

Handler = Callable[[httpx.Request], httpx.Response]


class _Recorder:
    """记录所有请求并按顺序交给处理函数。"""

    def __init__(self, handler: Handler):
        self.handler = handler
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)

    def forms(self) -> list[dict[str, str]]:
        return [
            {k: v[0] for k, v in parse_qs(r.content.decode()).items()}
            for r in self.requests
        ]


def _config(**overrides: object) -> TranslatorConfig:
    values: dict[str, object] = {
        "host": "http://libre.test",
        "retries_on_failure": 3,
        "wait_seconds_before_retry": 0,
    }
    values.update(overrides)
    return TranslatorConfig(**values)  # type: ignore[arg-type]


@pytest_asyncio.fixture
async def make_client() -> AsyncGenerator[
    Callable[..., tuple[LibreTranslateClient, _Recorder]], None
]:
    clients: list[LibreTranslateClient] = []

    def _make(handler: Handler, **overrides: object) -> tuple[LibreTranslateClient, _Recorder]:
        recorder = _Recorder(handler)
        client = LibreTranslateClient(
            _config(**overrides), transport=httpx.MockTransport(recorder)
        )
        clients.append(client)
        return client, recorder

    yield _make
    for client in clients:
        await client.close()


def _translated(text: str) -> httpx.Response:
    return httpx.Response(200, json={"translatedText": text, "alternatives": []})


# --- 重试策略 ---


@pytest.mark.asyncio
async def test_502_twice_then_success_takes_three_attempts(make_client) -> None:
    """502 两次后 200：短语最终成功，尝试次数为 3。"""
    statuses = iter([502, 502, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        status = next(statuses)
        if status == 200:
            return _translated("Hallo")
        return httpx.Response(status)

    client, recorder = make_client(handler, retries_on_failure=3)
    result = await client.translate("Hello", "en", "de")

    assert isinstance(result, TranslateSuccess)
    assert result.translated_text == "Hallo"
    assert result.attempts == 3
    assert len(recorder.requests) == 3


@pytest.mark.asyncio
@pytest.mark.parametrize("retries, expected_attempts", [(0, 1), (1, 1), (2, 2), (3, 3), (5, 5)])
async def test_permanent_transient_error_is_bounded(
    make_client, retries: int, expected_attempts: int
) -> None:
    """持续的 500 错误恰好导致 n 次尝试（0 视为 1）。"""
    client, recorder = make_client(
        lambda request: httpx.Response(500), retries_on_failure=retries
    )
    result = await client.translate("Hello", "en", "de")

    assert isinstance(result, TranslateFailure)
    assert result.is_retryable is True
    assert result.fallback_text == "Hello"
    assert result.attempts == expected_attempts
    assert len(recorder.requests) == expected_attempts


@pytest.mark.asyncio
async def test_connection_errors_are_retried(make_client) -> None:
    calls = {"n": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        calls["n"] += 1
        if calls["n"] == 1:
            raise httpx.ConnectError("connection refused", request=request)
        return _translated("Hallo")

    client, _ = make_client(handler)
    result = await client.translate("Hello", "en", "de")

    assert isinstance(result, TranslateSuccess)
    assert result.attempts == 2


@pytest.mark.asyncio
async def test_non_transient_status_fails_immediately(make_client) -> None:
    client, recorder = make_client(
        lambda request: httpx.Response(403, json={"error": "Invalid API key"})
    )
    result = await client.translate("Hello", "en", "de")

    assert isinstance(result, TranslateFailure)
    assert result.error_message == "Invalid API key"
    assert result.is_retryable is False
    assert result.unsupported is False
    assert result.fallback_text == "Hello"
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_unsupported_language_pair_is_flagged(make_client) -> None:
    client, _ = make_client(
        lambda request: httpx.Response(400, json={"error": "xx is not supported"})
    )
    result = await client.translate("Hello", "en", "xx")

    assert isinstance(result, TranslateFailure)
    assert result.unsupported is True


# --- 大小写启发式 ---


@pytest.mark.asyncio
async def test_echoed_capitalized_text_is_retried_once_lowercased(make_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        q = parse_qs(request.content.decode())["q"][0]
        return _translated(q if q == "Hello" else "hallo")

    client, recorder = make_client(handler)
    result = await client.translate("Hello", "en", "de")

    assert isinstance(result, TranslateSuccess)
    assert result.translated_text == "hallo"
    assert [f["q"] for f in recorder.forms()] == ["Hello", "hello"]


@pytest.mark.asyncio
async def test_casing_heuristic_never_retries_more_than_once(make_client) -> None:
    """服务始终原样返回时，只额外尝试一次，最终以原文作为译文。"""

    def handler(request: httpx.Request) -> httpx.Response:
        return _translated(parse_qs(request.content.decode())["q"][0])

    client, recorder = make_client(handler)
    result = await client.translate("Paris", "en", "de")

    assert isinstance(result, TranslateSuccess)
    assert result.translated_text == "Paris"
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_lowercase_text_echo_is_not_retried(make_client) -> None:
    client, recorder = make_client(lambda request: _translated("ok"))
    result = await client.translate("ok", "en", "de")

    assert isinstance(result, TranslateSuccess)
    assert len(recorder.requests) == 1


@pytest.mark.asyncio
async def test_empty_result_after_lowercase_retry_is_failure(make_client) -> None:
    client, recorder = make_client(lambda request: _translated(""))
    result = await client.translate("Hello", "en", "de")

    assert isinstance(result, TranslateFailure)
    assert result.fallback_text == "Hello"
    assert len(recorder.requests) == 2


# --- 输入校验与快速路径 ---


@pytest.mark.asyncio
@pytest.mark.parametrize("language", ["en", "de", "ja"])
async def test_same_language_returns_input_without_network(make_client, language: str) -> None:
    client, recorder = make_client(lambda request: pytest.fail("不应发出网络请求"))
    result = await client.translate("Anything at all", language, language)

    assert isinstance(result, TranslateSuccess)
    assert result.translated_text == "Anything at all"
    assert recorder.requests == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "text, source, target, message",
    [
        ("Hello", "en", "deu", "目标语言代码无效"),
        ("Hello", "en", "", "目标语言代码无效"),
        ("", "en", "de", "待翻译文本不能为空"),
        ("Hello", "auto", "de", "源语言代码无效"),
        ("Hello", "english", "de", "源语言代码无效"),
    ],
)
async def test_invalid_input_fails_without_retry(
    make_client, text: str, source: str, target: str, message: str
) -> None:
    client, recorder = make_client(lambda request: pytest.fail("不应发出网络请求"))
    result = await client.translate(text, source, target)

    assert isinstance(result, TranslateFailure)
    assert result.error_message == message
    assert result.is_retryable is False
    assert result.fallback_text == text
    assert recorder.requests == []


@pytest.mark.asyncio
async def test_request_shape_with_api_key(make_client) -> None:
    client, recorder = make_client(
        lambda request: _translated("Hallo"),
        needs_key=True,
        api_key=SecretStr("secret-key"),
    )
    await client.translate("Hello", "EN", "DE")

    request = recorder.requests[0]
    assert request.url.path == "/translate"
    assert request.headers["Authorization"] == "Bearer secret-key"
    assert recorder.forms()[0] == {
        "q": "Hello",
        "source": "en",
        "target": "de",
        "format": "text",
        "alternatives": "2",
        "api_key": "secret-key",
    }


@pytest.mark.asyncio
async def test_api_key_is_not_sent_when_not_required(make_client) -> None:
    client, recorder = make_client(
        lambda request: _translated("Hallo"), api_key=SecretStr("unused")
    )
    await client.translate("Hello", "en", "de")

    assert "api_key" not in recorder.forms()[0]
    assert "Authorization" not in recorder.requests[0].headers


@pytest.mark.asyncio
async def test_translate_from_any_language_uses_auto_source(make_client) -> None:
    client, recorder = make_client(lambda request: _translated("Hallo"))
    result = await client.translate_from_any_language("Hello", "de")

    assert isinstance(result, TranslateSuccess)
    assert recorder.forms()[0]["source"] == "auto"


# --- 语言列表、检测与文件翻译 ---


@pytest.mark.asyncio
async def test_get_available_languages(make_client) -> None:
    payload = [
        {"code": "en", "name": "English", "targets": ["de"]},
        {"code": "de", "name": "German", "targets": ["en"]},
    ]
    client, recorder = make_client(lambda request: httpx.Response(200, json=payload))

    assert await client.get_available_languages() == ["en", "de"]
    assert recorder.requests[0].method == "GET"
    assert recorder.requests[0].url.path == "/languages"


@pytest.mark.asyncio
async def test_get_available_languages_shares_retry_policy(make_client) -> None:
    client, recorder = make_client(lambda request: httpx.Response(502), retries_on_failure=2)

    with pytest.raises(APIError):
        await client.get_available_languages()
    assert len(recorder.requests) == 2


@pytest.mark.asyncio
async def test_detect_language(make_client) -> None:
    client, recorder = make_client(
        lambda request: httpx.Response(200, json=[{"language": "fr", "confidence": 92.0}])
    )
    detections = await client.detect_language("Bonjour")

    assert detections[0].language == "fr"
    assert detections[0].confidence == 92.0
    assert recorder.requests[0].url.path == "/detect"


@pytest.mark.asyncio
async def test_translate_file_accepts_auto_source(make_client) -> None:
    client, recorder = make_client(
        lambda request: httpx.Response(
            200, json={"translatedFileUrl": "http://libre.test/files/out.txt"}
        )
    )
    result = await client.translate_file(b"Hello", "in.txt", "auto", "de")

    assert isinstance(result, TranslateFileResult)
    assert result.translated_file_url.endswith("out.txt")
    assert recorder.requests[0].url.path == "/translate_file"
    assert b'name="source"' in recorder.requests[0].content
