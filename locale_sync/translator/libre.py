# locale_sync/translator/libre.py
"""提供一个对接 LibreTranslate 兼容 API 的翻译客户端。"""

import asyncio
from dataclasses import dataclass
from typing import Any, Optional

import httpx
import structlog

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

logger = structlog.get_logger(__name__)

# 502 Bad Gateway / 500 Internal Server Error 被视为服务端的临时性故障
TRANSIENT_STATUS_CODES = frozenset({500, 502})


@dataclass
class _Exchange:
    """一次“带重试的请求”的最终结果。"""

    response: Optional[httpx.Response]
    attempts: int
    error: Optional[str] = None


class LibreTranslateClient(BaseTranslator):
    """使用 httpx 的纯异步 LibreTranslate 客户端。"""

    VERSION = "1.2.0"

    def __init__(
        self,
        config: TranslatorConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(config)
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        logger.info("LibreTranslate 客户端已配置。", host=config.host)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Accept": "application/json", "User-Agent": "locale-sync"}
            api_key = self._api_key()
            if api_key:
                headers["Authorization"] = f"Bearer {api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.config.host,
                headers=headers,
                timeout=httpx.Timeout(
                    self.config.timeout_total, connect=self.config.timeout_connect
                ),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            logger.info("LibreTranslate 客户端的 HTTP 连接已关闭。")
        self._client = None
        await super().close()

    def _api_key(self) -> str | None:
        if self.config.needs_key and self.config.api_key:
            return self.config.api_key.get_secret_value() or None
        return None

    def _form(self, **fields: str) -> dict[str, str]:
        form = dict(fields)
        api_key = self._api_key()
        if api_key:
            form["api_key"] = api_key
        return form

    async def _request_with_retry(
        self, method: str, endpoint: str, **kwargs: Any
    ) -> _Exchange:
        """
        发送请求，对临时性故障（500/502 与连接错误）按固定间隔重试。

        总尝试次数不超过 `max_attempts`；其他非 2xx 状态码原样返回，由调用方处理。
        """
        max_attempts = self.config.max_attempts
        last_error: str | None = None
        for attempt in range(1, max_attempts + 1):
            try:
                response = await self.client.request(method, endpoint, **kwargs)
            except httpx.TransportError as e:
                last_error = f"{e.__class__.__name__}: {e}"
            else:
                if response.status_code not in TRANSIENT_STATUS_CODES:
                    return _Exchange(response=response, attempts=attempt)
                last_error = f"HTTP {response.status_code} {response.reason_phrase}"

            logger.warning(
                "翻译服务临时故障",
                endpoint=endpoint,
                attempt=attempt,
                max_attempts=max_attempts,
                error=last_error,
            )
            if attempt < max_attempts:
                await asyncio.sleep(self.config.wait_seconds_before_retry)

        return _Exchange(response=None, attempts=max_attempts, error=last_error)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("error"):
            return str(payload["error"])
        return f"HTTP {response.status_code} {response.reason_phrase}"

    async def _execute_translation(
        self, text: str, source_lang: str, target_lang: str
    ) -> TranslateOutcome:
        """[实现] 翻译单条文本，并应用大小写启发式。"""
        current_text = text
        decapitalized = False
        attempts = 0

        while True:
            exchange = await self._request_with_retry(
                "POST",
                self.config.translate_endpoint,
                data=self._form(
                    q=current_text,
                    source=source_lang,
                    target=target_lang,
                    format="text",
                    alternatives="2",
                ),
            )
            attempts += exchange.attempts
            response = exchange.response

            if response is None:
                return TranslateFailure(
                    error_message=f"重试耗尽: {exchange.error}",
                    fallback_text=text,
                    is_retryable=True,
                    attempts=attempts,
                )

            if response.is_error:
                message = self._error_message(response)
                return TranslateFailure(
                    error_message=message,
                    fallback_text=text,
                    is_retryable=False,
                    unsupported=response.status_code == 400
                    and "not supported" in message.lower(),
                    attempts=attempts,
                )

            try:
                payload = response.json()
            except ValueError:
                return TranslateFailure(
                    error_message="无法解析翻译结果。",
                    fallback_text=text,
                    attempts=attempts,
                )

            translated = payload.get("translatedText") if isinstance(payload, dict) else None
            alternatives = payload.get("alternatives") if isinstance(payload, dict) else None

            if not translated or translated == current_text:
                # LibreTranslate 有时无法翻译首字母大写的单词，会原样返回。
                # 对非全小写文本只额外尝试一次小写版本。
                if current_text == current_text.lower() or decapitalized:
                    if not translated:
                        return TranslateFailure(
                            error_message="翻译服务返回了空内容。",
                            fallback_text=text,
                            attempts=attempts,
                        )
                    return TranslateSuccess(translated_text=text, attempts=attempts)
                current_text = current_text.lower()
                decapitalized = True
                continue

            return TranslateSuccess(
                translated_text=str(translated),
                alternatives=[str(a) for a in alternatives or []],
                attempts=attempts,
            )

    async def get_available_languages(self) -> list[str]:
        exchange = await self._request_with_retry("GET", self.config.languages_endpoint)
        response = exchange.response
        if response is None:
            raise APIError(f"获取可用语言失败（已尝试 {exchange.attempts} 次）: {exchange.error}")
        if response.is_error:
            raise APIError(f"获取可用语言失败: {self._error_message(response)}")
        try:
            languages = response.json()
        except ValueError as e:
            raise APIError("无法解析可用语言列表。") from e

        codes = [str(item["code"]) for item in languages or [] if isinstance(item, dict) and "code" in item]
        if not codes:
            logger.warning("翻译服务没有返回任何受支持的语言。")
        return codes

    async def detect_language(self, text: str) -> list[Detection]:
        if not text:
            raise APIError("待检测文本不能为空。")
        exchange = await self._request_with_retry(
            "POST", self.config.detect_language_endpoint, data=self._form(q=text)
        )
        response = exchange.response
        if response is None:
            raise APIError(f"语言检测失败（已尝试 {exchange.attempts} 次）: {exchange.error}")
        if response.is_error:
            raise APIError(f"语言检测失败: {self._error_message(response)}")
        try:
            payload = response.json()
        except ValueError as e:
            raise APIError("无法解析语言检测结果。") from e
        return [Detection.model_validate(item) for item in payload or []]

    async def translate_file(
        self,
        content: bytes,
        filename: str,
        source_lang: str,
        target_lang: str,
    ) -> TranslateFileResult | TranslateFailure:
        fallback = content.decode("utf-8", errors="replace")
        exchange = await self._request_with_retry(
            "POST",
            self.config.translate_file_endpoint,
            data=self._form(source=source_lang, target=target_lang, format="text"),
            files={"file": (filename, content, "application/octet-stream")},
        )
        response = exchange.response
        if response is None:
            return TranslateFailure(
                error_message=f"重试耗尽: {exchange.error}",
                fallback_text=fallback,
                is_retryable=True,
                attempts=exchange.attempts,
            )
        if response.is_error:
            return TranslateFailure(
                error_message=f"文件翻译失败: {self._error_message(response)}",
                fallback_text=fallback,
                attempts=exchange.attempts,
            )
        try:
            payload = response.json()
            return TranslateFileResult(translated_file_url=payload["translatedFileUrl"])
        except (ValueError, KeyError, TypeError):
            return TranslateFailure(
                error_message="无法解析文件翻译结果。",
                fallback_text=fallback,
                attempts=exchange.attempts,
            )
