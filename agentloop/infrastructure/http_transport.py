"""HTTP Transport: streams one provider request over httpx and yields text chunks.

Invariants:
    - Credentials are injected here and nowhere else (adapters emit header-free requests)
    - HTTP status >= 400, timeouts and connection failures all raise TransportError
    - No retries: one send_api_request call is exactly one HTTP request
    - CancelledError passes through uncaught; closing the stream closes the response

Design Decisions:
    - Injected httpx.AsyncClient is borrowed, never closed here (tests pass one
      built on httpx.MockTransport); without one a client is opened per request
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator

import httpx

from agentloop.config import Settings, get_settings
from agentloop.core.domain_types import Provider
from agentloop.core.errors import ErrorContext, TransportError

logger = logging.getLogger(__name__)

_ERROR_BODY_LIMIT = 500


def credential_headers(provider: Provider, settings: Settings) -> dict[str, str]:
    """Auth headers for a provider; empty when no key is configured."""
    if provider == Provider.ANTHROPIC:
        headers = {"anthropic-version": settings.anthropic_version}
        if settings.anthropic_api_key:
            headers["x-api-key"] = settings.anthropic_api_key
        return headers
    if provider == Provider.GEMINI:
        if settings.gemini_api_key:
            return {"x-goog-api-key": settings.gemini_api_key}
        return {}
    if provider == Provider.OPENAI and settings.openai_api_key:
        return {"Authorization": f"Bearer {settings.openai_api_key}"}
    return {}


def base_url_for(provider: Provider, settings: Settings) -> str:
    return {
        Provider.ANTHROPIC: settings.anthropic_base_url,
        Provider.OPENAI: settings.openai_base_url,
        Provider.OLLAMA: settings.ollama_base_url,
        Provider.GEMINI: settings.gemini_base_url,
    }[provider]


class HttpxTransport:
    """Transport implementation for real provider endpoints."""

    def __init__(
        self,
        provider: Provider,
        settings: Settings | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        self.provider = Provider(provider)
        self.settings = settings or get_settings()
        self._client = client
        self.base_url = base_url_for(self.provider, self.settings)

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            self.settings.transport_timeout_seconds,
            connect=self.settings.transport_connect_timeout_seconds,
        )

    @asynccontextmanager
    async def _client_scope(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=self._timeout()) as client:
            yield client

    async def send_api_request(
        self, body: str, headers: dict[str, str], url: str,
    ) -> AsyncGenerator[str, None]:
        context = ErrorContext(provider=self.provider.value)
        request_headers = {**headers, **credential_headers(self.provider, self.settings)}
        try:
            async with self._client_scope() as client:
                async with client.stream(
                    "POST", self.base_url + url,
                    content=body.encode("utf-8"), headers=request_headers,
                ) as response:
                    if response.status_code >= 400:
                        detail = (await response.aread()).decode("utf-8", "replace")
                        raise TransportError(
                            f"HTTP {response.status_code}: {detail[:_ERROR_BODY_LIMIT]}",
                            "http_status",
                            status_code=response.status_code,
                            context=context,
                        )
                    async for chunk in response.aiter_text():
                        if chunk:
                            yield chunk
        except httpx.TimeoutException as e:
            logger.warning("Provider request timed out", extra={"provider": self.provider.value})
            raise TransportError(str(e) or "request timed out", "timeout", context=context) from e
        except httpx.HTTPError as e:
            logger.warning(
                f"Provider request failed: {e}", extra={"provider": self.provider.value},
            )
            raise TransportError(str(e), "connection_error", context=context) from e
