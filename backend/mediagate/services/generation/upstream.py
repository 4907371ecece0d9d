"""
上游 HTTP 客户端

只负责发请求和把响应统一成 (status_code, payload),
不做任何业务判定;网络层异常统一包装为 UpstreamTransportError。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from mediagate.core.http_client import create_async_http_client
from mediagate.services.generation.errors import UpstreamTransportError

logger = logging.getLogger(__name__)

_MAX_RAW_TEXT = 800


@dataclass
class UpstreamResponse:
    status_code: int
    payload: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _decode(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        text = response.text.strip()
        if len(text) > _MAX_RAW_TEXT:
            text = text[:_MAX_RAW_TEXT] + "..."
        return {"raw": text}


class UpstreamClient:
    def __init__(
        self,
        base_url: str,
        api_key: str | None,
        *,
        submit_timeout: float = 60.0,
        status_timeout: float = 20.0,
        proxy: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.proxy = proxy
        self.api_key = api_key
        self.submit_timeout = submit_timeout
        self.status_timeout = status_timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            client_kwargs = {"proxy": self.proxy} if self.proxy else {}
            self._client = create_async_http_client(transport=self._transport, **client_kwargs)
        return self._client

    async def post_json(self, path: str, payload: dict[str, Any]) -> UpstreamResponse:
        url = self._url(path)
        try:
            response = await self._get_client().post(
                url, json=payload, headers=self._headers(), timeout=self.submit_timeout
            )
        except httpx.HTTPError as exc:
            logger.warning("upstream_post_error url=%s err=%r", url, exc)
            raise UpstreamTransportError(f"POST {path} failed: {exc!r}") from exc
        return UpstreamResponse(response.status_code, _decode(response))

    async def get_json(self, path: str, params: dict[str, Any]) -> UpstreamResponse:
        url = self._url(path)
        try:
            response = await self._get_client().get(
                url, params=params, headers=self._headers(), timeout=self.status_timeout
            )
        except httpx.HTTPError as exc:
            logger.warning("upstream_get_error url=%s err=%r", url, exc)
            raise UpstreamTransportError(f"GET {path} failed: {exc!r}") from exc
        return UpstreamResponse(response.status_code, _decode(response))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


__all__ = ["UpstreamClient", "UpstreamResponse"]
