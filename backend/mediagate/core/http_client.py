from __future__ import annotations

import inspect
import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)
_proxy_kwarg_supported: bool | None = None
_proxies_kwarg_supported: bool | None = None
_proxy_kwarg_logged = False


def _detect_httpx_proxy_kwargs() -> tuple[bool, bool]:
    global _proxy_kwarg_supported, _proxies_kwarg_supported

    if _proxy_kwarg_supported is not None and _proxies_kwarg_supported is not None:
        return _proxy_kwarg_supported, _proxies_kwarg_supported

    try:
        params = inspect.signature(httpx.AsyncClient).parameters
        _proxy_kwarg_supported = "proxy" in params
        _proxies_kwarg_supported = "proxies" in params
    except (TypeError, ValueError):
        _proxy_kwarg_supported = False
        _proxies_kwarg_supported = False

    return _proxy_kwarg_supported, _proxies_kwarg_supported


def _normalize_proxy_kwargs(client_kwargs: dict[str, Any]) -> None:
    if "proxy" in client_kwargs and "proxies" in client_kwargs:
        client_kwargs.pop("proxies", None)

    proxy_supported, proxies_supported = _detect_httpx_proxy_kwargs()

    if "proxies" in client_kwargs and not proxies_supported:
        if proxy_supported:
            client_kwargs["proxy"] = client_kwargs.pop("proxies")
        else:
            client_kwargs.pop("proxies", None)
            global _proxy_kwarg_logged
            if not _proxy_kwarg_logged:
                logger.warning("httpx_proxy_kwarg_unsupported proxy config ignored")
                _proxy_kwarg_logged = True

    if "proxy" in client_kwargs and not proxy_supported:
        if proxies_supported:
            client_kwargs["proxies"] = client_kwargs.pop("proxy")
        else:
            client_kwargs.pop("proxy", None)


def create_async_http_client(
    *,
    timeout: float | httpx.Timeout | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    **client_kwargs: Any,
) -> httpx.AsyncClient:
    """
    创建上游调用使用的 httpx.AsyncClient。

    - transport 主要用于测试注入 httpx.MockTransport。
    - 兼容 httpx 版本差异（proxy/proxies）。
    """
    _normalize_proxy_kwargs(client_kwargs)

    return httpx.AsyncClient(
        timeout=timeout,
        transport=transport,
        **client_kwargs,
    )
