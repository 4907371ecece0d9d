"""
上游替身

按 (method, path) 路由到 handler;未注册路径返回 404。
handler 返回 httpx.Response 原样使用,返回 dict 则包装为 200 JSON,
抛出 httpx 异常则模拟网络错误。
"""
from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx

BASE_URL = "https://upstream.test"
PROBE_PROMPT = "probe"

Handler = Callable[[httpx.Request], Any]


def sequence(*payloads: Any) -> Handler:
    """依次返回 payloads,用完后一直返回最后一个"""
    items = list(payloads)

    def handler(_: httpx.Request) -> Any:
        if len(items) > 1:
            return items.pop(0)
        return items[0]

    return handler


def request_json(request: httpx.Request) -> dict[str, Any]:
    return json.loads(request.content or b"{}")


class FakeUpstream:
    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.calls: list[httpx.Request] = []

    def on(self, method: str, path: str, handler: Handler | dict[str, Any]) -> None:
        if isinstance(handler, dict):
            payload = handler
            handler = lambda _request: payload  # noqa: E731
        self.routes[(method.upper(), path)] = handler

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json={"code": 404, "msg": "Not Found"})
        result = handler(request)
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json=result)

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [c for c in self.calls if c.method == method.upper() and c.url.path == path]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


PROBE_JOB_ID = "probe-1"
PENDING = {"code": 200, "data": {"successFlag": 0}}


def install_veo_upstream(
    upstream: FakeUpstream,
    *,
    submit: Handler | None = None,
    status: Handler | None = None,
    submit_path: str = "/veo/generate",
    status_path: str = "/veo/record-info",
) -> None:
    """探测请求固定成功;真实任务的提交/状态响应由调用方指定"""
    real_submit = submit or (lambda _r: {"code": 200, "data": {"taskId": "abc123"}})
    real_status = status or (lambda _r: PENDING)

    def submit_handler(request: httpx.Request) -> Any:
        if request_json(request).get("prompt") == PROBE_PROMPT:
            return {"code": 200, "data": {"taskId": PROBE_JOB_ID}}
        return real_submit(request)

    def status_handler(request: httpx.Request) -> Any:
        if request.url.params.get("taskId") == PROBE_JOB_ID:
            return PENDING
        return real_status(request)

    upstream.on("POST", submit_path, submit_handler)
    upstream.on("GET", status_path, status_handler)
