"""
上游响应结构解析

上游(以及两家聚合商)返回的 JSON 结构并不统一,
这里把"已知结构"统一维护成有序的策略列表,按顺序尝试,第一个命中即返回。
新增结构时只需要往对应列表里追加一个策略函数。

- JOB_ID_STRATEGIES:提交响应 -> 任务 ID
- RESULT_URL_STRATEGIES:状态响应 -> 结果视频 URL
- classify_status:状态响应 -> pending / succeeded / failed
"""
from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any
from urllib.parse import urlparse


class StatusSignal(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_SUCCESS_WORDS = {"success", "succeeded", "successful", "completed", "complete", "done", "finished", "ready"}
_FAILURE_WORDS = {"fail", "failed", "failure", "error", "errored", "cancelled", "canceled", "rejected", "expired"}
_STATUS_KEYS = ("status", "state", "taskStatus", "task_status")
_NOT_FOUND_MARKERS = ("not found", "not_found", "notfound", "no such", "does not exist")


def _get(node: Any, *path: str) -> Any:
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _roots(payload: Any) -> list[dict[str, Any]]:
    """文档本身及常见包裹层:data / data.response / data.info / result"""
    roots: list[dict[str, Any]] = []
    for candidate in (
        payload,
        _get(payload, "data"),
        _get(payload, "data", "response"),
        _get(payload, "data", "info"),
    ):
        if isinstance(candidate, dict) and candidate not in roots:
            roots.append(candidate)
    return roots


def is_http_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def _first_url(values: Iterable[Any]) -> str | None:
    for value in values:
        if is_http_url(value):
            return value.strip()
    return None


# ===== 任务 ID =====


def _clean_id(value: Any) -> str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return str(value)
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _path_strategy(*path: str) -> Callable[[Any], str | None]:
    def strategy(payload: Any) -> str | None:
        return _clean_id(_get(payload, *path))

    strategy.__name__ = ".".join(path)
    return strategy


def _bare_data_string(payload: Any) -> str | None:
    data = _get(payload, "data")
    return data.strip() if isinstance(data, str) and data.strip() and not is_http_url(data) else None


JOB_ID_STRATEGIES: tuple[tuple[str, Callable[[Any], str | None]], ...] = (
    ("data.taskId", _path_strategy("data", "taskId")),
    ("data.task_id", _path_strategy("data", "task_id")),
    ("data.id", _path_strategy("data", "id")),
    ("data.jobId", _path_strategy("data", "jobId")),
    ("data.job_id", _path_strategy("data", "job_id")),
    ("taskId", _path_strategy("taskId")),
    ("task_id", _path_strategy("task_id")),
    ("job_id", _path_strategy("job_id")),
    ("jobId", _path_strategy("jobId")),
    ("generation_id", _path_strategy("generation_id")),
    ("id", _path_strategy("id")),
    ("result.taskId", _path_strategy("result", "taskId")),
    ("result.id", _path_strategy("result", "id")),
    ("data", _bare_data_string),
)


def extract_job_id(payload: Any) -> str | None:
    for _name, strategy in JOB_ID_STRATEGIES:
        job_id = strategy(payload)
        if job_id:
            return job_id
    return None


# ===== 结果 URL =====


def _flat_fields(node: dict[str, Any]) -> str | None:
    return _first_url(node.get(key) for key in ("resultUrl", "videoUrl", "video_url", "url"))


def _output_field(node: dict[str, Any]) -> str | None:
    output = node.get("output")
    if isinstance(output, str):
        return _first_url([output])
    if isinstance(output, list):
        return _first_url(output)
    if isinstance(output, dict):
        return _first_url(output.get(key) for key in ("video_url", "videoUrl", "url"))
    return None


def _result_field(node: dict[str, Any]) -> str | None:
    result = node.get("result")
    if isinstance(result, str):
        return _first_url([result])
    if isinstance(result, dict):
        return _first_url(result.get(key) for key in ("url", "video_url", "videoUrl", "resultUrl"))
    return None


def _result_url_list(node: dict[str, Any]) -> str | None:
    for key in ("resultUrls", "result_urls", "videoUrls", "video_urls"):
        value = node.get(key)
        if isinstance(value, str):
            # 部分上游把数组序列化成字符串返回
            try:
                value = json.loads(value)
            except ValueError:
                value = [value]
        if isinstance(value, list):
            url = _first_url(value)
            if url:
                return url
    return None


def _is_video_item(item: dict[str, Any]) -> bool:
    marker = " ".join(
        str(item.get(key) or "")
        for key in ("content_type", "contentType", "mime_type", "mimeType", "type", "kind")
    ).lower()
    return "video" in marker


def _media_array(node: dict[str, Any]) -> str | None:
    for key in ("media", "outputs", "videos", "assets"):
        items = node.get(key)
        if not isinstance(items, list):
            continue
        for item in items:
            if isinstance(item, dict) and _is_video_item(item):
                url = _first_url(item.get(k) for k in ("url", "video_url", "uri", "src"))
                if url:
                    return url
    return None


RESULT_URL_STRATEGIES: tuple[tuple[str, Callable[[dict[str, Any]], str | None]], ...] = (
    ("flat", _flat_fields),
    ("output", _output_field),
    ("result", _result_field),
    ("result_urls", _result_url_list),
    ("media_array", _media_array),
)


def extract_result_url(payload: Any) -> str | None:
    """按已知结构依次尝试,返回第一个合法的绝对 URL;都不匹配返回 None"""
    for root in _roots(payload):
        for _name, strategy in RESULT_URL_STRATEGIES:
            url = strategy(root)
            if url:
                return url
    return None


# ===== 状态判定 =====


def _word_signal(value: Any) -> StatusSignal | None:
    if not isinstance(value, str):
        return None
    word = value.strip().lower()
    if word in _SUCCESS_WORDS:
        return StatusSignal.SUCCEEDED
    if word in _FAILURE_WORDS:
        return StatusSignal.FAILED
    return None


def _upstream_code(payload: Any) -> int | None:
    code = _get(payload, "code")
    if isinstance(code, bool):
        return None
    if isinstance(code, int):
        return code
    if isinstance(code, str) and code.strip().isdigit():
        return int(code.strip())
    return None


def has_error_code(payload: Any) -> bool:
    """信封里的 code 字段存在且不是 2xx / 0"""
    code = _upstream_code(payload)
    return code is not None and code != 0 and not 200 <= code < 300


def classify_status(payload: Any) -> StatusSignal:
    if has_error_code(payload):
        # 新任务的记录可能还查不到
        if _upstream_code(payload) == 404:
            return StatusSignal.PENDING
        return StatusSignal.FAILED

    for root in _roots(payload):
        flag = root.get("successFlag")
        if isinstance(flag, int) and not isinstance(flag, bool):
            if flag == 1:
                return StatusSignal.SUCCEEDED
            if flag in (2, 3):
                return StatusSignal.FAILED
            return StatusSignal.PENDING

        for key in _STATUS_KEYS:
            signal = _word_signal(root.get(key))
            if signal is not None:
                return signal
    return StatusSignal.PENDING


def extract_error_message(payload: Any) -> str | None:
    for root in _roots(payload):
        for key in ("errorMessage", "error_message", "failMsg", "msg", "message", "error"):
            value = root.get(key)
            if isinstance(value, dict):
                value = value.get("message")
            if isinstance(value, str) and value.strip():
                return value.strip()
    return None


def is_not_found(status_code: int, payload: Any) -> bool:
    """探测状态端点时用:路径不存在 / 任务不存在"""
    if status_code in (404, 405):
        return True
    if _upstream_code(payload) == 404:
        return True
    message = (extract_error_message(payload) or "").lower()
    return any(marker in message for marker in _NOT_FOUND_MARKERS)


__all__ = [
    "JOB_ID_STRATEGIES",
    "RESULT_URL_STRATEGIES",
    "StatusSignal",
    "classify_status",
    "extract_error_message",
    "extract_job_id",
    "extract_result_url",
    "has_error_code",
    "is_http_url",
    "is_not_found",
]
