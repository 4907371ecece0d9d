"""
请求清洗

前端请求不可完全信任,而上游对越界参数非常敏感(直接 400),
所以这里只对 prompt 做硬校验,其余字段一律"纠正而不拒绝"。
"""
from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from mediagate.core.config import settings
from mediagate.schemas.generation import (
    ASPECT_RATIOS,
    MAX_DURATION_SECONDS,
    MIN_DURATION_SECONDS,
    RESOLUTIONS,
    GenerationRequest,
)
from mediagate.services.generation.errors import ValidationError
from mediagate.services.generation.shapes import is_http_url

_DURATION_KEYS = ("duration", "durationSeconds", "duration_seconds")
_ASPECT_KEYS = ("aspectRatio", "aspect_ratio")
_AUDIO_KEYS = ("withAudio", "with_audio", "audio")
_NEGATIVE_KEYS = ("negativePrompt", "negative_prompt")
_CALLBACK_KEYS = ("callback_url", "callbackUrl", "callBackUrl", "webhook_url")


def _first(raw: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if raw.get(key) is not None:
            return raw[key]
    return None


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
    elif not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except (OverflowError, ValueError):
        # 超大整数无法转成 float
        return None
    return number if math.isfinite(number) else None


def _clean_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    text = value.strip()
    return text or None


def clamp_duration(value: Any, default: float) -> float:
    number = _to_float(value)
    if number is None:
        number = default
    number = round(number, 1)
    return min(MAX_DURATION_SECONDS, max(MIN_DURATION_SECONDS, number))


def normalize_aspect_ratio(value: Any, default: str) -> str:
    candidate = str(value).strip() if value is not None else ""
    if candidate in ASPECT_RATIOS:
        return candidate
    return default if default in ASPECT_RATIOS else ASPECT_RATIOS[0]


def _normalize_seed(value: Any) -> int | None:
    number = _to_float(value)
    if number is None or number < 0 or not number.is_integer():
        return None
    return int(number)


def _normalize_prompt(value: Any, max_chars: int) -> str:
    if isinstance(value, bool):
        value = None
    if isinstance(value, (int, float)):
        try:
            value = str(value)
        except ValueError:
            # 超过 int 转字符串的位数上限
            value = None
    if not isinstance(value, str) or not value.strip():
        raise ValidationError("Prompt is required", detail={"field": "prompt"})
    prompt = value.strip()
    if max_chars and len(prompt) > max_chars:
        prompt = prompt[:max_chars].rstrip()
    return prompt


def sanitize(
    raw: Any,
    *,
    default_aspect_ratio: str | None = None,
    default_duration: float | None = None,
    prompt_max_chars: int | None = None,
) -> GenerationRequest:
    """
    将客户端原始 JSON 规范化为 GenerationRequest。

    - prompt 缺失或去空白后为空 -> ValidationError
    - duration 保留一位小数并钳制到 [1, 8],类型不对时取默认值
    - aspect ratio 不在允许集合内时回退默认值
    - 布尔开关类型不对时取默认值
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("Request body must be a JSON object")

    prompt = _normalize_prompt(
        raw.get("prompt"),
        settings.PROMPT_MAX_CHARS if prompt_max_chars is None else prompt_max_chars,
    )
    duration_default = (
        settings.DEFAULT_DURATION_SECONDS if default_duration is None else default_duration
    )
    aspect_default = default_aspect_ratio or settings.DEFAULT_ASPECT_RATIO

    with_audio = _first(raw, _AUDIO_KEYS)
    resolution = raw.get("resolution")

    return GenerationRequest(
        prompt=prompt,
        duration_seconds=clamp_duration(_first(raw, _DURATION_KEYS), duration_default),
        aspect_ratio=normalize_aspect_ratio(_first(raw, _ASPECT_KEYS), aspect_default),
        with_audio=with_audio if isinstance(with_audio, bool) else True,
        resolution=resolution if resolution in RESOLUTIONS else None,
        style=_clean_text(raw.get("style")),
        negative_prompt=_clean_text(_first(raw, _NEGATIVE_KEYS)),
        seed=_normalize_seed(raw.get("seed")),
    )


def resolve_tier(raw: Any, forced: str | None = None) -> str:
    if forced:
        return "quality" if forced == "quality" else "fast"
    if isinstance(raw, Mapping) and raw.get("tier") == "quality":
        return "quality"
    return "fast"


def sanitize_callback_url(raw: Any) -> str | None:
    if not isinstance(raw, Mapping):
        return None
    value = _first(raw, _CALLBACK_KEYS)
    if is_http_url(value):
        return value.strip()
    return None


def build_upstream_payload(
    request: GenerationRequest,
    *,
    model: str,
    callback_url: str | None = None,
    field_style: str = "camel",
) -> dict[str, Any]:
    """组装上游请求体;风格与反向提示词并入 prompt 文本"""
    prompt = request.prompt
    if request.style:
        prompt += f", {request.style}"
    if request.negative_prompt:
        prompt += f", avoid: {request.negative_prompt}"

    camel = field_style != "snake"
    payload: dict[str, Any] = {
        "model": model,
        "prompt": prompt,
        ("aspectRatio" if camel else "aspect_ratio"): request.aspect_ratio,
        "duration": request.duration_seconds,
        ("withAudio" if camel else "with_audio"): request.with_audio,
    }
    if request.resolution:
        payload["resolution"] = request.resolution
    if request.seed is not None:
        payload["seed"] = request.seed
    if callback_url:
        payload["callBackUrl" if camel else "callback_url"] = callback_url
    return payload


__all__ = [
    "build_upstream_payload",
    "clamp_duration",
    "normalize_aspect_ratio",
    "resolve_tier",
    "sanitize",
    "sanitize_callback_url",
]
