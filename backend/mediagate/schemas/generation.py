from __future__ import annotations

from typing import Any, Literal

from pydantic import Field

from mediagate.schemas.base import BaseSchema

AspectRatio = Literal["16:9", "9:16", "1:1", "4:3", "3:4"]
Resolution = Literal["720p", "1080p"]
Tier = Literal["fast", "quality"]

ASPECT_RATIOS: tuple[str, ...] = ("16:9", "9:16", "1:1", "4:3", "3:4")
RESOLUTIONS: tuple[str, ...] = ("720p", "1080p")
MIN_DURATION_SECONDS = 1.0
MAX_DURATION_SECONDS = 8.0


class GenerationRequest(BaseSchema):
    """清洗后的生成请求(只由 sanitizer 构造)"""

    prompt: str = Field(..., min_length=1, description="提示词")
    duration_seconds: float = Field(
        8.0, ge=MIN_DURATION_SECONDS, le=MAX_DURATION_SECONDS, description="视频时长(秒)"
    )
    aspect_ratio: AspectRatio = Field("16:9", description="纵横比")
    with_audio: bool = Field(True, description="是否生成音轨")
    resolution: Resolution | None = Field(None, description="分辨率")
    style: str | None = Field(None, description="风格")
    negative_prompt: str | None = Field(None, description="反向提示词")
    seed: int | None = Field(None, ge=0, description="随机种子")


class GenerationResult(BaseSchema):
    success: bool = True
    job_id: str
    video_url: str
    tier: Tier
    model: str
    meta: dict[str, Any] = Field(default_factory=dict)
    request_id: str | None = None


class GenerationAccepted(BaseSchema):
    """回调模式下的立即确认"""

    success: bool = True
    pending: bool = True
    job_id: str
    tier: Tier
    model: str
    request_id: str | None = None


class ErrorBody(BaseSchema):
    code: str
    message: str
    source: str | None = None
    detail: dict[str, Any] = Field(default_factory=dict)


class ErrorResponse(BaseSchema):
    success: bool = False
    error: ErrorBody
    request_id: str | None = None
    job_id: str | None = None
    pending: bool | None = None


class EndpointBindingInfo(BaseSchema):
    submit_path: str
    status_path: str
    job_id_param: str
    discovered_at: float


class EndpointDiagnostics(BaseSchema):
    base_url: str
    preset: str
    binding: EndpointBindingInfo | None = None
    discovering: bool = False
    last_error: str | None = None
    attempts: list[dict[str, Any]] = Field(default_factory=list)
    consecutive_no_job_id: int = 0
    cache_ttl_seconds: float = 0.0
    reset_after_no_job_id: int = 0


class WebhookAck(BaseSchema):
    ok: bool = True
    job_id: str | None = None
    status: str
    video_url: str | None = None


class VoiceItem(BaseSchema):
    id: str | None = None
    name: str | None = None
    category: str = ""


class VoiceListResponse(BaseSchema):
    voices: list[VoiceItem] = Field(default_factory=list)
