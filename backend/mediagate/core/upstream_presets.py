"""
上游聚合商预设

同一个视频模型可以通过两家聚合商访问,路由名和字段命名都不稳定,
这里只给出"候选列表",真正生效的组合由 EndpointResolver 在运行时探测。
候选按优先级排列(最可能正确的放在最前面)。
"""
from __future__ import annotations

from dataclasses import dataclass, field

from mediagate.core.config import Settings


@dataclass(frozen=True)
class UpstreamPreset:
    name: str
    base_url: str
    submit_paths: tuple[str, ...]
    status_paths: tuple[str, ...]
    job_id_params: tuple[str, ...] = ("taskId", "id", "task_id", "job_id")
    tier_models: dict[str, str] = field(default_factory=dict)
    field_style: str = "camel"  # camel | snake

    def model_for(self, tier: str) -> str:
        return self.tier_models.get(tier) or self.tier_models.get("fast") or tier


PRESETS: dict[str, UpstreamPreset] = {
    "kie": UpstreamPreset(
        name="kie",
        base_url="https://api.kie.ai/api/v1",
        submit_paths=(
            "/veo/generate",
            "/veo3/generate",
            "/veo/submit",
            "/generate",
        ),
        status_paths=(
            "/veo/record-info",
            "/veo/record",
            "/veo/status",
            "/task/status",
        ),
        tier_models={"fast": "veo3_fast", "quality": "veo3"},
        field_style="camel",
    ),
    "aimlapi": UpstreamPreset(
        name="aimlapi",
        base_url="https://api.aimlapi.com/v2",
        submit_paths=(
            "/generate/video/google/generation",
            "/video/generations",
        ),
        status_paths=(
            "/generate/video/google/generation",
            "/video/generations",
        ),
        job_id_params=("generation_id", "id", "taskId", "task_id", "job_id"),
        tier_models={"fast": "google/veo-3.0-fast", "quality": "google/veo3"},
        field_style="snake",
    ),
}


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in (raw or "").split(",") if item.strip())


def load_preset(cfg: Settings) -> UpstreamPreset:
    """
    读取配置中的预设,并用环境变量覆盖候选列表 / base_url。
    未知预设名回退到 kie。
    """
    base = PRESETS.get((cfg.UPSTREAM_PRESET or "").lower(), PRESETS["kie"])
    return UpstreamPreset(
        name=base.name,
        base_url=(cfg.UPSTREAM_BASE_URL or base.base_url).rstrip("/"),
        submit_paths=_split_csv(cfg.UPSTREAM_SUBMIT_PATHS) or base.submit_paths,
        status_paths=_split_csv(cfg.UPSTREAM_STATUS_PATHS) or base.status_paths,
        job_id_params=_split_csv(cfg.UPSTREAM_JOB_ID_PARAMS) or base.job_id_params,
        tier_models=dict(base.tier_models),
        field_style=(cfg.UPSTREAM_FIELD_STYLE or base.field_style).lower(),
    )
