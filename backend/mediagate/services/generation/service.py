from __future__ import annotations

import logging
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any

import httpx

from mediagate.core.config import Settings, settings
from mediagate.core.upstream_presets import UpstreamPreset, load_preset
from mediagate.schemas.generation import GenerationAccepted, GenerationResult, WebhookAck
from mediagate.services.generation.endpoint_resolver import EndpointResolver
from mediagate.services.generation.errors import (
    ConfigurationError,
    NoJobIdError,
    UpstreamRejectedError,
    ValidationError,
)
from mediagate.services.generation.job_queue import JobQueue
from mediagate.services.generation.protocol import PollingProtocol
from mediagate.services.generation.sanitizer import (
    build_upstream_payload,
    resolve_tier,
    sanitize,
    sanitize_callback_url,
)
from mediagate.services.generation.shapes import (
    StatusSignal,
    classify_status,
    extract_error_message,
    extract_job_id,
    extract_result_url,
)
from mediagate.services.generation.upstream import UpstreamClient

logger = logging.getLogger(__name__)


class ResultCache:
    """task_id -> result_url 的进程内 LRU,供 /result/{id} 延迟获取"""

    def __init__(self, max_entries: int = 1000):
        self.max_entries = max(1, max_entries)
        self._items: OrderedDict[str, str] = OrderedDict()

    def get(self, task_id: str) -> str | None:
        url = self._items.get(task_id)
        if url is not None:
            self._items.move_to_end(task_id)
        return url

    def put(self, task_id: str, url: str) -> None:
        self._items[task_id] = url
        self._items.move_to_end(task_id)
        while len(self._items) > self.max_entries:
            self._items.popitem(last=False)

    def __len__(self) -> int:
        return len(self._items)


@dataclass
class LateResult:
    job_id: str
    status: str  # succeeded | pending
    video_url: str | None = None
    cached: bool = False


class GenerationService:
    def __init__(
        self,
        *,
        client: UpstreamClient,
        preset: UpstreamPreset,
        queue: JobQueue,
        resolver: EndpointResolver,
        protocol: PollingProtocol,
        result_cache: ResultCache,
    ):
        self.client = client
        self.preset = preset
        self.queue = queue
        self.resolver = resolver
        self.protocol = protocol
        self.result_cache = result_cache
        self.started_at = time.time()

    @classmethod
    def from_settings(
        cls,
        cfg: Settings = settings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> "GenerationService":
        preset = load_preset(cfg)
        client = UpstreamClient(
            preset.base_url,
            cfg.UPSTREAM_API_KEY,
            submit_timeout=cfg.SUBMIT_TIMEOUT_SECONDS,
            status_timeout=cfg.STATUS_TIMEOUT_SECONDS,
            proxy=cfg.UPSTREAM_PROXY,
            transport=transport,
        )
        queue = JobQueue(cfg.UPSTREAM_CONCURRENCY)
        probe = build_upstream_payload(
            sanitize(
                {"prompt": cfg.DISCOVERY_PROBE_PROMPT, "duration": 1, "withAudio": False},
                prompt_max_chars=cfg.PROMPT_MAX_CHARS,
            ),
            model=preset.model_for("fast"),
            field_style=preset.field_style,
        )
        resolver = EndpointResolver(
            client,
            submit_paths=preset.submit_paths,
            status_paths=preset.status_paths,
            job_id_params=preset.job_id_params,
            probe_payload=probe,
            queue=queue,
            ttl_seconds=cfg.ENDPOINT_CACHE_TTL_SECONDS,
            reset_after_no_job_id=cfg.ENDPOINT_RESET_AFTER_NO_JOB_ID,
        )
        protocol = PollingProtocol(
            client,
            queue,
            poll_interval=cfg.POLL_INTERVAL_SECONDS,
            max_attempts=cfg.POLL_MAX_ATTEMPTS,
            total_timeout=cfg.POLL_TOTAL_TIMEOUT_SECONDS,
            history_limit=cfg.JOB_PAYLOAD_HISTORY,
        )
        return cls(
            client=client,
            preset=preset,
            queue=queue,
            resolver=resolver,
            protocol=protocol,
            result_cache=ResultCache(cfg.RESULT_CACHE_MAX_ENTRIES),
        )

    def _ensure_configured(self) -> None:
        if not self.client.configured:
            raise ConfigurationError("Missing upstream API key (set UPSTREAM_API_KEY or KIE_KEY)")

    async def generate(
        self,
        raw: Any,
        *,
        tier: str | None = None,
        request_id: str | None = None,
    ) -> GenerationResult | GenerationAccepted:
        """
        完整生成流程:清洗 -> 端点发现(首次) -> 提交 -> 轮询 -> 提取 URL。
        带回调地址时提交后立即返回 job_id,结果由上游回调送达。
        """
        request = sanitize(raw)
        tier = resolve_tier(raw, tier)
        model = self.preset.model_for(tier)
        callback_url = sanitize_callback_url(raw)
        self._ensure_configured()

        binding = await self.resolver.resolve()
        payload = build_upstream_payload(
            request,
            model=model,
            callback_url=callback_url,
            field_style=self.preset.field_style,
        )

        try:
            job = await self.protocol.submit(binding, payload)
        except NoJobIdError:
            self.resolver.record_job_id_failure()
            raise
        self.resolver.record_job_id_success()

        if callback_url:
            logger.info("generation_deferred task_id=%s request_id=%s", job.task_id, request_id)
            return GenerationAccepted(job_id=job.task_id, tier=tier, model=model, request_id=request_id)

        job = await self.protocol.await_result(binding, job)
        self.result_cache.put(job.task_id, job.result_url)
        return GenerationResult(
            job_id=job.task_id,
            video_url=job.result_url,
            tier=tier,
            model=model,
            meta={
                "attempts": job.attempts,
                "submit_path": binding.submit_path,
                "status_path": binding.status_path,
                "upstream": job.last_payload,
            },
            request_id=request_id,
        )

    async def get_result(self, job_id: str) -> LateResult:
        """延迟获取:先查缓存,否则查询一次上游状态"""
        cached = self.result_cache.get(job_id)
        if cached:
            return LateResult(job_id=job_id, status="succeeded", video_url=cached, cached=True)

        self._ensure_configured()
        binding = await self.resolver.resolve()
        response = await self.protocol.fetch_status(binding, job_id)
        url = extract_result_url(response.payload)
        if url:
            self.result_cache.put(job_id, url)
            return LateResult(job_id=job_id, status="succeeded", video_url=url)
        if classify_status(response.payload) is StatusSignal.FAILED:
            raise UpstreamRejectedError(
                extract_error_message(response.payload) or "Render failed",
                detail={"response": response.payload},
                job_id=job_id,
            )
        return LateResult(job_id=job_id, status="pending")

    def handle_webhook(self, payload: Any) -> WebhookAck:
        """上游回调:记录结果供延迟获取"""
        job_id = extract_job_id(payload)
        if not job_id:
            raise ValidationError("Callback payload carries no job id", detail={"payload": payload})

        url = extract_result_url(payload)
        signal = classify_status(payload)
        if url:
            self.result_cache.put(job_id, url)
            status = StatusSignal.SUCCEEDED.value
        else:
            status = signal.value
        logger.info("generation_callback task_id=%s status=%s", job_id, status)
        return WebhookAck(job_id=job_id, status=status, video_url=url)

    def diagnostics(self) -> dict[str, Any]:
        return {
            "base_url": self.client.base_url,
            "preset": self.preset.name,
            **self.resolver.snapshot(),
        }

    def stats(self) -> dict[str, Any]:
        return {
            "uptime_sec": int(time.time() - self.started_at),
            "cached_results": len(self.result_cache),
            **self.queue.stats(),
        }

    async def aclose(self) -> None:
        await self.client.aclose()


_service: GenerationService | None = None


def get_generation_service() -> GenerationService:
    global _service
    if _service is None:
        _service = GenerationService.from_settings(settings)
    return _service


async def shutdown_generation_service() -> None:
    global _service
    if _service is not None:
        await _service.aclose()
        _service = None


__all__ = [
    "GenerationService",
    "LateResult",
    "ResultCache",
    "get_generation_service",
    "shutdown_generation_service",
]
