"""
提交 + 轮询协议

状态机:SUBMITTED -> PENDING* -> SUCCEEDED | FAILED | TIMEOUT

- 固定间隔轮询,不做指数退避(渲染时长大致可预期,退避只会推迟发现完成)
- 上游报告成功但 URL 尚未写入时继续轮询(最终一致),直到同一预算耗尽
- 单次轮询的网络错误 / 5xx 只消耗一次尝试,不终止任务
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from mediagate.schemas.generation import GenerationRequest
from mediagate.services.generation.endpoint_resolver import EndpointBinding
from mediagate.services.generation.errors import (
    NoJobIdError,
    RenderTimeoutError,
    ResultUrlMissingError,
    UpstreamRejectedError,
    UpstreamTransportError,
)
from mediagate.services.generation.job_queue import JobQueue
from mediagate.services.generation.sanitizer import build_upstream_payload
from mediagate.services.generation.shapes import (
    StatusSignal,
    classify_status,
    extract_error_message,
    extract_job_id,
    extract_result_url,
    has_error_code,
)
from mediagate.services.generation.upstream import UpstreamClient, UpstreamResponse

logger = logging.getLogger(__name__)

# 任务刚提交时状态接口可能短暂 404;限流也只是稍后再试
_TRANSIENT_STATUS = frozenset({404, 408, 409, 425, 429})


class JobStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMEOUT = "timeout"


@dataclass
class Job:
    task_id: str
    submit_path: str
    status: JobStatus = JobStatus.PENDING
    result_url: str | None = None
    raw_upstream_payloads: list[Any] = field(default_factory=list)
    attempts: int = 0
    history_limit: int = 5

    def record(self, payload: Any) -> None:
        self.raw_upstream_payloads.append(payload)
        if self.history_limit and len(self.raw_upstream_payloads) > self.history_limit:
            del self.raw_upstream_payloads[: -self.history_limit]

    @property
    def last_payload(self) -> Any:
        return self.raw_upstream_payloads[-1] if self.raw_upstream_payloads else None


class PollingProtocol:
    def __init__(
        self,
        client: UpstreamClient,
        queue: JobQueue,
        *,
        poll_interval: float = 3.0,
        max_attempts: int = 200,
        total_timeout: float | None = None,
        history_limit: int = 5,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.client = client
        self.queue = queue
        self.poll_interval = poll_interval
        self.max_attempts = max_attempts
        self.total_timeout = total_timeout
        self.history_limit = history_limit
        self._sleep = sleep

    async def submit(self, binding: EndpointBinding, payload: dict[str, Any]) -> Job:
        response: UpstreamResponse = await self.queue.enqueue(
            lambda: self.client.post_json(binding.submit_path, payload)
        )
        body = response.payload
        if not response.ok or has_error_code(body):
            message = extract_error_message(body) or f"Upstream returned HTTP {response.status_code}"
            raise UpstreamRejectedError(
                message,
                detail={"status_code": response.status_code, "response": body},
            )

        task_id = extract_job_id(body)
        if not task_id:
            logger.warning(
                "upstream_no_job_id path=%s response=%s", binding.submit_path, body
            )
            raise NoJobIdError(
                extract_error_message(body) or "No job id in upstream response",
                detail={"response": body},
            )

        job = Job(task_id=task_id, submit_path=binding.submit_path, history_limit=self.history_limit)
        job.record(body)
        logger.info("upstream_job_submitted task_id=%s path=%s", task_id, binding.submit_path)
        return job

    async def fetch_status(self, binding: EndpointBinding, task_id: str) -> UpstreamResponse:
        return await self.queue.enqueue(
            lambda: self.client.get_json(binding.status_path, {binding.job_id_param: task_id})
        )

    async def await_result(self, binding: EndpointBinding, job: Job) -> Job:
        if not self.total_timeout:
            return await self._poll(binding, job)
        try:
            return await asyncio.wait_for(self._poll(binding, job), timeout=self.total_timeout)
        except asyncio.TimeoutError:
            job.status = JobStatus.TIMEOUT
            logger.warning("upstream_job_timeout task_id=%s reason=total_timeout", job.task_id)
            raise RenderTimeoutError(
                f"Render not finished within {self.total_timeout:g}s",
                detail={"attempts": job.attempts},
                job_id=job.task_id,
            ) from None

    async def submit_and_await(
        self,
        binding: EndpointBinding,
        request: GenerationRequest,
        *,
        model: str,
        callback_url: str | None = None,
        field_style: str = "camel",
    ) -> Job:
        payload = build_upstream_payload(
            request, model=model, callback_url=callback_url, field_style=field_style
        )
        job = await self.submit(binding, payload)
        return await self.await_result(binding, job)

    async def _poll(self, binding: EndpointBinding, job: Job) -> Job:
        succeeded_without_url = False
        while job.attempts < self.max_attempts:
            await self._sleep(self.poll_interval)
            job.attempts += 1
            try:
                response = await self.fetch_status(binding, job.task_id)
            except UpstreamTransportError as exc:
                logger.warning(
                    "upstream_poll_error task_id=%s attempt=%d err=%s", job.task_id, job.attempts, exc
                )
                continue

            job.record(response.payload)
            if response.status_code >= 500 or response.status_code in _TRANSIENT_STATUS:
                continue

            signal = classify_status(response.payload)
            if signal is StatusSignal.FAILED or response.status_code >= 400:
                job.status = JobStatus.FAILED
                message = extract_error_message(response.payload) or "Render failed"
                logger.warning("upstream_job_failed task_id=%s msg=%s", job.task_id, message)
                raise UpstreamRejectedError(
                    message,
                    detail={"response": response.payload},
                    job_id=job.task_id,
                )

            # 能取到结果 URL 即视为完成;没有显式状态字段的上游也依赖这一点
            url = extract_result_url(response.payload)
            if url:
                job.status = JobStatus.SUCCEEDED
                job.result_url = url
                logger.info(
                    "upstream_job_succeeded task_id=%s attempts=%d", job.task_id, job.attempts
                )
                return job
            # 成功但 URL 还没写入时继续轮询
            succeeded_without_url = signal is StatusSignal.SUCCEEDED

        job.status = JobStatus.TIMEOUT
        if succeeded_without_url:
            logger.error(
                "upstream_result_shape_unrecognized task_id=%s payload=%s",
                job.task_id,
                job.last_payload,
            )
            raise ResultUrlMissingError(
                "Upstream reported success but no result URL could be extracted",
                detail={"response": job.last_payload},
                job_id=job.task_id,
            )
        logger.warning(
            "upstream_job_timeout task_id=%s attempts=%d", job.task_id, job.attempts
        )
        raise RenderTimeoutError(
            f"Render not finished after {job.attempts} status checks",
            detail={"attempts": job.attempts},
            job_id=job.task_id,
        )


__all__ = ["Job", "JobStatus", "PollingProtocol"]
