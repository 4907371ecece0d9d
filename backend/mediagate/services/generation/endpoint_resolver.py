"""
端点发现

上游的真实路由没有可靠文档,且会随版本变化。这里把"用哪个路径"当成一次
尽力而为的协商:按优先级探测候选的提交路径和状态路径,第一个可用的组合即绑定,
并在进程生命周期内缓存,后续请求直接复用。

- 并发调用 resolve() 共享同一个发现任务(single flight),上游只会被探测一次
- 发现失败后记住错误,直到运维显式 reset/rediscover,避免每个请求都去烧探测额度
- 缓存失效策略显式可配:TTL / 连续 N 次 NoJobIdError 后丢弃绑定
"""
from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import asdict, dataclass
from typing import Any

from mediagate.services.generation.errors import NoWorkingEndpointError, UpstreamTransportError
from mediagate.services.generation.job_queue import JobQueue
from mediagate.services.generation.shapes import (
    extract_error_message,
    extract_job_id,
    has_error_code,
    is_not_found,
)
from mediagate.services.generation.upstream import UpstreamClient, UpstreamResponse

logger = logging.getLogger(__name__)

REDISCOVER_HINT = "trigger endpoint re-discovery via POST /diagnostics/endpoints/rediscover"


@dataclass(frozen=True)
class EndpointBinding:
    submit_path: str
    status_path: str
    job_id_param: str
    discovered_at: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class EndpointResolver:
    def __init__(
        self,
        client: UpstreamClient,
        *,
        submit_paths: Sequence[str],
        status_paths: Sequence[str],
        job_id_params: Sequence[str],
        probe_payload: dict[str, Any],
        queue: JobQueue | None = None,
        ttl_seconds: float = 0.0,
        reset_after_no_job_id: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.submit_paths = tuple(submit_paths)
        self.status_paths = tuple(status_paths)
        self.job_id_params = tuple(job_id_params)
        self.probe_payload = dict(probe_payload)
        self.queue = queue
        self.ttl_seconds = ttl_seconds
        self.reset_after_no_job_id = reset_after_no_job_id
        self._clock = clock

        self._binding: EndpointBinding | None = None
        self._inflight: asyncio.Future | None = None
        self._last_error: NoWorkingEndpointError | None = None
        self._attempts: list[dict[str, Any]] = []
        self._consecutive_no_job_id = 0

    @property
    def binding(self) -> EndpointBinding | None:
        return self._current_binding()

    async def resolve(
        self,
        submit_paths: Sequence[str] | None = None,
        status_paths: Sequence[str] | None = None,
    ) -> EndpointBinding:
        binding = self._current_binding()
        if binding is not None:
            return binding

        if self._last_error is not None:
            raise NoWorkingEndpointError(
                self._last_error.message,
                detail=self._last_error.detail,
            )

        if self._inflight is None:
            self._inflight = asyncio.ensure_future(
                self._run_discovery(
                    tuple(submit_paths or self.submit_paths),
                    tuple(status_paths or self.status_paths),
                )
            )
        # 调用方被取消时不影响其他等待者共享的发现任务
        return await asyncio.shield(self._inflight)

    async def rediscover(self) -> EndpointBinding:
        self.reset()
        return await self.resolve()

    def reset(self) -> None:
        if self._binding is not None or self._last_error is not None:
            logger.info("endpoint_binding_reset binding=%s", self._binding)
        self._binding = None
        self._last_error = None
        self._consecutive_no_job_id = 0

    def record_job_id_success(self) -> None:
        self._consecutive_no_job_id = 0

    def record_job_id_failure(self) -> None:
        self._consecutive_no_job_id += 1
        threshold = self.reset_after_no_job_id
        if threshold and self._consecutive_no_job_id >= threshold:
            logger.warning(
                "endpoint_binding_invalidated reason=no_job_id consecutive=%d",
                self._consecutive_no_job_id,
            )
            self.reset()

    def snapshot(self) -> dict[str, Any]:
        binding = self._current_binding()
        return {
            "binding": binding.to_dict() if binding else None,
            "discovering": self._inflight is not None,
            "last_error": self._last_error.message if self._last_error else None,
            "attempts": list(self._attempts),
            "consecutive_no_job_id": self._consecutive_no_job_id,
            "cache_ttl_seconds": self.ttl_seconds,
            "reset_after_no_job_id": self.reset_after_no_job_id,
        }

    def _current_binding(self) -> EndpointBinding | None:
        binding = self._binding
        if binding is None:
            return None
        if self.ttl_seconds and self._clock() - binding.discovered_at >= self.ttl_seconds:
            logger.info("endpoint_binding_expired submit=%s", binding.submit_path)
            self._binding = None
            return None
        return binding

    async def _call(self, operation: Callable[[], Awaitable[UpstreamResponse]]) -> UpstreamResponse:
        if self.queue is None:
            return await operation()
        return await self.queue.enqueue(operation)

    async def _run_discovery(
        self,
        submit_paths: tuple[str, ...],
        status_paths: tuple[str, ...],
    ) -> EndpointBinding:
        self._attempts = []
        try:
            binding = await self._discover(submit_paths, status_paths)
        except NoWorkingEndpointError as exc:
            logger.error("endpoint_discovery_failed reason=%s", exc.message)
            self._last_error = NoWorkingEndpointError(
                f"{exc.message}; {REDISCOVER_HINT}", detail=exc.detail
            )
            raise self._last_error from None
        finally:
            self._inflight = None
        self._binding = binding
        self._consecutive_no_job_id = 0
        logger.info(
            "endpoint_discovery_bound submit=%s status=%s param=%s",
            binding.submit_path,
            binding.status_path,
            binding.job_id_param,
        )
        return binding

    async def _discover(
        self,
        submit_paths: tuple[str, ...],
        status_paths: tuple[str, ...],
    ) -> EndpointBinding:
        submit_path, job_id = await self._probe_submit(submit_paths)
        if submit_path is None or job_id is None:
            raise NoWorkingEndpointError(
                "No candidate submit path returned a job id",
                detail={"attempts": list(self._attempts)},
            )

        for status_path in status_paths:
            for param in self.job_id_params:
                if await self._probe_status(status_path, param, job_id):
                    return EndpointBinding(
                        submit_path=submit_path,
                        status_path=status_path,
                        job_id_param=param,
                        discovered_at=self._clock(),
                    )

        raise NoWorkingEndpointError(
            "No candidate status path accepted the probe job id",
            detail={"attempts": list(self._attempts), "probe_job_id": job_id},
        )

    async def _probe_submit(self, submit_paths: tuple[str, ...]) -> tuple[str | None, str | None]:
        for path in submit_paths:
            attempt: dict[str, Any] = {"kind": "submit", "path": path}
            self._attempts.append(attempt)
            try:
                response = await self._call(
                    lambda path=path: self.client.post_json(path, self.probe_payload)
                )
            except UpstreamTransportError as exc:
                attempt["error"] = str(exc)
                continue

            attempt["status_code"] = response.status_code
            job_id = None
            if response.ok and not has_error_code(response.payload):
                job_id = extract_job_id(response.payload)
            if job_id:
                attempt["job_id"] = job_id
                logger.info("endpoint_probe_submit_ok path=%s job_id=%s", path, job_id)
                return path, job_id
            attempt["error"] = extract_error_message(response.payload) or "no job id"
            logger.debug("endpoint_probe_submit_miss path=%s status=%s", path, response.status_code)
        return None, None

    async def _probe_status(self, path: str, param: str, job_id: str) -> bool:
        attempt: dict[str, Any] = {"kind": "status", "path": path, "param": param}
        self._attempts.append(attempt)
        try:
            response = await self._call(
                lambda: self.client.get_json(path, {param: job_id})
            )
        except UpstreamTransportError as exc:
            attempt["error"] = str(exc)
            return False

        attempt["status_code"] = response.status_code
        if response.status_code >= 400 or is_not_found(response.status_code, response.payload):
            attempt["error"] = extract_error_message(response.payload) or "not found"
            return False
        return True


__all__ = ["EndpointBinding", "EndpointResolver", "REDISCOVER_HINT"]
