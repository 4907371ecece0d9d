"""
测试全局配置

- 上游统一用 httpx.MockTransport 替身(tests/fakes.py),不发真实请求
- service_factory 直接组装 GenerationService,轮询间隔为 0
"""
from __future__ import annotations

import os
import sys
import time
from collections.abc import Callable
from pathlib import Path

import pytest

# 确保 backend/ 在 sys.path,便于导入 mediagate.* / main / tests.fakes
BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

os.environ.setdefault("LOG_LEVEL", "WARNING")

from mediagate.core.upstream_presets import UpstreamPreset
from mediagate.services.generation.endpoint_resolver import EndpointResolver
from mediagate.services.generation.job_queue import JobQueue
from mediagate.services.generation.protocol import PollingProtocol
from mediagate.services.generation.service import GenerationService, ResultCache
from mediagate.services.generation.upstream import UpstreamClient
from tests.fakes import BASE_URL, PROBE_PROMPT, FakeUpstream


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest.fixture
def service_factory(fake_upstream: FakeUpstream):
    def _build(
        *,
        submit_paths: tuple[str, ...] = ("/veo/generate",),
        status_paths: tuple[str, ...] = ("/veo/record-info",),
        job_id_params: tuple[str, ...] = ("taskId", "id", "task_id", "job_id"),
        concurrency: int = 1,
        max_attempts: int = 10,
        ttl_seconds: float = 0.0,
        reset_after_no_job_id: int = 0,
        clock: Callable[[], float] = time.time,
        api_key: str | None = "test-key",
    ) -> GenerationService:
        preset = UpstreamPreset(
            name="test",
            base_url=BASE_URL,
            submit_paths=submit_paths,
            status_paths=status_paths,
            job_id_params=job_id_params,
            tier_models={"fast": "veo3_fast", "quality": "veo3"},
        )
        client = UpstreamClient(BASE_URL, api_key, transport=fake_upstream.transport)
        queue = JobQueue(concurrency)
        resolver = EndpointResolver(
            client,
            submit_paths=submit_paths,
            status_paths=status_paths,
            job_id_params=job_id_params,
            probe_payload={"model": "veo3_fast", "prompt": PROBE_PROMPT, "duration": 1.0},
            queue=queue,
            ttl_seconds=ttl_seconds,
            reset_after_no_job_id=reset_after_no_job_id,
            clock=clock,
        )
        protocol = PollingProtocol(client, queue, poll_interval=0, max_attempts=max_attempts)
        return GenerationService(
            client=client,
            preset=preset,
            queue=queue,
            resolver=resolver,
            protocol=protocol,
            result_cache=ResultCache(100),
        )

    return _build
