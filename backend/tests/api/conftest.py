"""
测试配置与 fixtures(API 层)

- 通过 dependency_overrides 注入指向上游替身的 GenerationService
- httpx.ASGITransport 直连应用,不启动 lifespan
"""
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from main import app
from mediagate.services.generation.service import GenerationService, get_generation_service


@pytest.fixture
def service(service_factory) -> GenerationService:
    return service_factory()


@pytest_asyncio.fixture
async def client(service: GenerationService) -> AsyncGenerator[AsyncClient, None]:
    app.dependency_overrides[get_generation_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    await service.aclose()
