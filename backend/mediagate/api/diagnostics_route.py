"""
端点发现诊断

上游路由变更是线上最常见的故障,这里暴露当前绑定并允许强制重新发现。
"""
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from mediagate.schemas.generation import EndpointDiagnostics
from mediagate.services.generation.service import GenerationService, get_generation_service

router = APIRouter(prefix="/diagnostics", tags=["Diagnostics"])


@router.get("/endpoints", response_model=EndpointDiagnostics)
async def get_endpoints(
    reset: bool = Query(False, description="丢弃当前绑定,下一次生成请求会重新发现"),
    service: GenerationService = Depends(get_generation_service),
) -> EndpointDiagnostics:
    if reset:
        service.resolver.reset()
    return EndpointDiagnostics(**service.diagnostics())


@router.post("/endpoints/rediscover", response_model=EndpointDiagnostics)
async def rediscover_endpoints(
    service: GenerationService = Depends(get_generation_service),
) -> EndpointDiagnostics:
    await service.resolver.rediscover()
    return EndpointDiagnostics(**service.diagnostics())
