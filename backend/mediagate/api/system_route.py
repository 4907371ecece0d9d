from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from mediagate.core.config import settings
from mediagate.services.generation.service import GenerationService, get_generation_service

router = APIRouter(tags=["System"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def root():
    return {"ok": True, "service": settings.PROJECT_NAME, "time": _now()}


@router.get("/ping")
async def ping():
    return {"ok": True, "ts": _now()}


@router.get("/health")
async def health_check(service: GenerationService = Depends(get_generation_service)):
    return {
        "ok": True,
        "preset": service.preset.name,
        "api_prefix": service.client.base_url,
        "upstream_key_present": service.client.configured,
        "endpoint_bound": service.resolver.binding is not None,
    }


@router.get("/stats")
async def stats(service: GenerationService = Depends(get_generation_service)):
    return {"ok": True, **service.stats()}
