from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import Any, TypeVar

from fastapi import APIRouter, Depends, Request, Response, status
from fastapi.responses import JSONResponse

from mediagate.core.config import settings
from mediagate.schemas.generation import GenerationAccepted, GenerationResult, WebhookAck
from mediagate.services.generation.errors import ValidationError
from mediagate.services.generation.service import GenerationService, get_generation_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Generation"])

T = TypeVar("T")

# nginx 约定:客户端主动断开
CLIENT_CLOSED_REQUEST = 499


class ClientDisconnected(Exception):
    pass


def _request_id(request: Request) -> str | None:
    return getattr(request.state, "request_id", None)


async def _read_json(request: Request) -> Any:
    body = await request.body()
    if not body:
        return {}
    try:
        return await request.json()
    except ValueError as exc:
        raise ValidationError("Request body must be valid JSON") from exc


async def run_until_disconnect(request: Request, work: Awaitable[T], *, interval: float) -> T:
    """
    执行 work,期间周期性检查客户端是否断开;断开则取消 work
    (取消会传递到进行中的上游请求 / 轮询 sleep,并释放队列槽位)。
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.info("client_disconnected_cancel request_id=%s", _request_id(request))
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()


async def _generate(request: Request, service: GenerationService, tier: str | None) -> Response:
    raw = await _read_json(request)
    work = service.generate(raw, tier=tier, request_id=_request_id(request))
    if settings.CANCEL_ON_CLIENT_DISCONNECT:
        try:
            result = await run_until_disconnect(
                request, work, interval=settings.DISCONNECT_CHECK_INTERVAL_SECONDS
            )
        except ClientDisconnected:
            return Response(status_code=CLIENT_CLOSED_REQUEST)
    else:
        result = await work

    if isinstance(result, GenerationAccepted):
        return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content=result.model_dump())
    return JSONResponse(content=result.model_dump())


@router.post(
    "/generate",
    response_model=GenerationResult,
    responses={202: {"model": GenerationAccepted}},
)
async def generate(
    request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> Response:
    return await _generate(request, service, None)


@router.post("/generate-fast", response_model=GenerationResult)
async def generate_fast(
    request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> Response:
    return await _generate(request, service, "fast")


@router.post("/generate-quality", response_model=GenerationResult)
async def generate_quality(
    request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> Response:
    return await _generate(request, service, "quality")


@router.get("/result/{job_id}")
async def get_result(
    job_id: str,
    service: GenerationService = Depends(get_generation_service),
) -> JSONResponse:
    result = await service.get_result(job_id)
    if result.video_url:
        return JSONResponse(
            content={
                "ok": True,
                "job_id": result.job_id,
                "video_url": result.video_url,
                "cached": result.cached,
            }
        )
    return JSONResponse(
        status_code=status.HTTP_202_ACCEPTED,
        content={"ok": True, "pending": True, "job_id": result.job_id},
    )


@router.post("/callbacks/render", response_model=WebhookAck)
async def render_callback(
    request: Request,
    service: GenerationService = Depends(get_generation_service),
) -> WebhookAck:
    payload = await _read_json(request)
    return service.handle_webhook(payload)
