"""
mediagate - FastAPI Application Entry Point

启动命令:
    uvicorn main:app --reload --host 0.0.0.0 --port 8080
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from mediagate.core import settings, setup_logging
from mediagate.middleware.trace import trace_middleware
from mediagate.schemas.generation import ErrorBody, ErrorResponse
from mediagate.services.generation.errors import GenerationError, RenderTimeoutError
from mediagate.services.generation.service import shutdown_generation_service


# 设置日志
setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    from mediagate.core.logging import logger

    logger.info(
        "application_startup project={} preset={} concurrency={}",
        settings.PROJECT_NAME,
        settings.UPSTREAM_PRESET,
        settings.UPSTREAM_CONCURRENCY,
    )

    yield

    await shutdown_generation_service()
    logger.info("application_shutdown")


async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    from mediagate.core.logging import logger

    request_id = getattr(request.state, "request_id", None)
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        "generation_error code={} request_id={} job_id={} message={}",
        exc.code,
        request_id,
        exc.job_id,
        exc.message,
    )
    body = ErrorResponse(
        error=ErrorBody(code=exc.code, message=exc.message, source=exc.source, detail=exc.detail),
        request_id=request_id,
        job_id=exc.job_id,
        # 渲染超时不代表失败,客户端可凭 job_id 继续查询 /result/{id}
        pending=True if isinstance(exc, RenderTimeoutError) else None,
    )
    return JSONResponse(status_code=exc.status_code, content=body.model_dump(exclude_none=True))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    from mediagate.core.logging import logger

    request_id = getattr(request.state, "request_id", None)
    logger.exception("unhandled_error request_id={} path={}", request_id, request.url.path)
    body = ErrorResponse(
        error=ErrorBody(code="INTERNAL_ERROR", message=str(exc) or exc.__class__.__name__, source="gateway"),
        request_id=request_id,
    )
    return JSONResponse(status_code=500, content=body.model_dump(exclude_none=True))


def create_app() -> FastAPI:
    """创建 FastAPI 应用"""
    app = FastAPI(
        title=settings.PROJECT_NAME,
        lifespan=lifespan,
    )

    # 全局中间件:追踪 -> CORS
    app.middleware("http")(trace_middleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[settings.TRACE_ID_HEADER],
    )

    app.add_exception_handler(GenerationError, generation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    register_routes(app)

    return app


def register_routes(app: FastAPI) -> None:
    """注册所有 API 路由"""
    from mediagate.api import (
        diagnostics_router,
        generation_router,
        system_router,
        voices_router,
    )

    api_prefix = settings.API_PREFIX

    app.include_router(system_router)
    app.include_router(generation_router, prefix=api_prefix)
    app.include_router(diagnostics_router, prefix=api_prefix)
    app.include_router(voices_router)


# 创建应用实例
app = create_app()


def run():
    """脚本入口点"""
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )


if __name__ == "__main__":
    run()
