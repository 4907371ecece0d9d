from uuid import uuid4

from fastapi import Request, Response

from mediagate.core.config import settings


async def trace_middleware(request: Request, call_next):
    """
    关联 ID 中间件
    - 优先使用客户端提供的 TRACE_ID_HEADER
    - 写入 request.state.request_id,错误响应体中会带上同一个 ID
    - 在响应头返回同一 request id
    """
    request_id = request.headers.get(settings.TRACE_ID_HEADER) or uuid4().hex
    request.state.request_id = request_id

    response: Response = await call_next(request)
    response.headers[settings.TRACE_ID_HEADER] = request_id
    return response
