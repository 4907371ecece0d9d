"""
生成链路错误分类

每个错误携带稳定的 code 和对外 HTTP 状态码,
由 main.py 中的异常处理器统一转换为结构化响应。
"""
from __future__ import annotations

from typing import Any


class GenerationError(Exception):
    """生成链路错误基类"""

    code = "GENERATION_ERROR"
    status_code = 500
    source = "gateway"

    def __init__(
        self,
        message: str,
        *,
        detail: dict[str, Any] | None = None,
        job_id: str | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}
        self.job_id = job_id


class ValidationError(GenerationError):
    """客户端输入不合法(prompt 缺失等)"""

    code = "VALIDATION_ERROR"
    status_code = 400
    source = "client"


class ConfigurationError(GenerationError):
    """缺少上游密钥等部署配置"""

    code = "UPSTREAM_NOT_CONFIGURED"
    status_code = 500


class NoWorkingEndpointError(GenerationError):
    """所有候选端点都探测失败,需要运维介入后重新发现"""

    code = "NO_WORKING_ENDPOINT"
    status_code = 502
    source = "upstream"


class NoJobIdError(GenerationError):
    """上游响应成功但无法识别任务 ID"""

    code = "NO_JOB_ID"
    status_code = 502
    source = "upstream"


class UpstreamRejectedError(GenerationError):
    """上游明确拒绝或渲染失败"""

    code = "UPSTREAM_REJECTED"
    status_code = 502
    source = "upstream"


class RenderTimeoutError(GenerationError):
    """轮询预算耗尽仍未到达终态;任务可能稍后完成,客户端可凭 job_id 继续查询"""

    code = "RENDER_TIMEOUT"
    status_code = 504
    source = "upstream"


class ResultUrlMissingError(GenerationError):
    """上游报告成功,但结果结构无法识别出 URL"""

    code = "RESULT_URL_MISSING"
    status_code = 502
    source = "upstream"


class UpstreamTransportError(Exception):
    """网络层失败(超时 / 连接错误),只在协议内部使用"""

    pass


__all__ = [
    "ConfigurationError",
    "GenerationError",
    "NoJobIdError",
    "NoWorkingEndpointError",
    "RenderTimeoutError",
    "ResultUrlMissingError",
    "UpstreamRejectedError",
    "UpstreamTransportError",
    "ValidationError",
]
