"""
路由聚合
"""

from mediagate.api.diagnostics_route import router as diagnostics_router
from mediagate.api.generation_route import router as generation_router
from mediagate.api.system_route import router as system_router
from mediagate.api.voices_route import router as voices_router

__all__ = [
    "diagnostics_router",
    "generation_router",
    "system_router",
    "voices_router",
]
