from .trace import trace_middleware

__all__ = ["trace_middleware"]
