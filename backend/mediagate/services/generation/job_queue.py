"""
有界任务队列(准入控制)

上游自身有并发/限流,直接并发打过去会被节流。
所有上游调用都经由这里排队,按 FIFO 放行,同时在执行的操作数不超过 max_concurrency。
"""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class JobQueue:
    def __init__(self, max_concurrency: int = 1):
        self.max_concurrency = max(1, int(max_concurrency))
        self._pending: deque[tuple[Callable[[], Awaitable[Any]], asyncio.Future]] = deque()
        self._active = 0

    @property
    def active(self) -> int:
        return self._active

    @property
    def queued(self) -> int:
        return len(self._pending)

    def stats(self) -> dict[str, int]:
        return {
            "active": self._active,
            "queued": len(self._pending),
            "max_concurrency": self.max_concurrency,
        }

    async def enqueue(self, operation: Callable[[], Awaitable[T]]) -> T:
        """
        排队执行 operation,返回其结果或抛出其异常。

        调用方在排队期间被取消:出队时直接跳过;
        执行期间被取消:同步取消正在运行的操作。
        """
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending.append((operation, future))
        self._pump()
        return await future

    def _pump(self) -> None:
        while self._active < self.max_concurrency and self._pending:
            operation, future = self._pending.popleft()
            if future.done():
                # 排队时已被取消
                continue
            self._active += 1
            task = asyncio.ensure_future(self._run(operation))
            future.add_done_callback(lambda f, t=task: t.cancel() if f.cancelled() else None)
            task.add_done_callback(lambda t, f=future: self._settle(t, f))

    async def _run(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await operation()

    def _settle(self, task: asyncio.Task, future: asyncio.Future) -> None:
        self._active -= 1
        if not future.done():
            if task.cancelled():
                future.cancel()
            elif task.exception() is not None:
                future.set_exception(task.exception())
            else:
                future.set_result(task.result())
        elif not task.cancelled() and task.exception() is not None:
            # 调用方已离开,异常无人接收
            logger.debug("job_queue_orphan_error err=%s", task.exception())
        self._pump()


__all__ = ["JobQueue"]
