"""
串行限速器：FIFO 队列 + 单个后台消费协程，每个任务结束后固定休眠一段时间。

不支持优先级，也不会并发执行。
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_Job = Tuple[Callable[[], Awaitable[Any]], "asyncio.Future[Any]"]


class RateLimiter:
    def __init__(self, delay_ms: int = 1000):
        self.delay = delay_ms / 1000
        self._queue: Optional["asyncio.Queue[_Job]"] = None
        self._worker: Optional["asyncio.Task[None]"] = None

    async def execute(self, task: Callable[[], Awaitable[T]]) -> T:
        """
        排队执行 task，返回其结果或抛出其异常。

        Args:
            task: 无参协程工厂，例如 ``lambda: client.get_hot_rankings()``
        """
        loop = asyncio.get_running_loop()
        if self._queue is None:
            self._queue = asyncio.Queue()
        future: "asyncio.Future[T]" = loop.create_future()
        self._queue.put_nowait((task, future))

        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._drain())

        return await future

    async def _drain(self) -> None:
        while not self._queue.empty():
            task, future = self._queue.get_nowait()
            try:
                result = await task()
            except asyncio.CancelledError:
                future.cancel()
                self._queue.task_done()
                # 消费协程即将退出，排队中的调用方不能继续等待
                self._cancel_pending()
                raise
            except Exception as e:
                if not future.done():
                    future.set_exception(e)
            else:
                if not future.done():
                    future.set_result(result)
            self._queue.task_done()
            await asyncio.sleep(self.delay)

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    async def aclose(self) -> None:
        """停止后台消费协程；队列中剩余任务不再执行，其调用方收到 CancelledError"""
        if self._worker is not None and not self._worker.done():
            self._worker.cancel()
            try:
                await self._worker
            except asyncio.CancelledError:
                pass
        self._worker = None
        self._cancel_pending()

    def _cancel_pending(self) -> None:
        if self.pending:
            logger.debug(f"[RateLimiter] Dropping {self.pending} queued tasks")
        while self._queue is not None and not self._queue.empty():
            _, future = self._queue.get_nowait()
            future.cancel()
            self._queue.task_done()
