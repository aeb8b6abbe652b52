"""
Single-flight request throttle for outbound LLM calls.

Every provider call in the process goes through one FIFO queue drained by a
single worker: one call in flight at a time, and a fixed pause after each
call before the next one starts. Callers from concurrent batches share the
queue, so ordering across batches is first-enqueued-first-served.
"""
import asyncio
from typing import Any, Awaitable, Callable, Optional, TypeVar

from app.utils.logging_config import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class RequestThrottle:
    """FIFO task queue with one worker and a configurable inter-task delay.

    Created once per process (see ``MatchingService.from_settings``) and
    shared by reference. A task, once enqueued, always runs; there is no
    priority and no per-task cancellation. ``call_timeout`` bounds a single call so a
    hung provider cannot stall the queue forever.
    """

    def __init__(self, delay: float = 0.5, call_timeout: Optional[float] = None):
        self.delay = delay
        self.call_timeout = call_timeout
        self._queue: Optional[asyncio.Queue] = None
        self._worker: Optional[asyncio.Task] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._closing = False

    @property
    def pending(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def _ensure_worker(self) -> None:
        loop = asyncio.get_running_loop()
        if self._worker is not None and not self._worker.done() and self._loop is loop:
            return
        # Queues are bound to the loop that first uses them; a restarted
        # worker on the same loop keeps draining the existing queue
        if self._queue is None or self._loop is not loop:
            self._loop = loop
            self._queue = asyncio.Queue()
        self._worker = loop.create_task(self._run())
        logger.debug(f"Throttle worker started (delay={self.delay}s, timeout={self.call_timeout})")

    def _stopping(self) -> bool:
        if self._closing:
            return True
        cancelling = getattr(asyncio.current_task(), "cancelling", None)
        return bool(cancelling and cancelling())

    async def enqueue(self, task: Callable[[], Awaitable[T]]) -> T:
        """Queue ``task`` and wait for its result (or exception)."""
        self._ensure_worker()
        future = self._loop.create_future()
        self._queue.put_nowait((task, future))
        logger.debug(f"Task enqueued ({self._queue.qsize()} waiting)")
        return await future

    async def _run(self) -> None:
        while True:
            task, future = await self._queue.get()
            try:
                result = await self._call(task)
            except asyncio.CancelledError as exc:
                if self._stopping():
                    future.cancel()
                    raise
                # the task cancelled itself; the worker keeps going
                if not future.done():
                    future.set_exception(RuntimeError("Throttled task was cancelled"))
                logger.warning(f"Throttled task cancelled itself: {exc!r}")
            except Exception as exc:
                if not future.done():
                    future.set_exception(exc)
                else:
                    logger.warning(f"Throttled task failed after its caller stopped waiting: {exc}")
            else:
                if not future.done():
                    future.set_result(result)
            finally:
                self._queue.task_done()
            await asyncio.sleep(self.delay)

    async def _call(self, task: Callable[[], Awaitable[Any]]) -> Any:
        if self.call_timeout is None:
            return await task()
        return await asyncio.wait_for(task(), timeout=self.call_timeout)

    async def aclose(self) -> None:
        """Stop the worker and cancel whatever is still queued."""
        if self._worker is None:
            return
        self._closing = True
        self._worker.cancel()
        try:
            await self._worker
        except asyncio.CancelledError:
            pass
        finally:
            self._closing = False
        while not self._queue.empty():
            _, future = self._queue.get_nowait()
            future.cancel()
        self._worker = None
        logger.debug("Throttle worker stopped")
