"""
Fan-out of confirmed launch events to listeners
"""

import asyncio
import inspect
from typing import Any, Callable, List, Optional, Set

from launch_monitor.core.logger import Logger, get_logger
from launch_monitor.core.metrics import MetricsCollector
from launch_monitor.core.models import ConfirmedLaunchEvent


LaunchListener = Callable[[ConfirmedLaunchEvent], Any]


class EventBus:
    """
    Delivers each event to every listener in registration order

    A failing listener is logged and skipped; it never stops delivery to the
    rest. Coroutine listeners are scheduled on the running loop.
    """

    def __init__(self, logger: Optional[Logger] = None, metrics: Optional[MetricsCollector] = None):
        self.logger = logger or get_logger(__name__)
        self.metrics = metrics
        self._listeners: List[LaunchListener] = []
        self._pending: Set[asyncio.Task] = set()

    def register(self, listener: LaunchListener) -> None:
        self._listeners.append(listener)

    def unregister(self, listener: LaunchListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    async def close(self) -> None:
        """Cancel async listener tasks still in flight and wait for them"""
        pending = list(self._pending)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        self._pending.clear()

    def publish(self, event: ConfirmedLaunchEvent) -> int:
        """
        Deliver an event

        Returns:
            Number of listeners that ran without raising
        """
        delivered = 0
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    self._schedule(result, event)
                delivered += 1
            except Exception as e:
                self._listener_failed(event, e)

        return delivered

    def _schedule(self, awaitable, event: ConfirmedLaunchEvent) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(awaitable):
                awaitable.close()
            raise RuntimeError("async listener requires a running event loop")

        task = loop.create_task(_await(awaitable))
        self._pending.add(task)

        def _done(t: asyncio.Task) -> None:
            self._pending.discard(t)
            if not t.cancelled() and t.exception() is not None:
                self._listener_failed(event, t.exception())

        task.add_done_callback(_done)

    def _listener_failed(self, event: ConfirmedLaunchEvent, error: BaseException) -> None:
        self.logger.error(
            "launch_listener_error",
            mint=event.identity,
            error=str(error),
            exc_info=error
        )
        if self.metrics:
            self.metrics.increment("listener_errors")


async def _await(awaitable):
    return await awaitable
