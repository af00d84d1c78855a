"""
Container-width observation.

The layout engine is pure; the only asynchronous input is the width of the
container the diagram is shown in.  ``ResizeController`` receives raw
width observations (from a websocket, a UI toolkit callback, ...), clamps
them to a minimum usable width and republishes each distinct width to a
single subscriber, which typically calls ``layout(...)`` again.

Ordering rules:

  - Observations arriving in the same event-loop turn are coalesced; only
    the last one is published ("last observed width wins").
  - If the subscriber is a coroutine function, a publication still running
    when a newer width is published is cancelled, so stale layouts are
    never delivered after fresh ones.
  - ``close()`` drops any pending publication, cancels in-flight work and
    releases the subscriber.  The controller is also a (async) context
    manager that closes on exit.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from .config import MIN_CANVAS_WIDTH

logger = logging.getLogger(__name__)

WidthCallback = Callable[[float], Union[None, Awaitable[Any]]]


def clamp_width(width: float, min_width: float = MIN_CANVAS_WIDTH) -> float:
    """Widths below ``min_width`` become ``min_width``; others pass through."""
    return max(float(min_width), float(width))


class ResizeController:
    """Publishes clamped container widths to one subscriber.

    Args:
        on_width_change: Called with each published width.  May be a plain
                         function or a coroutine function.
        min_width:       Narrowest width ever published.
        initial_width:   Width considered already published (e.g. the
                         width the first layout was computed at).
    """

    def __init__(
        self,
        on_width_change: WidthCallback,
        min_width: float = MIN_CANVAS_WIDTH,
        initial_width: Optional[float] = None,
    ):
        self.min_width = float(min_width)
        self._callback: Optional[WidthCallback] = on_width_change
        self._current: Optional[float] = (
            clamp_width(initial_width, self.min_width) if initial_width is not None else None
        )
        self._handle: Optional[asyncio.Handle] = None
        self._task: Optional[asyncio.Task] = None
        self._closed = False

    # --- State ---

    @property
    def current_width(self) -> Optional[float]:
        """The most recently published width."""
        return self._current

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> bool:
        """True while a publication is scheduled but has not run yet."""
        return self._handle is not None

    # --- Observation ---

    def observe(self, width: float) -> None:
        """Report a newly observed container width."""
        if self._closed:
            logger.debug("Ignoring width %s: controller closed", width)
            return

        clamped = clamp_width(width, self.min_width)

        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

        if clamped == self._current:
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._publish(clamped)
            return
        self._handle = loop.call_soon(self._publish, clamped)

    def _publish(self, width: float) -> None:
        self._handle = None
        if self._closed or self._callback is None:
            return

        self._current = width
        if self._task is not None and not self._task.done():
            logger.debug("Cancelling stale relayout in favour of width %s", width)
            self._task.cancel()
        self._task = None

        result = self._callback(width)
        if inspect.isawaitable(result):
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError:
                if inspect.iscoroutine(result):
                    result.close()
                raise RuntimeError("A coroutine width callback needs a running event loop") from None
            self._task = asyncio.ensure_future(result, loop=loop)
            self._task.add_done_callback(self._on_task_done)

    def _on_task_done(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Relayout failed: {exc}")

    async def drain(self) -> None:
        """Wait until pending and in-flight publications have finished."""
        while self._handle is not None:
            await asyncio.sleep(0)
        task = self._task
        if task is not None and not task.done():
            await asyncio.wait([task])

    # --- Teardown ---

    def close(self) -> None:
        """Drop pending work and release the subscriber."""
        if self._closed:
            return
        self._closed = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._callback = None
        logger.debug("Resize controller closed")

    def __enter__(self) -> "ResizeController":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    async def __aenter__(self) -> "ResizeController":
        return self

    async def __aexit__(self, *exc_info) -> None:
        task = self._task
        self.close()
        if task is not None and not task.done():
            await asyncio.wait([task])
