"""A diagram that follows its container's width."""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from .engine import layout
from .models import FlowDiagram, LayoutConfig, LayoutResult
from .resize import ResizeController

logger = logging.getLogger(__name__)

LayoutSink = Callable[[LayoutResult], Union[None, Awaitable[Any]]]


class LiveDiagram:
    """Binds one FlowDiagram to a ResizeController and a layout sink.

    Every width the controller publishes produces a fresh
    ``layout(graph, width, diagram.height)`` handed to ``sink``.  The
    diagram itself is never mutated.  ``close()`` releases the controller
    and drops any relayout still pending.
    """

    def __init__(
        self,
        diagram: FlowDiagram,
        sink: LayoutSink,
        config: Optional[LayoutConfig] = None,
        min_width: Optional[float] = None,
    ):
        self.diagram = diagram
        self.config = config
        self._sink = sink
        kwargs = {} if min_width is None else {"min_width": min_width}
        self.controller = ResizeController(self._relayout, **kwargs)
        self.last_result: Optional[LayoutResult] = None

    def compute(self, width: float) -> LayoutResult:
        return layout(self.diagram.graph, width, self.diagram.height, self.config)

    def _relayout(self, width: float):
        result = self.compute(width)
        self.last_result = result
        logger.debug("Relayout at width %s", width)
        outcome = self._sink(result)
        if inspect.isawaitable(outcome):
            return outcome
        return None

    def resize(self, width: float) -> None:
        """Report a new container width."""
        self.controller.observe(width)

    @property
    def width(self) -> Optional[float]:
        return self.controller.current_width

    async def drain(self) -> None:
        await self.controller.drain()

    def close(self) -> None:
        self.controller.close()

    async def __aenter__(self) -> "LiveDiagram":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.controller.__aexit__(*exc_info)
