"""
Layout engine — composes the tier, sizing, stacking and path steps.

    FlowGraph + canvas size
        → group_by_role   (classify.py)
        → solve_heights   (sizing.py)      per tier
        → stack           (stacking.py)    per tier
        → column_x        (classify.py)
        → build_paths     (paths.py)
        → LayoutResult

``layout()`` is a pure function of its arguments.  Graphs are small, so
every call recomputes everything; results are memoized on
``(graph, canvas_width, canvas_height, config)`` because all four are
immutable and hashable.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Mapping, Optional, Union

from .classify import TIER_ORDER, column_x, group_by_role
from .models import (
    DEFAULT_HEIGHT,
    DEFAULT_WIDTH,
    FlowGraph,
    LayoutConfig,
    LayoutResult,
    PositionedNode,
)
from .paths import build_paths
from .sizing import solve_heights
from .stacking import stack

logger = logging.getLogger(__name__)

GraphInput = Union[FlowGraph, Mapping[str, Any]]


def coerce_graph(graph: GraphInput) -> FlowGraph:
    """Accept a FlowGraph or a plain mapping of nodes/links.

    Mappings are validated here, so structural errors surface before any
    geometry is computed.
    """
    if isinstance(graph, FlowGraph):
        return graph
    return FlowGraph.model_validate(graph)


def layout(
    graph: GraphInput,
    canvas_width: float = DEFAULT_WIDTH,
    canvas_height: float = DEFAULT_HEIGHT,
    config: Optional[LayoutConfig] = None,
) -> LayoutResult:
    """Position every node and link of ``graph`` on a canvas.

    Args:
        graph:         The flow graph (or a mapping that validates into one).
        canvas_width:  Canvas width in pixels.
        canvas_height: Canvas height in pixels.
        config:        Node/margin constants; the canvas size fields are
                       overridden by ``canvas_width``/``canvas_height``.

    Returns:
        A LayoutResult whose nodes follow the graph's node order and whose
        links follow the graph's link order.
    """
    base = config or LayoutConfig()
    cfg = base.with_canvas(float(canvas_width), float(canvas_height))
    return _layout_cached(coerce_graph(graph), cfg)


@lru_cache(maxsize=128)
def _layout_cached(graph: FlowGraph, cfg: LayoutConfig) -> LayoutResult:
    logger.debug(
        "Layout pass: %d nodes, %d links on %gx%g",
        len(graph.nodes), len(graph.links), cfg.canvas_width, cfg.canvas_height,
    )
    tiers = group_by_role(graph.nodes)
    max_node_value = graph.max_node_value()

    placed: dict[str, PositionedNode] = {}
    for role in TIER_ORDER:
        members = tiers[role]
        if not members:
            continue
        heights = solve_heights(members, role, cfg, max_node_value)
        offsets = stack(heights, cfg)
        x = column_x(role, cfg)
        for node, y, h in zip(members, offsets, heights):
            placed[node.id] = PositionedNode(
                **node.model_dump(), x=x, y=y, width=cfg.node_width, height=h,
            )

    nodes = tuple(placed[n.id] for n in graph.nodes)
    links = tuple(build_paths(placed, graph.links))
    return LayoutResult(nodes=nodes, links=links, config=cfg)


def clear_layout_cache() -> None:
    """Drop memoized layouts."""
    _layout_cached.cache_clear()


class LayoutEngine:
    """Layout with a fixed set of node/margin constants.

    The canvas size passed to ``layout`` overrides the config's; when
    omitted, the config's own canvas size is used.
    """

    def __init__(self, config: Optional[LayoutConfig] = None):
        self.config = config or LayoutConfig()

    def layout(
        self,
        graph: GraphInput,
        canvas_width: Optional[float] = None,
        canvas_height: Optional[float] = None,
    ) -> LayoutResult:
        width = self.config.canvas_width if canvas_width is None else canvas_width
        height = self.config.canvas_height if canvas_height is None else canvas_height
        return layout(graph, width, height, self.config)
