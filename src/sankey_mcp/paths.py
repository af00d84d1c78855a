"""
Connector geometry between positioned nodes.

Every link is drawn as a horizontal S-curve: it leaves the source node's
right edge and enters the target node's left edge, both at the node's
vertical center.  The two control points sit at 35% and 65% of the
horizontal span, each held at its own anchor's y, so the curve leaves and
enters horizontally and never doubles back on itself.

Stroke width is proportional to the link value relative to the largest
link in the graph, floored at ``MIN_STROKE_WIDTH`` so near-zero flows stay
visible.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Sequence

from .errors import DanglingLinkReferenceError
from .models import CurveSpec, FlowLink, PositionedLink, PositionedNode
from .sizing import denominator_floor


MAX_STROKE_WIDTH = 30.0
MIN_STROKE_WIDTH = 4.0
CONTROL_FRACTION = 0.35


def stroke_width(value: float, max_link_value: float) -> float:
    """Stroke width for a link carrying ``value``."""
    return max((value / denominator_floor(max_link_value)) * MAX_STROKE_WIDTH, MIN_STROKE_WIDTH)


def source_anchor(node: PositionedNode) -> tuple[float, float]:
    """Right edge, vertical center."""
    return (node.x + node.width, node.y + node.height / 2)


def target_anchor(node: PositionedNode) -> tuple[float, float]:
    """Left edge, vertical center."""
    return (node.x, node.y + node.height / 2)


def build_path(
    source: PositionedNode,
    target: PositionedNode,
    link: FlowLink,
    max_link_value: float,
) -> PositionedLink:
    """Compute the connector for one link."""
    sx, sy = source_anchor(source)
    tx, ty = target_anchor(target)

    span = tx - sx
    curve = CurveSpec(
        start=(sx, sy),
        control1=(sx + span * CONTROL_FRACTION, sy),
        control2=(tx - span * CONTROL_FRACTION, ty),
        end=(tx, ty),
    )

    return PositionedLink(
        **link.model_dump(),
        path=curve,
        stroke_width=stroke_width(link.value, max_link_value),
        source_x=sx,
        source_y=sy,
        target_x=tx,
        target_y=ty,
        mid_x=(sx + tx) / 2,
        mid_y=(sy + ty) / 2,
    )


def build_paths(
    nodes: Mapping[str, PositionedNode] | Sequence[PositionedNode],
    links: Iterable[FlowLink],
) -> list[PositionedLink]:
    """Build a connector for every link, in link order.

    ``nodes`` may be a list of positioned nodes or an id → node mapping.
    A link whose endpoint cannot be resolved raises
    ``DanglingLinkReferenceError``; nothing is filtered out.
    """
    if isinstance(nodes, Mapping):
        by_id = dict(nodes)
    else:
        by_id = {n.id: n for n in nodes}

    links = list(links)
    max_link_value = max((link.value for link in links), default=0.0)

    paths = []
    for link in links:
        source = by_id.get(link.source)
        if source is None:
            raise DanglingLinkReferenceError(link.source, link.target, link.source)
        target = by_id.get(link.target)
        if target is None:
            raise DanglingLinkReferenceError(link.source, link.target, link.target)
        paths.append(build_path(source, target, link, max_link_value))
    return paths
