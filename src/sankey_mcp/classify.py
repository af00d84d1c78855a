"""Tier assignment: which of the three columns a node is drawn in."""

from __future__ import annotations

from typing import Iterable

from .models import FlowNode, LayoutConfig, NodeRole


TIER_ORDER: tuple[NodeRole, ...] = (NodeRole.ORIGIN, NodeRole.HUB, NodeRole.DESTINATION)


def classify(node: FlowNode) -> NodeRole:
    """Return the tier for a node.

    The role is validated when the node is built, so there is no error
    path here.
    """
    return node.role


def group_by_role(nodes: Iterable[FlowNode]) -> dict[NodeRole, list[FlowNode]]:
    """Split nodes into tiers, keeping input order inside each tier.

    Every tier is present in the result, possibly empty.
    """
    tiers: dict[NodeRole, list[FlowNode]] = {role: [] for role in TIER_ORDER}
    for node in nodes:
        tiers[classify(node)].append(node)
    return tiers


def column_x(role: NodeRole, config: LayoutConfig) -> float:
    """Left edge of the column for ``role``.

    Origins sit on the left margin, the hub is centered in the drawable
    area and destinations are flush with the right margin.
    """
    left = config.margin.left
    if role == NodeRole.ORIGIN:
        return left
    if role == NodeRole.HUB:
        return left + config.inner_width / 2 - config.node_width / 2
    return left + config.inner_width - config.node_width
