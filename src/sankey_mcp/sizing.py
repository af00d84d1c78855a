"""
Node height solver.

Heights are proportional to flow value, computed independently per tier:

  - Origin and hub tiers are normalized against the largest node value in
    the whole graph, so the columns stay visually comparable.  A node at the
    maximum value fills 60% of the drawable height.
  - The destination tier shares 90% of the drawable height between its
    nodes after reserving the inter-node padding.

Every height is floored at ``node_min_height``.  A zero denominator (an
all-zero tier or graph) is replaced by 1 so the result is never NaN.
"""

from __future__ import annotations

from typing import Sequence

from .models import FlowNode, LayoutConfig, NodeRole


SINGLE_TIER_FRACTION = 0.6
STACKED_TIER_FRACTION = 0.9


def denominator_floor(value: float) -> float:
    """Substitute 1 for a zero divisor."""
    return value if value != 0 else 1.0


def solve_heights(
    nodes_in_tier: Sequence[FlowNode],
    role: NodeRole,
    config: LayoutConfig,
    max_node_value: float,
) -> list[float]:
    """Return one pixel height per node, in tier order.

    Args:
        nodes_in_tier:  The tier's nodes, in graph order.
        role:           Which tier they belong to.
        config:         Layout constants for this pass.
        max_node_value: Largest node value across every tier of the graph.
    """
    if not nodes_in_tier:
        return []
    if role == NodeRole.DESTINATION:
        return _stacked_heights(nodes_in_tier, config)
    return _normalized_heights(nodes_in_tier, config, max_node_value)


def _normalized_heights(
    nodes: Sequence[FlowNode], config: LayoutConfig, max_node_value: float
) -> list[float]:
    span = config.inner_height * SINGLE_TIER_FRACTION
    divisor = denominator_floor(max_node_value)
    return [max(config.node_min_height, (n.value / divisor) * span) for n in nodes]


def _stacked_heights(nodes: Sequence[FlowNode], config: LayoutConfig) -> list[float]:
    available = config.inner_height * STACKED_TIER_FRACTION
    padding_total = (len(nodes) - 1) * config.node_padding
    total_value = denominator_floor(sum(n.value for n in nodes))
    scale = (available - padding_total) / total_value
    return [max(config.node_min_height, n.value * scale) for n in nodes]
