"""Shared fixtures: the marketplace money-flow graph."""

from __future__ import annotations

import pytest

from sankey_mcp.models import FlowGraph, FlowLink, FlowNode, NodeRole


def marketplace_nodes(scale: float = 1.0) -> list[FlowNode]:
    return [
        FlowNode(id="customer", name="Customer Revenue", value=1_000_000 * scale,
                 color="#10b981", role=NodeRole.ORIGIN),
        FlowNode(id="platform", name="Platform Hub", value=1_000_000 * scale,
                 color="#3b82f6", role=NodeRole.HUB),
        FlowNode(id="commission", name="Platform Earnings", value=120_000 * scale,
                 color="#f59e0b", role=NodeRole.DESTINATION),
        FlowNode(id="vendor", name="Vendor Payments", value=750_000 * scale,
                 color="#ef4444", role=NodeRole.DESTINATION),
        FlowNode(id="delivery", name="Delivery Partners", value=80_000 * scale,
                 color="#8b5cf6", role=NodeRole.DESTINATION),
        FlowNode(id="operations", name="Operations", value=50_000 * scale,
                 color="#6b7280", role=NodeRole.DESTINATION),
    ]


def marketplace_links(scale: float = 1.0) -> list[FlowLink]:
    return [
        FlowLink(source="customer", target="platform", value=1_000_000 * scale, color="#10b981"),
        FlowLink(source="platform", target="commission", value=120_000 * scale, color="#f59e0b"),
        FlowLink(source="platform", target="vendor", value=750_000 * scale, color="#ef4444"),
        FlowLink(source="platform", target="delivery", value=80_000 * scale, color="#8b5cf6"),
        FlowLink(source="platform", target="operations", value=50_000 * scale, color="#6b7280"),
    ]


def build_marketplace_graph(scale: float = 1.0) -> FlowGraph:
    return FlowGraph(nodes=marketplace_nodes(scale), links=marketplace_links(scale))


@pytest.fixture
def marketplace_graph() -> FlowGraph:
    return build_marketplace_graph()


MARKETPLACE_RECIPE = """
title: Marketplace Cash Flow
nodes:
  - {id: customer, name: Customer Revenue, value: 1000000, color: "#10b981", role: origin}
  - {id: platform, name: Platform Hub, value: 1000000, color: "#3b82f6", role: hub}
  - {id: commission, name: Platform Earnings, value: 120000, color: "#f59e0b", role: destination}
  - {id: vendor, name: Vendor Payments, value: 750000, color: "#ef4444", role: destination}
links:
  - {source: customer, target: platform, value: 1000000, color: "#10b981"}
  - {source: platform, target: commission, value: 120000, color: "#f59e0b"}
  - {source: platform, target: vendor, value: 750000, color: "#ef4444"}
"""


@pytest.fixture
def marketplace_recipe() -> str:
    return MARKETPLACE_RECIPE
