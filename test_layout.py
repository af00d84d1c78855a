"""Tests for the layout pipeline: classify, sizing, stacking, paths and engine.

Geometry for the marketplace graph on the default 900x500 canvas
(inner area 700x410, margins 50/100/40/100):

  - origin/hub heights: 410 * 0.6 = 246, centered at y = 132
  - destination scale: (369 - 3*18) / 1,000,000 = 315e-6
  - columns: origin x=100, hub x=430, destination x=760
"""

from __future__ import annotations

import pytest

from conftest import build_marketplace_graph
from sankey_mcp.classify import classify, column_x, group_by_role
from sankey_mcp.engine import LayoutEngine, clear_layout_cache, layout
from sankey_mcp.errors import DanglingLinkReferenceError, MissingRoleError
from sankey_mcp.models import FlowGraph, FlowLink, FlowNode, LayoutConfig, NodeRole, PositionedNode
from sankey_mcp.paths import MIN_STROKE_WIDTH, build_path, build_paths, stroke_width
from sankey_mcp.sizing import denominator_floor, solve_heights
from sankey_mcp.stacking import center, stack, total_stack_height


def dest(node_id: str, value: float) -> FlowNode:
    return FlowNode(id=node_id, value=value, role=NodeRole.DESTINATION)


def positioned(node_id: str, x: float, y: float, height: float = 40, width: float = 40) -> PositionedNode:
    return PositionedNode(id=node_id, role="hub", value=1, x=x, y=y, width=width, height=height)


# ─── ColumnClassifier ─────────────────────────────────────────────────────────


class TestClassify:
    def test_classify_uses_explicit_role(self):
        # An id that mentions other tiers must not confuse classification
        node = FlowNode(id="target-middle-1", role="origin")
        assert classify(node) == NodeRole.ORIGIN

    def test_group_by_role_keeps_order_and_all_tiers(self, marketplace_graph):
        tiers = group_by_role(marketplace_graph.nodes)
        assert set(tiers) == {NodeRole.ORIGIN, NodeRole.HUB, NodeRole.DESTINATION}
        assert [n.id for n in tiers[NodeRole.DESTINATION]] == ["commission", "vendor", "delivery", "operations"]

        empty = group_by_role([])
        assert all(v == [] for v in empty.values())

    def test_column_x(self):
        cfg = LayoutConfig()
        assert column_x(NodeRole.ORIGIN, cfg) == 100
        assert column_x(NodeRole.HUB, cfg) == 430
        assert column_x(NodeRole.DESTINATION, cfg) == 760

    def test_missing_role_never_reaches_classification(self):
        with pytest.raises(MissingRoleError):
            FlowNode(id="x", value=1, role=None)


# ─── SizeSolver ───────────────────────────────────────────────────────────────


class TestSizing:
    def test_single_tier_normalized_against_graph_max(self):
        cfg = LayoutConfig()
        hub = FlowNode(id="hub", value=500, role="hub")
        assert solve_heights([hub], NodeRole.HUB, cfg, max_node_value=1000) == [pytest.approx(123.0)]

    def test_single_tier_floor(self):
        cfg = LayoutConfig()
        tiny = FlowNode(id="o", value=1, role="origin")
        assert solve_heights([tiny], NodeRole.ORIGIN, cfg, max_node_value=1_000_000) == [24]

    def test_destination_heights(self):
        cfg = LayoutConfig()
        nodes = [dest("a", 120_000), dest("b", 750_000), dest("c", 80_000), dest("d", 50_000)]
        heights = solve_heights(nodes, NodeRole.DESTINATION, cfg, max_node_value=1_000_000)
        assert heights == pytest.approx([37.8, 236.25, 25.2, 24.0])

    def test_zero_values_use_denominator_floor(self):
        cfg = LayoutConfig()
        nodes = [dest("a", 0), dest("b", 0)]
        assert solve_heights(nodes, NodeRole.DESTINATION, cfg, 0) == [24, 24]
        origin = FlowNode(id="o", value=0, role="origin")
        assert solve_heights([origin], NodeRole.ORIGIN, cfg, 0) == [24]

    def test_denominator_floor(self):
        assert denominator_floor(0) == 1
        assert denominator_floor(0.25) == 0.25

    def test_empty_tier(self):
        assert solve_heights([], NodeRole.DESTINATION, LayoutConfig(), 10) == []


# ─── StackPlanner ─────────────────────────────────────────────────────────────


class TestStacking:
    def test_stack_is_centered(self):
        cfg = LayoutConfig()
        heights = [37.8, 236.25, 25.2, 24.0]
        ys = stack(heights, cfg)
        total = total_stack_height(heights, cfg.node_padding)
        assert total == pytest.approx(377.25)
        assert ys[0] == pytest.approx(50 + (410 - 377.25) / 2)
        assert ys[-1] + heights[-1] - ys[0] == pytest.approx(total)

    def test_no_overlap(self):
        cfg = LayoutConfig(node_padding=0)
        heights = [10, 50, 24, 300]
        ys = stack(heights, cfg)
        for i in range(len(heights) - 1):
            assert ys[i] + heights[i] <= ys[i + 1]

    def test_single_height_matches_center(self):
        cfg = LayoutConfig()
        assert stack([246], cfg) == [center(246, cfg)] == [132]

    def test_empty(self):
        assert stack([], LayoutConfig()) == []
        assert total_stack_height([], 18) == 0


# ─── PathGenerator ────────────────────────────────────────────────────────────


class TestPaths:
    def test_anchors_and_controls(self):
        src = positioned("a", x=100, y=100, height=100)
        tgt = positioned("b", x=440, y=300, height=40)
        link = FlowLink(source="a", target="b", value=50)
        pl = build_path(src, tgt, link, max_link_value=100)

        assert (pl.source_x, pl.source_y) == (140, 150)
        assert (pl.target_x, pl.target_y) == (440, 320)
        assert pl.path.control1 == pytest.approx((245, 150))
        assert pl.path.control2 == pytest.approx((335, 320))
        assert pl.stroke_width == 15
        assert (pl.mid_x, pl.mid_y) == (290, 235)
        assert pl.path.point_at(0.5) == pytest.approx((pl.mid_x, pl.mid_y))
        assert pl.path.to_svg_path() == "M 140 150 C 245 150, 335 320, 440 320"

    def test_link_fields_are_carried(self):
        src, tgt = positioned("a", 0, 0), positioned("b", 300, 0)
        link = FlowLink(source="a", target="b", value=7, color="#123456")
        pl = build_path(src, tgt, link, 7)
        assert (pl.source, pl.target, pl.value, pl.color) == ("a", "b", 7, "#123456")

    def test_stroke_width_floor_and_monotonicity(self):
        assert stroke_width(0, 100) == MIN_STROKE_WIDTH
        assert stroke_width(0, 0) == MIN_STROKE_WIDTH
        assert stroke_width(100, 100) == 30
        values = [0, 1, 5, 13, 14, 50, 99, 100]
        widths = [stroke_width(v, 100) for v in values]
        assert widths == sorted(widths)

    def test_dangling_reference_rejected(self):
        nodes = [positioned("a", 0, 0)]
        with pytest.raises(DanglingLinkReferenceError) as info:
            build_paths(nodes, [FlowLink(source="a", target="ghost", value=1)])
        assert info.value.missing == "ghost"

    def test_build_paths_accepts_mapping(self):
        nodes = {"a": positioned("a", 0, 0), "b": positioned("b", 300, 0)}
        paths = build_paths(nodes, [FlowLink(source="a", target="b", value=2)])
        assert len(paths) == 1
        assert paths[0].stroke_width == 30


# ─── LayoutEngine ─────────────────────────────────────────────────────────────


class TestEngine:
    def test_marketplace_geometry(self, marketplace_graph):
        result = layout(marketplace_graph, 900, 500)

        assert [n.id for n in result.nodes] == [n.id for n in marketplace_graph.nodes]
        customer = result.get_node("customer")
        assert (customer.x, customer.y, customer.width, customer.height) == (100, 132, 40, 246)
        hub = result.get_node("platform")
        assert (hub.x, hub.y) == (430, 132)

        commission = result.get_node("commission")
        assert commission.x == 760
        assert commission.y == pytest.approx(66.375)
        assert commission.height == pytest.approx(37.8)

    def test_example_scenario(self, marketplace_graph):
        result = layout(marketplace_graph, 900, 500)
        dests = [n for n in result.nodes if n.role == NodeRole.DESTINATION]
        assert len(dests) == 4

        for upper, lower in zip(dests, dests[1:]):
            assert upper.bottom <= lower.y

        commission = result.get_node("commission")
        vendor = result.get_node("vendor")
        assert commission.height / vendor.height == pytest.approx(120_000 / 750_000)

        c_link = result.get_link("platform", "commission")
        v_link = result.get_link("platform", "vendor")
        assert c_link.stroke_width < v_link.stroke_width
        assert c_link.stroke_width >= 4 and v_link.stroke_width >= 4

    def test_all_heights_respect_floor(self, marketplace_graph):
        for width, height in [(600, 300), (900, 500), (1600, 900), (600, 100)]:
            result = layout(marketplace_graph, width, height)
            assert all(n.height >= result.config.node_min_height for n in result.nodes)

    def test_destination_stack_identity(self, marketplace_graph):
        result = layout(marketplace_graph, 1200, 700)
        cfg = result.config
        dests = [n for n in result.nodes if n.role == NodeRole.DESTINATION]
        heights = [n.height for n in dests]
        total = sum(heights) + (len(dests) - 1) * cfg.node_padding
        assert dests[-1].bottom - dests[0].y == pytest.approx(total)
        assert dests[0].y == pytest.approx(cfg.margin.top + (cfg.inner_height - total) / 2)

    @pytest.mark.parametrize("k", [0.001, 0.5, 3.5, 1000])
    def test_scale_invariance(self, k):
        base = layout(build_marketplace_graph(), 900, 500)
        scaled = layout(build_marketplace_graph(scale=k), 900, 500)
        for a, b in zip(base.nodes, scaled.nodes):
            assert (a.x, a.y, a.height) == pytest.approx((b.x, b.y, b.height))
        for a, b in zip(base.links, scaled.links):
            assert a.stroke_width == pytest.approx(b.stroke_width)

    def test_control_points_lie_between_anchors(self, marketplace_graph):
        for width in (600, 900, 1400):
            result = layout(marketplace_graph, width, 500)
            for link in result.links:
                lo, hi = sorted((link.source_x, link.target_x))
                for cx, _ in (link.path.control1, link.path.control2):
                    assert lo < cx < hi

    def test_node_without_links_is_still_positioned(self, marketplace_graph):
        trimmed = marketplace_graph.without_links_touching("delivery")
        result = layout(trimmed, 900, 500)
        delivery = result.get_node("delivery")
        assert delivery is not None and delivery.height >= 24
        assert result.links_touching("delivery") == []
        assert len(result.links) == 4

    def test_all_zero_values(self):
        graph = FlowGraph(
            nodes=[
                FlowNode(id="o", role="origin"),
                FlowNode(id="h", role="hub"),
                FlowNode(id="d1", role="destination"),
                FlowNode(id="d2", role="destination"),
            ],
            links=[
                FlowLink(source="o", target="h"),
                FlowLink(source="h", target="d1"),
                FlowLink(source="h", target="d2"),
            ],
        )
        result = layout(graph, 900, 500)
        assert all(n.height == 24 for n in result.nodes)
        assert all(link.stroke_width == 4 for link in result.links)

    def test_multiple_hubs_are_stacked(self):
        graph = FlowGraph(nodes=[
            FlowNode(id="h1", value=100, role="hub"),
            FlowNode(id="h2", value=100, role="hub"),
        ])
        result = layout(graph, 900, 500)
        h1, h2 = result.nodes
        assert h1.x == h2.x
        assert h1.bottom <= h2.y

    def test_empty_graph(self):
        result = layout(FlowGraph(), 900, 500)
        assert result.nodes == () and result.links == ()

    def test_accepts_mapping_and_validates_it(self):
        data = {
            "nodes": [{"id": "a", "value": 5, "role": "origin"}, {"id": "b", "value": 5, "role": "hub"}],
            "links": [{"source": "a", "target": "b", "value": 5}],
        }
        assert len(layout(data).links) == 1

        data["links"].append({"source": "a", "target": "zzz", "value": 1})
        with pytest.raises(DanglingLinkReferenceError):
            layout(data)

    def test_memoized_and_deterministic(self, marketplace_graph):
        clear_layout_cache()
        first = layout(marketplace_graph, 900, 500)
        second = layout(build_marketplace_graph(), 900, 500)
        assert first is second
        assert layout(marketplace_graph, 901, 500) is not first

    def test_engine_uses_its_config(self, marketplace_graph):
        engine = LayoutEngine(LayoutConfig(node_width=20, canvas_width=1000, canvas_height=600))
        result = engine.layout(marketplace_graph)
        assert result.config.canvas_width == 1000
        assert all(n.width == 20 for n in result.nodes)
        assert engine.layout(marketplace_graph, 700).config.canvas_width == 700

    def test_to_dict(self, marketplace_graph):
        data = layout(marketplace_graph, 900, 500).to_dict()
        assert data["width"] == 900 and data["height"] == 500
        assert data["nodes"][0]["role"] == "origin"
        assert data["links"][0]["d"].startswith("M 140 255 C")
