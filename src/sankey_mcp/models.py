"""
Data models for Sankey-MCP — the flow-diagram ontology.

A flow diagram is a small weighted directed graph laid out in three fixed
columns (tiers):

    origin  ──►  hub  ──►  destination
                      ──►  destination
                      ──►  destination

Input side (immutable, hashable so a layout pass can be memoized):

    FlowNode   — id, display name, flow value, color and an explicit role
    FlowLink   — source id → target id, flow value and color
    FlowGraph  — the node and link sets, validated on construction

Geometry side (derived, rebuilt from scratch on every layout pass):

    LayoutConfig    — node width/min height/padding, margins, canvas size
    CurveSpec       — a cubic Bézier connector
    PositionedNode  — a FlowNode plus x, y, width, height
    PositionedLink  — a FlowLink plus its curve, stroke width and anchors
    LayoutResult    — everything a renderer needs to draw the diagram

``FlowDiagram`` bundles a graph with the display configuration a recipe
carries (title, description, width, height).

Roles are a first-class tag.  Nothing in this package inspects id text to
decide which column a node belongs in.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, model_validator

from .errors import (
    DanglingLinkReferenceError,
    DuplicateNodeIdError,
    MissingRoleError,
    NegativeValueError,
)


DEFAULT_NODE_COLOR = "#6b7280"
DEFAULT_LINK_COLOR = "#94a3b8"

DEFAULT_TITLE = "Cash Flow Diagram"
DEFAULT_DESCRIPTION = "Visual representation of money flow through the platform"
DEFAULT_WIDTH = 900
DEFAULT_HEIGHT = 500


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------

class NodeRole(str, Enum):
    """The three layout tiers, left to right."""
    ORIGIN = "origin"
    HUB = "hub"
    DESTINATION = "destination"

    @classmethod
    def parse(cls, raw: object) -> Optional["NodeRole"]:
        """Return the role named by ``raw`` (case-insensitive), or None."""
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, str):
            try:
                return cls(raw.strip().lower())
            except ValueError:
                return None
        return None


# ---------------------------------------------------------------------------
# Input graph
# ---------------------------------------------------------------------------

class FlowNode(BaseModel):
    """A node in the flow graph.

    ``name`` is the display label; when it is empty ``get_label()`` falls
    back to the id.  ``role`` is mandatory: a node without a valid role is
    rejected with ``MissingRoleError`` rather than guessed at layout time.
    """
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    id: str
    name: str = ""
    value: float = 0.0
    color: str = DEFAULT_NODE_COLOR
    role: NodeRole

    @model_validator(mode="before")
    @classmethod
    def _require_role(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        raw = data.get("role")
        if raw is None:
            raise MissingRoleError(data.get("id"))
        role = NodeRole.parse(raw)
        if role is None:
            raise MissingRoleError(data.get("id"), raw)
        return {**data, "role": role}

    @model_validator(mode="after")
    def _reject_negative(self) -> "FlowNode":
        if self.value < 0:
            raise NegativeValueError(f"Node '{self.id}'", self.value)
        return self

    def get_label(self) -> str:
        """Return ``name`` if set, otherwise ``id``."""
        return self.name if self.name else self.id


class FlowLink(BaseModel):
    """A value-weighted directed link between two node ids."""
    model_config = ConfigDict(frozen=True, allow_inf_nan=False)

    source: str
    target: str
    value: float = 0.0
    color: str = DEFAULT_LINK_COLOR

    @model_validator(mode="after")
    def _reject_negative(self) -> "FlowLink":
        if self.value < 0:
            raise NegativeValueError(f"Link {self.source} -> {self.target}", self.value)
        return self

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


class FlowGraph(BaseModel):
    """The immutable input to the layout engine.

    Validation happens here, once: duplicate node ids and links whose
    endpoints are missing reject the whole graph.  Links are never
    silently dropped.

    The graph keeps a private id → node index for O(1) lookup; use
    ``get_node(id)`` rather than scanning ``nodes``.
    """
    model_config = ConfigDict(frozen=True)

    nodes: tuple[FlowNode, ...] = ()
    links: tuple[FlowLink, ...] = ()

    _node_index: dict[str, FlowNode] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def _check_references(self) -> "FlowGraph":
        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                raise DuplicateNodeIdError(node.id)
            seen.add(node.id)

        for link in self.links:
            for endpoint in (link.source, link.target):
                if endpoint not in seen:
                    raise DanglingLinkReferenceError(link.source, link.target, endpoint)
        return self

    def model_post_init(self, __context: Any) -> None:
        self._node_index = {node.id: node for node in self.nodes}

    def get_node(self, node_id: str) -> Optional[FlowNode]:
        """Look up a node by id."""
        return self._node_index.get(node_id)

    def nodes_with_role(self, role: NodeRole) -> list[FlowNode]:
        """Nodes in the given tier, in graph order."""
        return [n for n in self.nodes if n.role == role]

    def links_touching(self, node_id: str) -> list[FlowLink]:
        return [link for link in self.links if link.touches(node_id)]

    def without_links_touching(self, node_id: str) -> "FlowGraph":
        """Return a copy of this graph with every link to or from ``node_id`` removed."""
        kept = tuple(link for link in self.links if not link.touches(node_id))
        return FlowGraph(nodes=self.nodes, links=kept)

    def max_node_value(self) -> float:
        """Largest node value, or 0 for an empty graph."""
        return max((n.value for n in self.nodes), default=0.0)

    def max_link_value(self) -> float:
        """Largest link value, or 0 when there are no links."""
        return max((link.value for link in self.links), default=0.0)


# ---------------------------------------------------------------------------
# Layout configuration
# ---------------------------------------------------------------------------

class Margin(BaseModel):
    """Space reserved around the drawable area for labels."""
    model_config = ConfigDict(frozen=True)

    top: float = 50
    right: float = 100
    bottom: float = 40
    left: float = 100


class LayoutConfig(BaseModel):
    """Geometry constants for one layout pass.

    Attributes:
        node_width:      Width of every node rectangle.
        node_min_height: Floor applied to every computed node height.
        node_padding:    Vertical gap between stacked nodes in one tier.
        margin:          Label space around the drawable area.
        canvas_width:    Full canvas width in pixels.
        canvas_height:   Full canvas height in pixels.

    ``inner_width`` and ``inner_height`` are the drawable area inside the
    margins, floored at 300 and 200 pixels so tiny canvases still lay out.
    """
    model_config = ConfigDict(frozen=True)

    node_width: float = Field(default=40, gt=0)
    node_min_height: float = Field(default=24, ge=0)
    node_padding: float = Field(default=18, ge=0)
    margin: Margin = Field(default_factory=Margin)
    canvas_width: float = DEFAULT_WIDTH
    canvas_height: float = DEFAULT_HEIGHT

    @property
    def inner_width(self) -> float:
        return max(300.0, self.canvas_width - self.margin.left - self.margin.right)

    @property
    def inner_height(self) -> float:
        return max(200.0, self.canvas_height - self.margin.top - self.margin.bottom)

    def with_canvas(self, width: float, height: float) -> "LayoutConfig":
        """Copy of this config sized to a new canvas."""
        return self.model_copy(update={"canvas_width": width, "canvas_height": height})


# ---------------------------------------------------------------------------
# Derived geometry
# ---------------------------------------------------------------------------

Point = tuple[float, float]


class CurveSpec(BaseModel):
    """A cubic Bézier connector from ``start`` to ``end``."""
    model_config = ConfigDict(frozen=True)

    start: Point
    control1: Point
    control2: Point
    end: Point

    def point_at(self, t: float) -> Point:
        """Evaluate the curve at parameter ``t`` in [0, 1]."""
        (sx, sy), (c1x, c1y) = self.start, self.control1
        (c2x, c2y), (ex, ey) = self.control2, self.end
        u = 1 - t
        x = u**3 * sx + 3 * u**2 * t * c1x + 3 * u * t**2 * c2x + t**3 * ex
        y = u**3 * sy + 3 * u**2 * t * c1y + 3 * u * t**2 * c2y + t**3 * ey
        return (x, y)

    def sample(self, steps: int = 30) -> list[Point]:
        """Return ``steps + 1`` evenly spaced points along the curve."""
        return [self.point_at(i / steps) for i in range(steps + 1)]

    def to_svg_path(self) -> str:
        """SVG path data, e.g. ``M 140 250 C 171.5 250, 229.5 100, 261 100``."""
        (sx, sy), (c1x, c1y) = self.start, self.control1
        (c2x, c2y), (ex, ey) = self.control2, self.end
        return (
            f"M {_num(sx)} {_num(sy)} "
            f"C {_num(c1x)} {_num(c1y)}, {_num(c2x)} {_num(c2y)}, {_num(ex)} {_num(ey)}"
        )


def _num(v: float) -> str:
    """Format a coordinate without trailing zeros."""
    return f"{v:.2f}".rstrip("0").rstrip(".")


class PositionedNode(FlowNode):
    """A node with canvas geometry attached."""
    x: float
    y: float
    width: float
    height: float

    @property
    def bottom(self) -> float:
        return self.y + self.height

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2


class PositionedLink(FlowLink):
    """A link with its connector curve and anchors attached.

    ``mid_x``/``mid_y`` is the curve's midpoint, where renderers place the
    value label.
    """
    path: CurveSpec
    stroke_width: float
    source_x: float
    source_y: float
    target_x: float
    target_y: float
    mid_x: float
    mid_y: float


class LayoutResult(BaseModel):
    """Output of one layout pass."""
    model_config = ConfigDict(frozen=True)

    nodes: tuple[PositionedNode, ...] = ()
    links: tuple[PositionedLink, ...] = ()
    config: LayoutConfig = Field(default_factory=LayoutConfig)

    def get_node(self, node_id: str) -> Optional[PositionedNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_link(self, source: str, target: str) -> Optional[PositionedLink]:
        for link in self.links:
            if link.source == source and link.target == target:
                return link
        return None

    def links_touching(self, node_id: str) -> list[PositionedLink]:
        return [link for link in self.links if link.touches(node_id)]

    def to_dict(self) -> dict:
        """JSON-ready geometry for the web and MCP surfaces."""
        nodes = [n.model_dump(mode="json") for n in self.nodes]
        links = []
        for link in self.links:
            data = link.model_dump(mode="json")
            data["d"] = link.path.to_svg_path()
            links.append(data)
        return {
            "width": self.config.canvas_width,
            "height": self.config.canvas_height,
            "nodes": nodes,
            "links": links,
        }


# ---------------------------------------------------------------------------
# Recipe
# ---------------------------------------------------------------------------

class FlowDiagram(BaseModel):
    """A graph plus its display configuration, as loaded from a recipe."""
    graph: FlowGraph = Field(default_factory=FlowGraph)
    title: str = DEFAULT_TITLE
    description: str = DEFAULT_DESCRIPTION
    width: int = DEFAULT_WIDTH
    height: int = DEFAULT_HEIGHT
