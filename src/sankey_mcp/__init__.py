"""Sankey-MCP — proportional money-flow diagram layout and rendering."""

from .engine import LayoutEngine, layout
from .errors import (
    DanglingLinkReferenceError,
    DuplicateNodeIdError,
    FlowGraphError,
    MissingRoleError,
    NegativeValueError,
)
from .models import (
    FlowDiagram,
    FlowGraph,
    FlowLink,
    FlowNode,
    LayoutConfig,
    LayoutResult,
    NodeRole,
    PositionedLink,
    PositionedNode,
)
from .resize import ResizeController, clamp_width

__all__ = [
    "DanglingLinkReferenceError",
    "DuplicateNodeIdError",
    "FlowDiagram",
    "FlowGraph",
    "FlowGraphError",
    "FlowLink",
    "FlowNode",
    "LayoutConfig",
    "LayoutEngine",
    "LayoutResult",
    "MissingRoleError",
    "NegativeValueError",
    "NodeRole",
    "PositionedLink",
    "PositionedNode",
    "ResizeController",
    "clamp_width",
    "layout",
]
