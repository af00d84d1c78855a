"""Recipe parser for Sankey-MCP.

A recipe is YAML (or JSON, which YAML accepts) describing one diagram:

    title: Cash Flow Diagram
    description: Money flow through the platform
    width: 900
    height: 500
    nodes:
      - id: customer
        name: Customer Revenue
        value: 1000000
        color: "#10b981"
        role: origin
      - id: platform
        name: Platform Hub
        value: 1000000
        role: hub
      ...
    links:
      - source: customer
        target: platform
        value: 1000000

The same fields may also be nested under a top-level ``diagram:`` key.
Every node needs a ``role`` of origin, hub or destination.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from .models import (
    DEFAULT_DESCRIPTION,
    DEFAULT_HEIGHT,
    DEFAULT_LINK_COLOR,
    DEFAULT_NODE_COLOR,
    DEFAULT_TITLE,
    DEFAULT_WIDTH,
    FlowDiagram,
    FlowGraph,
    FlowLink,
    FlowNode,
)


def parse_yaml(yaml_str: str) -> FlowDiagram:
    """Parse a YAML (or JSON) recipe string into a FlowDiagram."""
    data = yaml.safe_load(yaml_str)
    if not data:
        raise ValueError("Empty recipe input")
    if not isinstance(data, dict):
        raise ValueError("Recipe must be a mapping with 'nodes' and 'links'")
    return parse_data(data)


def parse_file(path: str) -> FlowDiagram:
    """Parse a recipe file into a FlowDiagram."""
    content = Path(path).read_text(encoding="utf-8")
    return parse_yaml(content)


def parse_data(data: dict[str, Any]) -> FlowDiagram:
    """Build a FlowDiagram from already-decoded recipe data.

    Malformed fields raise ValueError; structural graph errors raise the
    FlowGraphError kinds.
    """
    if "diagram" in data:
        data = data["diagram"]
        if not isinstance(data, dict):
            raise ValueError(f"'diagram' must be a mapping, got {type(data).__name__}")

    nodes = [_parse_node(nd) for nd in _entries(data, "nodes")]
    links = [_parse_link(ld) for ld in _entries(data, "links")]

    return FlowDiagram(
        graph=FlowGraph(nodes=nodes, links=links),
        title=data.get("title", DEFAULT_TITLE),
        description=data.get("description", DEFAULT_DESCRIPTION),
        width=_dimension(data, "width", DEFAULT_WIDTH),
        height=_dimension(data, "height", DEFAULT_HEIGHT),
    )


def _entries(data: dict, key: str) -> list:
    entries = data.get(key) or []
    if not isinstance(entries, list):
        raise ValueError(f"'{key}' must be a list, got {type(entries).__name__}")
    return entries


def _dimension(data: dict, key: str, default: int) -> int:
    raw = data.get(key, default)
    if isinstance(raw, bool):
        raise ValueError(f"'{key}' must be a positive number, got {raw!r}")
    try:
        value = int(raw)
    except (TypeError, ValueError, OverflowError) as e:
        raise ValueError(f"'{key}' must be a positive number, got {raw!r}") from e
    if value <= 0:
        raise ValueError(f"'{key}' must be a positive number, got {raw!r}")
    return value


def _parse_node(data: dict) -> FlowNode:
    """Parse a single node.  A missing role raises MissingRoleError."""
    if not isinstance(data, dict) or "id" not in data:
        raise ValueError(f"Node entry needs an 'id': {data!r}")
    return FlowNode(
        id=str(data["id"]),
        name=data.get("name", data.get("label", "")),
        value=data.get("value", 0),
        color=data.get("color", DEFAULT_NODE_COLOR),
        role=data.get("role"),
    )


def _parse_link(data: dict) -> FlowLink:
    if not isinstance(data, dict) or "source" not in data or "target" not in data:
        raise ValueError(f"Link entry needs 'source' and 'target': {data!r}")
    return FlowLink(
        source=str(data["source"]),
        target=str(data["target"]),
        value=data.get("value", 0),
        color=data.get("color", DEFAULT_LINK_COLOR),
    )


def _plain_number(value: float) -> float | int:
    return int(value) if float(value).is_integer() else value


def diagram_to_yaml(diagram: FlowDiagram) -> str:
    """Serialize a FlowDiagram back to a recipe."""
    data: dict[str, Any] = {
        "title": diagram.title,
        "description": diagram.description,
        "width": diagram.width,
        "height": diagram.height,
        "nodes": [],
        "links": [],
    }

    for node in diagram.graph.nodes:
        node_data = {
            "id": node.id,
            "role": node.role.value,
            "value": _plain_number(node.value),
        }
        if node.name:
            node_data["name"] = node.name
        if node.color != DEFAULT_NODE_COLOR:
            node_data["color"] = node.color
        data["nodes"].append(node_data)

    for link in diagram.graph.links:
        link_data = {
            "source": link.source,
            "target": link.target,
            "value": _plain_number(link.value),
        }
        if link.color != DEFAULT_LINK_COLOR:
            link_data["color"] = link.color
        data["links"].append(link_data)

    return yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)
