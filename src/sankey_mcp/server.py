"""Sankey-MCP server — MCP tools for laying out and rendering money-flow diagrams."""

from __future__ import annotations

import json
import logging
import math
import re
import uuid

import yaml
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import TextContent, Tool
from pydantic import ValidationError

from .config import OUTPUT_DIR, TEMPLATES_DIR, configure_logging, ensure_output_dir
from .engine import layout
from .errors import FlowGraphError
from .models import FlowDiagram
from .parser import parse_yaml
from .renderer import FlowRenderer
from .resize import clamp_width

logger = logging.getLogger(__name__)

server = Server("sankey-mcp")

RECIPE_DESCRIPTION = (
    "YAML (or JSON) string defining the diagram. Example:\n"
    "title: Cash Flow Diagram\n"
    "nodes:\n"
    "  - {id: customer, name: Customer Revenue, value: 1000000, role: origin}\n"
    "  - {id: platform, name: Platform Hub, value: 1000000, role: hub}\n"
    "  - {id: vendor, name: Vendor Payments, value: 750000, role: destination}\n"
    "links:\n"
    "  - {source: customer, target: platform, value: 1000000}\n"
    "  - {source: platform, target: vendor, value: 750000}\n"
    "\n"
    "Every node needs a role: origin, hub or destination."
)


# --- Tool definitions ---

@server.list_tools()
async def list_tools() -> list[Tool]:
    return [
        Tool(
            name="layout_flow_diagram",
            description=(
                "Compute the geometry of a flow diagram from a recipe. "
                "Returns JSON with positioned nodes (x, y, width, height) and links "
                "(SVG path data, stroke width, anchors and label midpoint)."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "recipe": {"type": "string", "description": RECIPE_DESCRIPTION},
                    "width": {
                        "type": "number",
                        "description": "Container width in pixels. Widths below 600 are clamped to 600.",
                    },
                    "height": {
                        "type": "number",
                        "description": "Canvas height in pixels (default: the recipe's height).",
                    },
                },
                "required": ["recipe"],
            },
        ),
        Tool(
            name="render_flow_diagram",
            description=(
                "Render a flow diagram recipe to an SVG or PNG file. "
                "Returns the path to the rendered file."
            ),
            inputSchema={
                "type": "object",
                "properties": {
                    "recipe": {"type": "string", "description": RECIPE_DESCRIPTION},
                    "format": {
                        "type": "string",
                        "enum": ["svg", "png"],
                        "description": "Output format (default svg).",
                        "default": "svg",
                    },
                    "width": {
                        "type": "number",
                        "description": "Container width in pixels. Widths below 600 are clamped to 600.",
                    },
                    "scale": {
                        "type": "number",
                        "description": "PNG render scale factor between 0.25 and 8 (default 2.0).",
                        "default": 2.0,
                    },
                    "filename": {
                        "type": "string",
                        "description": "Output filename (without extension). Default: auto-generated.",
                    },
                },
                "required": ["recipe"],
            },
        ),
        Tool(
            name="list_templates",
            description="List available flow diagram recipe templates.",
            inputSchema={"type": "object", "properties": {}},
        ),
        Tool(
            name="get_template",
            description="Get the YAML content of a specific template by name.",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Template name (from list_templates output)",
                    },
                },
                "required": ["name"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    if name == "layout_flow_diagram":
        return await _layout_flow_diagram(arguments)
    elif name == "render_flow_diagram":
        return await _render_flow_diagram(arguments)
    elif name == "list_templates":
        return await _list_templates(arguments)
    elif name == "get_template":
        return await _get_template(arguments)
    else:
        return [TextContent(type="text", text=f"Unknown tool: {name}")]


def _load_recipe(recipe: str) -> FlowDiagram:
    """Parse a recipe, turning every rejection into a ValueError with a readable message."""
    try:
        return parse_yaml(recipe)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse recipe: {e}") from e
    except FlowGraphError as e:
        raise ValueError(f"Invalid flow graph: {e}") from e
    except ValidationError as e:
        raise ValueError(f"Invalid recipe field: {e}") from e


def _number_arg(args: dict, key: str, default: float) -> float:
    """A finite, positive numeric argument; absent (or null) means ``default``."""
    raw = args.get(key)
    if raw is None:
        return float(default)
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid {key}: {raw!r}") from e
    if not math.isfinite(value) or value < 0:
        raise ValueError(f"Invalid {key}: {raw!r}")
    return value


def _canvas_size(diagram: FlowDiagram, args: dict) -> tuple[float, float]:
    """Canvas size for a tool call.  Widths of 0 (a collapsed container) clamp like any other."""
    width = clamp_width(_number_arg(args, "width", diagram.width))
    height = _number_arg(args, "height", diagram.height)
    if height == 0:
        raise ValueError(f"Invalid height: {args.get('height')!r}")
    return width, height


def _output_name(args: dict) -> str:
    """Output file stem, restricted to a plain file name inside OUTPUT_DIR."""
    filename = args.get("filename") or str(uuid.uuid4())[:8]
    return re.sub(r'[^\w\-_.]', '_', str(filename))


async def _layout_flow_diagram(args: dict) -> list[TextContent]:
    try:
        diagram = _load_recipe(args["recipe"])
        width, height = _canvas_size(diagram, args)
    except ValueError as e:
        logger.warning(str(e))
        return [TextContent(type="text", text=str(e))]

    result = layout(diagram.graph, width, height)

    payload = {"status": "success", "title": diagram.title, **result.to_dict()}
    return [TextContent(type="text", text=json.dumps(payload))]


async def _render_flow_diagram(args: dict) -> list[TextContent]:
    """Render a recipe to SVG or PNG under the output directory."""
    ensure_output_dir()

    fmt = args.get("format", "svg")
    if fmt not in ("svg", "png"):
        return [TextContent(type="text", text=f"Unsupported format: {fmt}")]

    try:
        diagram = _load_recipe(args["recipe"])
        width, height = _canvas_size(diagram, args)
        renderer = FlowRenderer(scale=_number_arg(args, "scale", 2.0))
    except ValueError as e:
        logger.warning(str(e))
        return [TextContent(type="text", text=str(e))]

    result = layout(diagram.graph, width, height)
    output_path = OUTPUT_DIR / f"{_output_name(args)}.{fmt}"

    try:
        if fmt == "svg":
            output_path.write_text(renderer.render_svg(result, diagram), encoding="utf-8")
        else:
            renderer.render_png(result, diagram, output_path=str(output_path))
    except OSError as e:
        logger.error(f"Rendering failed: {e}")
        return [TextContent(type="text", text=f"Rendering failed: {e}")]

    logger.info(f"Rendered {diagram.title!r} to {output_path}")
    return [TextContent(
        type="text",
        text=json.dumps({
            "status": "success",
            "path": str(output_path),
            "format": fmt,
            "title": diagram.title,
            "nodes": len(result.nodes),
            "links": len(result.links),
            "width": width,
            "height": height,
        }),
    )]


async def _list_templates(args: dict) -> list[TextContent]:
    """List available template files."""
    templates = []

    if TEMPLATES_DIR.exists():
        for f in sorted(TEMPLATES_DIR.glob("*.yaml")) + sorted(TEMPLATES_DIR.glob("*.yml")):
            templates.append({
                "name": f.stem,
                "path": str(f),
            })

    return [TextContent(
        type="text",
        text=json.dumps({"templates": templates}),
    )]


async def _get_template(args: dict) -> list[TextContent]:
    """Get template content by name."""
    name = args["name"]

    for ext in [".yaml", ".yml"]:
        path = TEMPLATES_DIR / f"{name}{ext}"
        if path.exists():
            return [TextContent(type="text", text=path.read_text(encoding="utf-8"))]

    return [TextContent(type="text", text=f"Template not found: {name}")]


def main():
    """Entry point for the MCP server."""
    import asyncio
    configure_logging()
    asyncio.run(_run())


async def _run():
    async with stdio_server() as (read_stream, write_stream):
        await server.run(read_stream, write_stream, server.create_initialization_options())


if __name__ == "__main__":
    main()
