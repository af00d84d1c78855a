"""
Web surface — an aiohttp app serving layouts, renders and a live diagram.

Routes:

    GET  /api/status   health check
    POST /api/layout   recipe → JSON geometry
    POST /api/render   recipe → SVG (default) or PNG
    GET  /api/ws       live diagram websocket
    GET  /             web/index.html, if present

Request bodies are JSON.  A body may carry a YAML/JSON recipe string under
``recipe``, or the recipe fields (``nodes``, ``links``, ``title``, ...)
directly.  ``width`` is the observed container width and is clamped to
the minimum canvas width.

Websocket protocol (JSON text frames):

    → {"type": "diagram", "recipe": "...", "width": 820}
    → {"type": "resize", "width": 1040}
    ← {"type": "layout", "width": ..., "height": ..., "nodes": [...], "links": [...]}
    ← {"type": "error", "kind": "...", "message": "..."}

Each connection owns one LiveDiagram; it is closed when the socket closes,
which drops any relayout still pending.
"""

from __future__ import annotations

import json
import logging
import math
from datetime import datetime
from typing import Any

import yaml
from aiohttp import WSMsgType, web

from .config import WEB_DIR
from .engine import layout
from .errors import FlowGraphError
from .models import FlowDiagram, LayoutResult
from .parser import parse_data, parse_yaml
from .renderer import FlowRenderer
from .resize import clamp_width
from .session import LiveDiagram

logger = logging.getLogger(__name__)


class BadRequest(Exception):
    """A request body that could not be turned into a diagram."""


def diagram_from_payload(data: Any) -> FlowDiagram:
    """Build a diagram from a decoded request body.

    Raises:
        FlowGraphError: the graph is structurally invalid.
        BadRequest:     the body is not a usable recipe.
    """
    if not isinstance(data, dict):
        raise BadRequest("Request body must be a JSON object")
    try:
        if "recipe" in data:
            if not isinstance(data["recipe"], str):
                raise BadRequest("'recipe' must be a YAML or JSON string")
            return parse_yaml(data["recipe"])
        return parse_data(data)
    except yaml.YAMLError as e:
        raise BadRequest(f"Failed to parse recipe: {e}") from e
    except ValueError as e:
        # Includes pydantic's ValidationError
        raise BadRequest(str(e)) from e


def _canvas_width(data: dict, diagram: FlowDiagram) -> float:
    raw = data.get("width", diagram.width)
    try:
        return clamp_width(float(raw))
    except (TypeError, ValueError) as e:
        raise BadRequest(f"Invalid width: {raw!r}") from e


def _error_response(e: Exception, status: int) -> web.Response:
    return web.json_response({"error": str(e), "kind": type(e).__name__}, status=status)


async def _read_diagram(request: web.Request) -> tuple[dict, FlowDiagram, LayoutResult]:
    try:
        data = await request.json()
    except json.JSONDecodeError as e:
        raise BadRequest(f"Invalid JSON body: {e}") from e
    diagram = diagram_from_payload(data)
    width = _canvas_width(data, diagram)
    height = _positive_number(data, "height", diagram.height)
    return data, diagram, layout(diagram.graph, width, height)


def _positive_number(data: dict, key: str, default: float) -> float:
    raw = data.get(key, default)
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise BadRequest(f"Invalid {key}: {raw!r}") from e
    if not (value > 0 and math.isfinite(value)):
        raise BadRequest(f"Invalid {key}: {raw!r}")
    return value


# =============================================================================
# HTTP Handlers
# =============================================================================

async def handle_index(request):
    """Serve the main web interface."""
    index_path = WEB_DIR / 'index.html'
    if index_path.exists():
        return web.FileResponse(index_path)
    return web.Response(text="Web interface not found.", status=404)


async def handle_status(request):
    """Health check endpoint."""
    return web.json_response({
        "status": "ok",
        "service": "Sankey-MCP",
        "timestamp": datetime.now().isoformat()
    })


async def handle_layout(request):
    """Lay out a recipe and return its geometry."""
    try:
        _, diagram, result = await _read_diagram(request)
    except FlowGraphError as e:
        logger.warning(f"Rejected flow graph: {e}")
        return _error_response(e, 422)
    except BadRequest as e:
        return _error_response(e, 400)

    return web.json_response({"title": diagram.title, **result.to_dict()})


async def handle_render(request):
    """Render a recipe to SVG or PNG."""
    try:
        data, diagram, result = await _read_diagram(request)
    except FlowGraphError as e:
        logger.warning(f"Rejected flow graph: {e}")
        return _error_response(e, 422)
    except BadRequest as e:
        return _error_response(e, 400)

    fmt = data.get("format", "svg")
    if fmt == "svg":
        svg = FlowRenderer().render_svg(result, diagram)
        return web.Response(text=svg, content_type="image/svg+xml")
    if fmt == "png":
        try:
            renderer = FlowRenderer(scale=_positive_number(data, "scale", 1.0))
        except (BadRequest, ValueError) as e:
            return _error_response(e, 400)
        png = renderer.render_png(result, diagram)
        return web.Response(body=png, content_type="image/png")
    return web.json_response({"error": f"Unsupported format: {fmt}"}, status=400)


async def handle_ws(request):
    """Live diagram: relayout on every distinct container width."""
    ws = web.WebSocketResponse()
    await ws.prepare(request)

    live: LiveDiagram | None = None

    async def send_error(e: Exception):
        await ws.send_json({"type": "error", "kind": type(e).__name__, "message": str(e)})

    async def publish(result: LayoutResult):
        if not ws.closed:
            await ws.send_json({"type": "layout", **result.to_dict()})

    try:
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                logger.error(f"Websocket error: {ws.exception()}")
                break
            if msg.type != WSMsgType.TEXT:
                continue

            try:
                data = json.loads(msg.data)
                if not isinstance(data, dict):
                    raise BadRequest("Message must be a JSON object")
                kind = data.get("type")

                if kind == "diagram":
                    diagram = diagram_from_payload(data)
                    width = _canvas_width(data, diagram)
                    if live is not None:
                        live.close()
                    live = LiveDiagram(diagram, publish)
                    live.resize(width)
                elif kind == "resize":
                    if live is None:
                        raise BadRequest("No diagram loaded")
                    if "width" not in data:
                        raise BadRequest("Resize message needs a width")
                    live.resize(_canvas_width(data, live.diagram))
                else:
                    raise BadRequest(f"Unknown message type: {kind!r}")
            except json.JSONDecodeError as e:
                await send_error(BadRequest(f"Invalid JSON message: {e}"))
            except (FlowGraphError, BadRequest) as e:
                await send_error(e)
    finally:
        if live is not None:
            live.close()
        logger.debug("Live diagram connection closed")

    return ws


def create_app():
    """Create the aiohttp application."""
    app = web.Application()

    app.router.add_get('/api/status', handle_status)
    app.router.add_post('/api/layout', handle_layout)
    app.router.add_post('/api/render', handle_render)
    app.router.add_get('/api/ws', handle_ws)
    app.router.add_get('/', handle_index)

    if WEB_DIR.exists():
        app.router.add_static('/static/', WEB_DIR, name='static')

    return app


async def main(host: str = '0.0.0.0', port: int = 8766):
    """Run the web server."""
    import asyncio

    app = create_app()

    runner = web.AppRunner(app)
    await runner.setup()

    site = web.TCPSite(runner, host, port)
    await site.start()

    logger.info(f"Sankey-MCP web running at http://{host}:{port}")

    try:
        while True:
            await asyncio.sleep(3600)
    finally:
        await runner.cleanup()
