"""Flow-diagram renderer — draws a LayoutResult as SVG text or a Pillow PNG."""

from __future__ import annotations

import math
from io import BytesIO
from pathlib import Path
from typing import Optional

from PIL import Image, ImageDraw, ImageFont

from .formatting import format_compact_currency, format_currency
from .models import FlowDiagram, LayoutResult, PositionedLink, PositionedNode


# --- Fixed chrome palette (node and link colors come from the data) ---

BACKGROUND = "#ffffff"
TITLE_COLOR = "#111827"
MUTED_TEXT = "#6b7280"
LABEL_FILL = "#ffffff"

NODE_RADIUS = 8
LINK_OPACITY = 0.7
LABEL_MIN_STROKE = 6      # links thinner than this get no value label
LINK_LABEL_WIDTH = 70
LINK_LABEL_HEIGHT = 24
CURVE_STEPS = 30

MIN_SCALE = 0.25
MAX_SCALE = 8.0

# Legend block drawn under the diagram, one entry per node
LEGEND_TITLE = "Flow Components"
LEGEND_COLUMNS = 3
LEGEND_HEADER = 40
LEGEND_ROW = 48
LEGEND_PAD = 16
LEGEND_FILL = "#f9fafb"
LEGEND_TEXT = "#374151"


# --- Font handling ---

def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a font, falling back to default if none available."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Regular.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
        "/usr/share/fonts/TTF/DejaVuSans.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return ImageFont.load_default()


def _load_bold_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    """Load a bold font, falling back to regular."""
    font_paths = [
        "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",
        "/usr/share/fonts/truetype/liberation/LiberationSans-Bold.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSansBold.ttf",
        "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",
    ]
    for fp in font_paths:
        if Path(fp).exists():
            return ImageFont.truetype(fp, size)
    return _load_font(size)


# --- Color helpers ---

def _hex_to_rgb(hex_color: str) -> tuple[int, int, int]:
    """Convert hex color to RGB tuple. Supports both 3-char and 6-char hex."""
    hex_color = hex_color.lstrip("#")
    if len(hex_color) == 3:
        hex_color = hex_color[0]*2 + hex_color[1]*2 + hex_color[2]*2
    return tuple(int(hex_color[i:i+2], 16) for i in (0, 2, 4))


def _hex_to_rgba(hex_color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """Convert hex color to RGBA tuple."""
    r, g, b = _hex_to_rgb(hex_color)
    return (r, g, b, alpha)


def _escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")


def _label_offset(index: int) -> float:
    """Alternate link labels above/below the curve so neighbours don't collide."""
    return -10 if index % 2 == 0 else 10


def legend_height(node_count: int) -> float:
    """Height of the legend block under the diagram; 0 when there are no nodes."""
    if node_count <= 0:
        return 0
    rows = math.ceil(node_count / LEGEND_COLUMNS)
    return LEGEND_HEADER + rows * LEGEND_ROW + LEGEND_PAD


def _legend_cells(result: LayoutResult) -> list[tuple[PositionedNode, float, float, float]]:
    """(node, x, y, width) of each legend entry, in graph order, row by row."""
    cfg = result.config
    cell_w = max((cfg.canvas_width - 4 * LEGEND_PAD) / LEGEND_COLUMNS, 40)
    cells = []
    for i, node in enumerate(result.nodes):
        row, col = divmod(i, LEGEND_COLUMNS)
        x = 2 * LEGEND_PAD + col * cell_w
        y = cfg.canvas_height + LEGEND_HEADER + row * LEGEND_ROW
        cells.append((node, x, y, cell_w - 8))
    return cells


# --- Main renderer ---

class FlowRenderer:
    """Renders a laid-out flow diagram to SVG or PNG.

    With ``legend`` on (the default) a "Flow Components" block listing
    every node is appended below the canvas, so the output is taller than
    ``canvas_height`` by ``legend_height(len(nodes))``.
    """

    def __init__(self, scale: float = 1.0, legend: bool = True):
        if not MIN_SCALE <= scale <= MAX_SCALE:
            raise ValueError(f"Scale must be between {MIN_SCALE:g} and {MAX_SCALE:g}, got {scale!r}")
        self.scale = scale
        self.legend = legend
        self.font_title = _load_bold_font(int(18 * scale))
        self.font_label = _load_bold_font(int(14 * scale))
        self.font_legend = _load_font(int(13 * scale))
        self.font_small = _load_font(int(12 * scale))

    def _legend_height(self, result: LayoutResult) -> float:
        return legend_height(len(result.nodes)) if self.legend else 0

    # --- SVG ---

    def render_svg(self, result: LayoutResult, diagram: Optional[FlowDiagram] = None) -> str:
        """Render to an SVG document string."""
        cfg = result.config
        legend_h = self._legend_height(result)
        w, h = cfg.canvas_width, cfg.canvas_height + legend_h
        parts = [
            f'<svg xmlns="http://www.w3.org/2000/svg" width="{w:g}" height="{h:g}" '
            f'viewBox="0 0 {w:g} {h:g}">',
            f'<rect width="100%" height="100%" fill="{BACKGROUND}"/>',
        ]

        if diagram is not None:
            parts.append(
                f'<text x="{cfg.margin.left:g}" y="22" font-family="sans-serif" font-size="18" '
                f'font-weight="bold" fill="{TITLE_COLOR}">{_escape(diagram.title)}</text>'
            )
            parts.append(
                f'<text x="{cfg.margin.left:g}" y="40" font-family="sans-serif" font-size="12" '
                f'fill="{MUTED_TEXT}">{_escape(diagram.description)}</text>'
            )

        # Links first, behind nodes
        for index, link in enumerate(result.links):
            parts.append(self._svg_link(link, index))

        for node in result.nodes:
            parts.append(self._svg_node(node, cfg.margin.top))

        # Direction arrows on top
        for link in result.links:
            mx, my = link.mid_x, link.mid_y
            pts = f"{mx + 15:g},{my - 3:g} {mx + 25:g},{my:g} {mx + 15:g},{my + 3:g}"
            parts.append(f'<polygon points="{pts}" fill="{link.color}" opacity="0.8"/>')

        if legend_h:
            parts.append(self._svg_legend(result, legend_h))

        parts.append("</svg>")
        return "\n".join(parts)

    def _svg_link(self, link: PositionedLink, index: int) -> str:
        out = [
            f'<path d="{link.path.to_svg_path()}" stroke="{link.color}" '
            f'stroke-width="{link.stroke_width:g}" fill="none" opacity="{LINK_OPACITY}"/>'
        ]
        if link.stroke_width >= LABEL_MIN_STROKE:
            off = _label_offset(index)
            rx = link.mid_x - LINK_LABEL_WIDTH / 2
            ry = link.mid_y + off - LINK_LABEL_HEIGHT / 2 - 4
            out.append(
                f'<rect x="{rx:g}" y="{ry:g}" width="{LINK_LABEL_WIDTH}" height="{LINK_LABEL_HEIGHT}" '
                f'rx="12" fill="{LABEL_FILL}" stroke="{link.color}" stroke-width="1" opacity="0.95"/>'
            )
            out.append(
                f'<text x="{link.mid_x:g}" y="{link.mid_y + off:g}" text-anchor="middle" '
                f'font-family="sans-serif" font-size="12" font-weight="600" fill="{link.color}">'
                f'{_escape(format_compact_currency(link.value))}</text>'
            )
        return "\n".join(out)

    def _svg_node(self, node: PositionedNode, top: float) -> str:
        """Node rectangle, bordered name pill above it, filled value pill below it."""
        cx = node.x + node.width / 2
        label_y = max(top + 5, node.y - 35)
        name_y = max(top + 20, node.y - 20)
        return "\n".join([
            f'<rect x="{node.x:g}" y="{node.y:g}" width="{node.width:g}" height="{node.height:g}" '
            f'rx="{NODE_RADIUS}" ry="{NODE_RADIUS}" fill="{node.color}"/>',
            f'<rect x="{node.x - 60:g}" y="{label_y:g}" width="{node.width + 120:g}" height="20" '
            f'rx="10" fill="{LABEL_FILL}" stroke="{node.color}" stroke-width="1" opacity="0.95"/>',
            f'<text x="{cx:g}" y="{name_y:g}" text-anchor="middle" font-family="sans-serif" '
            f'font-size="14" font-weight="bold" fill="{node.color}">{_escape(node.get_label())}</text>',
            f'<rect x="{node.x - 40:g}" y="{node.bottom + 10:g}" width="{node.width + 80:g}" height="18" '
            f'rx="9" fill="{node.color}" opacity="0.9"/>',
            f'<text x="{cx:g}" y="{node.bottom + 23:g}" text-anchor="middle" font-family="sans-serif" '
            f'font-size="12" font-weight="600" fill="{LABEL_FILL}">'
            f'{_escape(format_compact_currency(node.value))}</text>',
        ])

    def _svg_legend(self, result: LayoutResult, legend_h: float) -> str:
        cfg = result.config
        top = cfg.canvas_height
        out = [
            '<g id="legend">',
            f'<rect x="{LEGEND_PAD}" y="{top:g}" width="{cfg.canvas_width - 2 * LEGEND_PAD:g}" '
            f'height="{legend_h - LEGEND_PAD:g}" rx="8" fill="{LEGEND_FILL}"/>',
            f'<text x="{2 * LEGEND_PAD}" y="{top + 26:g}" font-family="sans-serif" font-size="14" '
            f'font-weight="600" fill="{LEGEND_TEXT}">{LEGEND_TITLE}</text>',
        ]
        for node, x, y, cw in _legend_cells(result):
            # Full amount as a hover tooltip
            out.extend([
                '<g class="legend-entry">',
                f'<title>{_escape(node.get_label())}: {_escape(format_currency(node.value))}</title>',
                f'<rect x="{x:g}" y="{y:g}" width="{cw:g}" height="{LEGEND_ROW - 8}" rx="6" '
                f'fill="{LABEL_FILL}"/>',
                f'<circle cx="{x + 16:g}" cy="{y + 20:g}" r="8" fill="{node.color}"/>',
                f'<text x="{x + 32:g}" y="{y + 17:g}" font-family="sans-serif" font-size="13" '
                f'font-weight="500" fill="{LEGEND_TEXT}">{_escape(node.get_label())}</text>',
                f'<text x="{x + 32:g}" y="{y + 33:g}" font-family="sans-serif" font-size="12" '
                f'fill="{MUTED_TEXT}">{_escape(format_compact_currency(node.value))}</text>',
                '</g>',
            ])
        out.append('</g>')
        return "\n".join(out)

    # --- PNG ---

    def render_png(
        self,
        result: LayoutResult,
        diagram: Optional[FlowDiagram] = None,
        output_path: Optional[str] = None,
    ) -> bytes:
        """Render to PNG bytes. Optionally save to file."""
        cfg = result.config
        s = self.scale
        legend_h = self._legend_height(result)
        size = (int(cfg.canvas_width * s), int((cfg.canvas_height + legend_h) * s))

        img = Image.new("RGBA", size, _hex_to_rgba(BACKGROUND))

        # Links are translucent, so draw them on their own layer
        links_layer = Image.new("RGBA", size, (0, 0, 0, 0))
        link_draw = ImageDraw.Draw(links_layer)
        alpha = int(255 * LINK_OPACITY)
        for link in result.links:
            points = [(x * s, y * s) for x, y in link.path.sample(CURVE_STEPS)]
            link_draw.line(
                points, fill=_hex_to_rgba(link.color, alpha),
                width=max(1, int(link.stroke_width * s)), joint="curve",
            )
        img = Image.alpha_composite(img, links_layer)

        draw = ImageDraw.Draw(img)

        if diagram is not None:
            draw.text((cfg.margin.left * s, 8 * s), diagram.title, fill=TITLE_COLOR, font=self.font_title)
            draw.text((cfg.margin.left * s, 30 * s), diagram.description, fill=MUTED_TEXT, font=self.font_small)

        for index, link in enumerate(result.links):
            self._draw_link_decorations(draw, link, index)

        for node in result.nodes:
            self._draw_node(draw, node, cfg.margin.top)

        if legend_h:
            self._draw_legend(draw, result, legend_h)

        buf = BytesIO()
        img.save(buf, format="PNG", optimize=True)
        png_bytes = buf.getvalue()

        if output_path:
            Path(output_path).write_bytes(png_bytes)

        return png_bytes

    def _text_centered(self, draw: ImageDraw.ImageDraw, cx: float, y: float, text: str, font, fill):
        bbox = font.getbbox(text)
        tw = bbox[2] - bbox[0]
        draw.text((cx - tw / 2, y), text, fill=fill, font=font)

    def _draw_link_decorations(self, draw: ImageDraw.ImageDraw, link: PositionedLink, index: int):
        """Value label (for thick links) and direction arrow at the midpoint."""
        s = self.scale
        mx, my = link.mid_x, link.mid_y
        if link.stroke_width >= LABEL_MIN_STROKE:
            off = _label_offset(index)
            x1 = (mx - LINK_LABEL_WIDTH / 2) * s
            y1 = (my + off - LINK_LABEL_HEIGHT / 2 - 4) * s
            draw.rounded_rectangle(
                [x1, y1, x1 + LINK_LABEL_WIDTH * s, y1 + LINK_LABEL_HEIGHT * s],
                radius=int(12 * s), fill=LABEL_FILL, outline=link.color, width=1,
            )
            self._text_centered(
                draw, mx * s, y1 + 5 * s, format_compact_currency(link.value),
                self.font_small, link.color,
            )
        draw.polygon(
            [((mx + 15) * s, (my - 3) * s), ((mx + 25) * s, my * s), ((mx + 15) * s, (my + 3) * s)],
            fill=link.color,
        )

    def _draw_node(self, draw: ImageDraw.ImageDraw, node: PositionedNode, top: float):
        """Node rectangle, bordered name pill above it, filled value pill below it."""
        s = self.scale
        x, y = node.x * s, node.y * s
        w, h = node.width * s, node.height * s
        draw.rounded_rectangle([x, y, x + w, y + h], radius=int(NODE_RADIUS * s), fill=node.color)

        cx = x + w / 2
        label_y = max(top + 5, node.y - 35) * s
        draw.rounded_rectangle(
            [x - 60 * s, label_y, x + w + 60 * s, label_y + 20 * s],
            radius=int(10 * s), fill=LABEL_FILL, outline=node.color, width=1,
        )
        self._text_centered(draw, cx, label_y + 2 * s, node.get_label(), self.font_label, node.color)

        pill_y = (node.bottom + 10) * s
        draw.rounded_rectangle(
            [x - 40 * s, pill_y, x + w + 40 * s, pill_y + 18 * s],
            radius=int(9 * s), fill=node.color,
        )
        self._text_centered(
            draw, cx, pill_y + 2 * s, format_compact_currency(node.value),
            self.font_small, LABEL_FILL,
        )

    def _draw_legend(self, draw: ImageDraw.ImageDraw, result: LayoutResult, legend_h: float):
        """Legend block: swatch, name and compact value per node."""
        s = self.scale
        cfg = result.config
        top = cfg.canvas_height
        draw.rounded_rectangle(
            [LEGEND_PAD * s, top * s, (cfg.canvas_width - LEGEND_PAD) * s, (top + legend_h - LEGEND_PAD) * s],
            radius=int(8 * s), fill=LEGEND_FILL,
        )
        draw.text((2 * LEGEND_PAD * s, (top + 12) * s), LEGEND_TITLE, fill=LEGEND_TEXT, font=self.font_label)

        for node, x, y, cw in _legend_cells(result):
            draw.rounded_rectangle(
                [x * s, y * s, (x + cw) * s, (y + LEGEND_ROW - 8) * s],
                radius=int(6 * s), fill=LABEL_FILL,
            )
            draw.ellipse([(x + 8) * s, (y + 12) * s, (x + 24) * s, (y + 28) * s], fill=node.color)
            draw.text(((x + 32) * s, (y + 4) * s), node.get_label(), fill=LEGEND_TEXT, font=self.font_legend)
            draw.text(
                ((x + 32) * s, (y + 22) * s), format_compact_currency(node.value),
                fill=MUTED_TEXT, font=self.font_small,
            )
