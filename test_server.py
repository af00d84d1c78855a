"""Tests for the MCP tool handlers."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest

from sankey_mcp import config, server

TEMPLATES = Path(__file__).parent / "templates"


@pytest.fixture
def output_dir(tmp_path, monkeypatch):
    out = tmp_path / "diagrams"
    monkeypatch.setattr(config, "OUTPUT_DIR", out)
    monkeypatch.setattr(server, "OUTPUT_DIR", out)
    return out


@pytest.fixture(autouse=True)
def templates_dir(monkeypatch):
    monkeypatch.setattr(server, "TEMPLATES_DIR", TEMPLATES)


def call(name: str, arguments: dict) -> str:
    contents = asyncio.run(server.call_tool(name, arguments))
    assert len(contents) == 1
    return contents[0].text


class TestLayoutTool:
    def test_layout(self, marketplace_recipe):
        payload = json.loads(call("layout_flow_diagram", {"recipe": marketplace_recipe, "width": 1000}))
        assert payload["status"] == "success"
        assert payload["width"] == 1000 and payload["height"] == 500
        assert len(payload["nodes"]) == 4
        assert all("d" in link for link in payload["links"])

    def test_narrow_width_is_clamped(self, marketplace_recipe):
        payload = json.loads(call("layout_flow_diagram", {"recipe": marketplace_recipe, "width": 250}))
        assert payload["width"] == 600

    def test_invalid_graph_message(self):
        text = call("layout_flow_diagram", {"recipe": "nodes:\n  - {id: a, value: 1}\n"})
        assert text.startswith("Invalid flow graph:")
        assert "has no role" in text

    def test_broken_yaml_message(self):
        text = call("layout_flow_diagram", {"recipe": "nodes: [oops"})
        assert text.startswith("Failed to parse recipe:")

    def test_zero_width_is_clamped_not_ignored(self, marketplace_recipe):
        payload = json.loads(call("layout_flow_diagram", {"recipe": marketplace_recipe, "width": 0}))
        assert payload["width"] == 600

    def test_null_width_uses_recipe_width(self, marketplace_recipe):
        payload = json.loads(call("layout_flow_diagram", {"recipe": marketplace_recipe, "width": None}))
        assert payload["width"] == 900

    @pytest.mark.parametrize("height", [0, -5, "tall"])
    def test_bad_height_message(self, marketplace_recipe, height):
        text = call("layout_flow_diagram", {"recipe": marketplace_recipe, "height": height})
        assert text.startswith("Invalid height:")

    def test_malformed_recipe_field_message(self, marketplace_recipe):
        text = call("layout_flow_diagram", {"recipe": marketplace_recipe + "width: null\n"})
        assert "'width' must be a positive number" in text


class TestRenderTool:
    def test_svg(self, marketplace_recipe, output_dir):
        payload = json.loads(call("render_flow_diagram", {"recipe": marketplace_recipe, "filename": "flow"}))
        path = Path(payload["path"])
        assert path == output_dir / "flow.svg"
        assert path.read_text(encoding="utf-8").startswith("<svg")
        assert payload["nodes"] == 4 and payload["links"] == 3

    def test_png(self, marketplace_recipe, output_dir):
        args = {"recipe": marketplace_recipe, "format": "png", "scale": 1.0, "filename": "flow"}
        payload = json.loads(call("render_flow_diagram", args))
        assert (output_dir / "flow.png").read_bytes()[:4] == b"\x89PNG"
        assert payload["format"] == "png"

    def test_unsupported_format(self, marketplace_recipe, output_dir):
        text = call("render_flow_diagram", {"recipe": marketplace_recipe, "format": "bmp"})
        assert text == "Unsupported format: bmp"

    @pytest.mark.parametrize("scale", [0, "big", 20])
    def test_bad_scale_message(self, marketplace_recipe, output_dir, scale):
        text = call("render_flow_diagram", {"recipe": marketplace_recipe, "format": "png", "scale": scale})
        assert text.startswith(("Invalid scale:", "Scale must be between"))
        assert not output_dir.exists() or not any(output_dir.iterdir())

    def test_filename_stays_inside_output_dir(self, marketplace_recipe, output_dir):
        payload = json.loads(call("render_flow_diagram", {"recipe": marketplace_recipe, "filename": "../../escape"}))
        path = Path(payload["path"])
        assert path.parent == output_dir
        assert path.name == ".._.._escape.svg"
        assert path.exists()


class TestTemplateTools:
    def test_list_templates(self):
        payload = json.loads(call("list_templates", {}))
        names = [t["name"] for t in payload["templates"]]
        assert "marketplace-cash-flow" in names

    def test_get_template(self):
        text = call("get_template", {"name": "marketplace-cash-flow"})
        assert "role: destination" in text

    def test_get_missing_template(self):
        assert call("get_template", {"name": "nope"}) == "Template not found: nope"


def test_unknown_tool():
    assert call("draw_pie", {}) == "Unknown tool: draw_pie"
