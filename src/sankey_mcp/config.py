"""Runtime configuration, read from the environment, and logging setup."""

from __future__ import annotations

import logging
import os
from pathlib import Path


OUTPUT_DIR = Path(os.environ.get("SANKEY_OUTPUT_DIR", Path.home() / ".sankey" / "diagrams"))
TEMPLATES_DIR = Path(
    os.environ.get("SANKEY_TEMPLATES_DIR", Path(__file__).parent.parent.parent / "templates")
)
WEB_DIR = Path(os.environ.get("SANKEY_WEB_DIR", Path(__file__).parent.parent.parent / "web"))
LOG_LEVEL = os.environ.get("SANKEY_LOG_LEVEL", "INFO")

# Narrowest canvas the resize controller will publish.
MIN_CANVAS_WIDTH = float(os.environ.get("SANKEY_MIN_CANVAS_WIDTH", 600))

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def ensure_output_dir() -> Path:
    OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
    return OUTPUT_DIR


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for an entry point (server or web app)."""
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format=LOG_FORMAT,
    )
