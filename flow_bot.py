#!/usr/bin/env python3
"""
Flow Bot - web server for live money-flow diagrams

Serves the Sankey-MCP layout and render endpoints plus a websocket that
relays container widths from the browser and pushes fresh layouts back.

Usage:
    python flow_bot.py [--port 8766] [--host 0.0.0.0]
"""

import asyncio
import logging

from sankey_mcp.config import OUTPUT_DIR, configure_logging
from sankey_mcp.web import main

logger = logging.getLogger(__name__)


if __name__ == '__main__':
    import argparse

    parser = argparse.ArgumentParser(description='Flow Bot Web Server')
    parser.add_argument('--host', default='0.0.0.0', help='Host to bind to')
    parser.add_argument('--port', type=int, default=8766, help='Port to listen on')
    parser.add_argument('--log-level', default=None, help='Logging level (default: SANKEY_LOG_LEVEL or INFO)')
    args = parser.parse_args()

    configure_logging(args.log_level)
    logger.info(f"Diagrams: {OUTPUT_DIR}")

    try:
        asyncio.run(main(host=args.host, port=args.port))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
