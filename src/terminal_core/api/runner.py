#!/usr/bin/env python3
"""FastAPI server runner."""

import argparse

import uvicorn
import structlog

from terminal_core.logging.setup import setup_logging
from terminal_core.api.app import app, config

logger = structlog.get_logger()


def main():
    """Run the terminal API server."""
    parser = argparse.ArgumentParser(description="Trading terminal API server")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    args = parser.parse_args()

    setup_logging(config.logging.level, config.logging.format)

    logger.info("api_starting", host=args.host, port=args.port)

    try:
        uvicorn.run(
            app,
            host=args.host,
            port=args.port,
            log_config=None  # Use our structlog setup
        )
    except Exception as e:
        logger.error("api_start_failed", error=str(e))
        raise


if __name__ == "__main__":
    main()
