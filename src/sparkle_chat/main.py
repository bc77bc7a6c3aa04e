"""
Main entry point for the Sparkle chat backend.
"""

from __future__ import annotations

import logging
import sys

import structlog
import uvicorn

from .config import Configuration
from .server import create_app

logger = structlog.get_logger(__name__)


def main() -> None:
    """Serve the chat endpoint with uvicorn."""
    config = Configuration()
    server_config = config.get_server_config()
    log_level = str(server_config.get("log_level", "info")).upper()

    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(message)s",
        stream=sys.stdout,
    )

    # Fail fast if the provider key is missing from the deployment
    try:
        _ = config.llm_api_key
    except ValueError as e:
        logger.error("Missing upstream credentials", error_message=str(e))
        raise SystemExit(1) from e

    app = create_app(config)

    try:
        uvicorn.run(
            app,
            host=server_config["host"],
            port=int(server_config["port"]),
            log_level=log_level.lower(),
        )
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received, shutting down...")
    finally:
        logger.info("Application shutdown complete")


if __name__ == "__main__":
    main()
