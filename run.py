"""
Run script for starting the Voice Agent Bridge server.

This script configures and starts the FastAPI server with websocket keepalive
settings suited to long-lived browser audio connections.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys

import uvicorn

from agent_bridge.config.logging_config import configure_logging
from agent_bridge.config.settings import load_settings

# Configure logging
logger = configure_logging()


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Start the Voice Agent Bridge server")
    parser.add_argument(
        "--port",
        type=int,
        default=int(os.getenv("PORT", "8000")),
        help="Port to run the server on (default: 8000 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=os.getenv("HOST", "0.0.0.0"),
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default=os.getenv("LOG_LEVEL", "INFO"),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def main(argv=None):
    """Main entry point for starting the server."""
    args = parse_args(argv)
    settings = load_settings()

    if not settings.api_key:
        logger.error("DEEPGRAM_API_KEY environment variable not set")
        print("Error: DEEPGRAM_API_KEY (or DG_API_KEY) environment variable is required")
        sys.exit(1)

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")
    logger.info(f"Voice agent endpoint: {settings.agent_url}")

    uvicorn.run(
        "agent_bridge.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        # Browser liveness is handled by websocket pings, not application messages
        ws_ping_interval=settings.client_ping_interval_s,
        ws_ping_timeout=settings.client_ping_interval_s,
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
