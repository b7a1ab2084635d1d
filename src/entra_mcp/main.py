"""
Entry point for the Entra MCP HTTP server.
"""

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import List

import uvicorn

from .config import Settings, load_env_file

logger = logging.getLogger(__name__)

LOG_DIR = "~/.entra-mcp/logs"


def setup_logging(log_name: str, debug: bool = False) -> str:
    """Log to stderr and to a rotating file under ~/.entra-mcp/logs.

    Returns:
        The path of the log file.
    """
    log_dir = os.path.expanduser(LOG_DIR)
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, log_name)

    handlers: List[logging.Handler] = [
        logging.StreamHandler(sys.stderr),
        RotatingFileHandler(
            log_file,
            mode="a",
            encoding="utf-8",
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=5,
        ),
    ]

    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )
    return log_file


def main():
    """Main entry point."""
    load_env_file()
    settings = Settings.from_env()
    log_file = setup_logging("entra-mcp-server.log", debug=settings.debug)
    logger.info(f"Logging to file: {log_file}")

    from .api.app import create_app

    try:
        app = create_app(settings)
        uvicorn.run(
            app,
            host=settings.server.host,
            port=settings.server.port,
            log_config=None,
        )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception as e:
        logger.error(f"Server error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
