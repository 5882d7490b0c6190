#!/usr/bin/env python3
"""
Demo Banking Entry Point

Starts the FastAPI server with settings from DEMO_BANK_* environment variables.
"""

import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from demo_banking.api import run_server
from demo_banking.config import get_config
from demo_banking.logging_config import setup_logging


if __name__ == "__main__":
    config = get_config()
    logger = setup_logging(config.log_level, log_format=config.log_format, log_file=config.log_file)
    logger.info("Starting Demo Banking API on %s:%d", config.api_host, config.api_port)

    try:
        run_server(
            host=config.api_host,
            port=config.api_port,
            debug=False
        )
    except KeyboardInterrupt:
        logger.info("Shutting down Demo Banking API")
    except Exception:
        logger.exception("Error starting server")
        sys.exit(1)
