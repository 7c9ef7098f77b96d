#!/usr/bin/env python3
"""
Script to run the Book Catalog API server.
"""

import sys
from pathlib import Path

import uvicorn

# Add project root to Python path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from api.config import config
from utilities.logger import get_logger, setup_logging


def main():
    """Run the API server."""
    setup_logging(log_level=config.log_level, log_format=config.log_format)
    logger = get_logger(__name__)
    logger.info(
        "Starting Book Catalog API server",
        host=config.host,
        port=config.port,
        debug=config.debug,
        database=config.mongodb_database
    )

    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        access_log=True
    )


if __name__ == "__main__":
    main()
