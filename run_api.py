#!/usr/bin/env python3
"""
Launch the Bookshelf API under uvicorn with the configured settings.
"""

import structlog
import uvicorn

from api.config import config
from utilities.logger import setup_logging

logger = structlog.get_logger("run_api")


def main():
    setup_logging(
        log_level=config.log_level,
        log_format=config.log_format,
        log_file=config.log_file,
        debug=config.debug,
    )
    logger.info(
        "Launching server",
        app=config.app_name,
        host=config.host,
        port=config.port,
        database=config.mongodb_database,
        reload=config.debug,
    )
    uvicorn.run(
        "api.main:app",
        host=config.host,
        port=config.port,
        reload=config.debug,
        log_level=config.log_level.lower(),
        log_config=None,
    )


if __name__ == "__main__":
    main()
