#!/usr/bin/env python3
"""
Main entry point for the job scheduler service.
"""

import uvicorn

from core.config import settings
from core.logging_config import configure_logging_from_settings, get_logger

logger = get_logger(__name__)


def main():
    """Main entry point."""
    configure_logging_from_settings()

    try:
        logger.info(f"Starting job scheduler on {settings.scheduler_host}:{settings.scheduler_port}")
        logger.info(f"Triggering jobs on {settings.job_server_url}")

        uvicorn.run(
            "services.scheduler.api:app",
            host=settings.scheduler_host,
            port=settings.scheduler_port,
            log_level=settings.log_level.lower()
        )

    except KeyboardInterrupt:
        logger.info("Shutting down job scheduler")
    except Exception as e:
        logger.error(f"Failed to start job scheduler: {e}")
        raise


if __name__ == "__main__":
    main()
