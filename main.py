"""Main entry point for running the Tax Registry API."""

import os

import uvicorn
from loguru import logger

from taxregistry.core.config import get_settings
from taxregistry.core.logging import setup_logging

UVICORN_LOG_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "handlers": {
        "default": {"class": "taxregistry.core.logging.InterceptHandler"},
    },
    "loggers": {
        name: {"handlers": ["default"], "level": "INFO", "propagate": False}
        for name in ("uvicorn", "uvicorn.error", "uvicorn.access")
    },
}


def main() -> None:
    """Run the API with uvicorn, logging through Loguru."""
    settings = get_settings()
    setup_logging(settings)

    # Container platforms set PORT to the port to listen on
    port = int(os.environ.get("PORT", settings.api_port))

    mode = "development mode with auto-reload" if settings.debug else "production mode"
    logger.info("Starting Uvicorn on http://{}:{} ({})", settings.api_host, port, mode)

    # An import string is required for reload and keeps the app out of this process
    uvicorn.run(
        "taxregistry.api.main:app",
        host=settings.api_host,
        port=port,
        reload=settings.debug,
        log_config=UVICORN_LOG_CONFIG,
    )


if __name__ == "__main__":
    main()
