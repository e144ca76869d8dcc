"""Application entrypoint."""

from __future__ import annotations

import logging

import uvicorn

from paws.config import get_settings
from paws.logging import configure_logging, logger
from paws.web.app import create_app


def main() -> None:
    settings = get_settings()
    configure_logging(
        logging.DEBUG if settings.environment == "dev" else logging.INFO,
        json_output=settings.environment != "dev",
    )
    app = create_app(settings)

    logger.info("server_starting", host=settings.host, port=settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
