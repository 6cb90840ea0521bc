"""
Run the API server: ``python -m lunchspot``.
"""

from __future__ import annotations

import logging

import uvicorn

from lunchspot.app import create_app
from lunchspot.config import get_settings

logger = logging.getLogger(__name__)


def main() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app(settings)
    logger.info(f"Server listening on http://{settings.host}:{settings.port}")
    logger.info(f"API prefix: {settings.api_prefix}")
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
