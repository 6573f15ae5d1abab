"""
C2C Portal - Main entry point.

Runs the API with uvicorn:

    python -m c2c_portal.main
"""

from __future__ import annotations

import uvicorn

from c2c_portal.config import get_settings
from c2c_portal.core.logging import configure_logging


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level)
    uvicorn.run(
        "c2c_portal.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug and not settings.is_production,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
