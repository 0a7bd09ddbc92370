"""
Start the service: migrate the database, then serve.

    python -m app

The server only starts once the migrations finished; a database that is
unreachable or drifted stops the process with exit status 1.
"""

import asyncio
import logging

import uvicorn

from app.core.config import settings
from app.core.migrations import run_migrations


def main() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    asyncio.run(run_migrations(settings))

    uvicorn.run(
        "app.main:app",
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
