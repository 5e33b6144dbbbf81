#!/usr/bin/env python3
"""Create the SQLite schema without starting the web server."""

import asyncio
import logging

from src.core.config import settings
from src.core.db_client import close_connection, init_db


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def main() -> None:
    await init_db()
    await close_connection()
    logger.info("Schema ready at %s", settings.sqlite_db_path)


if __name__ == "__main__":
    asyncio.run(main())
