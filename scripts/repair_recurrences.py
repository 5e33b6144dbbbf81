#!/usr/bin/env python3
"""List completed recurring tasks that never got their next instance, and optionally recreate them."""

import argparse
import asyncio
import logging

from src.core.db_client import close_connection
from src.models.service_models import RecreationOutcome
from src.services import recurrence_service


logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


async def main(*, repair: bool) -> None:
    broken = await recurrence_service.find_unrecreated_completions()
    if not broken:
        logger.info("All recurring chains are intact")

    for task in broken:
        logger.info("%s: %s (due %s, %s)", task.id, task.description, task.due_date, task.recurrence_type)
        if not repair:
            continue

        # Nothing else should be recreating while the repair runs, so half-done claims are finished here
        result = await recurrence_service.recreate_next_instance(task_id=task.id, resume=True)
        if result.outcome in (RecreationOutcome.FAILED, RecreationOutcome.INCOMPLETE):
            logger.info("  still broken: %s %s", result.error_code, result.error)
        else:
            logger.info("  %s: next due %s", result.outcome, result.next_due_date)

    await close_connection()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--repair", action="store_true", help="recreate the missing instances")
    args = parser.parse_args()
    asyncio.run(main(repair=args.repair))
