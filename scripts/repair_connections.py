#!/usr/bin/env python3
"""
Repair the social graph by hand.

Completes or removes one-sided connections and closes pending requests
between users who are already connected. Use --dry-run to only report.
"""
import argparse
import asyncio

from loguru import logger

from swipematch.core.startup import configure_logging, run_integrity_checks
from swipematch.db import async_session_factory, init_models
from swipematch.db.repositories import connection_repo, connection_request_repo


async def report(session):
    one_sided = await connection_repo.get_one_sided_rows(session)
    logger.info(f"Found {len(one_sided)} one-sided connection rows")
    for row in one_sided:
        logger.info(f"  {row.user_id} -> {row.connected_user_id} (since {row.connected_at})")

    stale = 0
    for request in await connection_request_repo.get_all_pending(session):
        if await connection_repo.is_connected(session, request.from_user_id, request.to_user_id):
            stale += 1
            logger.info(f"  pending request {request.id} between connected users")
    logger.info(f"Found {stale} stale pending requests")


async def main(dry_run: bool):
    configure_logging()
    await init_models()
    async with async_session_factory() as session:
        if dry_run:
            await report(session)
            return
        result = await run_integrity_checks(session)
        logger.info(
            f"Done: {result['completed']} rows completed, {result['removed']} rows removed, "
            f"{result['closed']} requests closed"
        )


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--dry-run", action="store_true", help="Only report problems, change nothing")
    args = parser.parse_args()
    asyncio.run(main(args.dry_run))
